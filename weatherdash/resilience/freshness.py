"""Freshness classification for the displayed forecast."""

from datetime import UTC, datetime, timedelta

from weatherdash.config.schema import ResilienceConfig
from weatherdash.models.state import Fresh, FreshnessStatus, Model, Offline, Stale


def evaluate_freshness(
    now: datetime,
    last_success: datetime | None,
    consecutive_failures: int,
    refresh_interval_secs: float,
    policy: ResilienceConfig,
) -> FreshnessStatus:
    """Classify data freshness.

    Offline once failures reach the offline threshold or the data is older
    than ``offline_age_multiplier`` refresh intervals. Stale when any failure
    streak is active or the data is older than one refresh interval. An age
    exactly on a boundary does not cross it.
    """
    if consecutive_failures >= policy.offline_failure_threshold:
        return Offline(failure_count=consecutive_failures)

    if last_success is None:
        return Stale(age=None)

    age = data_age(last_success, now)
    offline_after = timedelta(seconds=refresh_interval_secs * policy.offline_age_multiplier)
    if age > offline_after:
        return Offline(failure_count=consecutive_failures)

    if consecutive_failures >= policy.stale_failure_threshold or age > timedelta(
        seconds=refresh_interval_secs
    ):
        return Stale(age=age)

    return Fresh()


def data_age(last_success: datetime, now: datetime) -> timedelta:
    if last_success.tzinfo is None:
        last_success = last_success.replace(tzinfo=UTC)
    return max(now - last_success, timedelta(0))


def model_freshness(model: Model, now: datetime) -> FreshnessStatus:
    """Project the freshness of whatever the model is currently showing."""
    bundle = model.bundle
    return evaluate_freshness(
        now,
        bundle.fetched_at if bundle is not None else None,
        model.active_retry.attempts,
        model.settings.refresh_interval_secs,
        model.settings.resilience,
    )


def freshness_label(status: FreshnessStatus) -> str:
    match status:
        case Fresh():
            return "fresh"
        case Stale(age=None):
            return "stale"
        case Stale(age=age):
            return f"stale ({int(age.total_seconds() // 60)}m old)"
        case Offline(failure_count=count):
            return f"offline ({count} failed)"

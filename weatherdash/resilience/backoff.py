"""Exponential backoff with jitter and retry-state bookkeeping.

The delay for attempt n (1-based) is ``base * 2**(n-1) * (1 + j)`` with
``j`` drawn from ``[0, jitter_ratio)``, then capped at ``max``. Because the
jitter ratio is below 1, each uncapped delay is strictly larger than the
previous one; applying the cap last keeps the sequence non-decreasing.
"""

import logging
import random
from datetime import datetime, timedelta

from weatherdash.config.schema import ResilienceConfig
from weatherdash.models.common import FetchErrorKind
from weatherdash.models.state import RetryState

logger = logging.getLogger(__name__)


def backoff_delay(attempt: int, policy: ResilienceConfig, rng: random.Random) -> float:
    """Seconds to wait before retry number ``attempt``."""
    if attempt < 1:
        return 0.0
    raw = policy.backoff_base_secs * (2 ** (attempt - 1))
    jitter = rng.random() * policy.backoff_jitter_ratio
    return min(policy.backoff_max_secs, raw * (1.0 + jitter))


def record_failure(
    retry: RetryState,
    now: datetime,
    error_kind: FetchErrorKind,
    policy: ResilienceConfig,
    rng: random.Random,
) -> RetryState:
    attempts = retry.attempts + 1
    delay = backoff_delay(attempts, policy, rng)
    logger.warning(
        "Fetch failed (%s, %d consecutive), next retry in %.1fs",
        error_kind, attempts, delay,
    )
    return RetryState(
        attempts=attempts,
        next_eligible_at=now + timedelta(seconds=delay),
        last_error=error_kind,
        last_delay_secs=delay,
    )


def record_success() -> RetryState:
    return RetryState()


def retry_eligible(retry: RetryState, now: datetime) -> bool:
    return retry.next_eligible_at is None or now >= retry.next_eligible_at

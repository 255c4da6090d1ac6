"""Shared test fixtures."""

import random
from datetime import UTC, date, datetime
from pathlib import Path

import pytest
import yaml

from weatherdash.app.state_machine import TransitionContext
from weatherdash.config.schema import DashboardConfig
from weatherdash.models.forecast import (
    CurrentConditions,
    DailyForecast,
    ForecastBundle,
    ForecastSnapshot,
)
from weatherdash.models.location import GeocodeCandidate, Location

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=UTC)


def make_current(temperature_c: float = 4.0) -> CurrentConditions:
    return CurrentConditions(
        temperature_2m_c=temperature_c,
        relative_humidity_2m=71.0,
        apparent_temperature_c=1.5,
        dew_point_2m_c=-0.8,
        weather_code=3,
        precipitation_mm=0.0,
        cloud_cover=90.0,
        pressure_msl_hpa=1012.0,
        visibility_m=24000.0,
        wind_speed_10m=18.0,
        wind_gusts_10m=36.0,
        wind_direction_10m=250.0,
        is_day=True,
        high_today_c=6.0,
        low_today_c=-1.0,
    )


def make_snapshot(temperature_c: float = 4.0) -> ForecastSnapshot:
    return ForecastSnapshot(
        current=make_current(temperature_c),
        daily=(
            DailyForecast(
                date=date(2026, 3, 14),
                weather_code=3,
                temperature_max_c=6.0,
                temperature_min_c=-1.0,
                precipitation_sum_mm=0.4,
            ),
        ),
    )


def make_bundle(
    location: Location, fetched_at: datetime = NOW, temperature_c: float = 4.0
) -> ForecastBundle:
    return ForecastBundle(
        location=location, snapshot=make_snapshot(temperature_c), fetched_at=fetched_at
    )


@pytest.fixture
def bundle_factory():
    return make_bundle


@pytest.fixture
def snapshot_factory():
    return make_snapshot


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def settings() -> DashboardConfig:
    return DashboardConfig()


@pytest.fixture
def context() -> TransitionContext:
    """Transition context with a seeded RNG for reproducible backoff."""
    return TransitionContext(rng=random.Random(42))


@pytest.fixture
def stockholm() -> Location:
    return Location(
        name="Stockholm",
        latitude=59.3293,
        longitude=18.0686,
        country="Sweden",
        country_code="SE",
        admin1="Stockholm",
        timezone="Europe/Stockholm",
        population=975551,
    )


@pytest.fixture
def oslo() -> Location:
    return Location(
        name="Oslo",
        latitude=59.9127,
        longitude=10.7461,
        country="Norway",
        country_code="NO",
        admin1="Oslo",
        timezone="Europe/Oslo",
        population=580000,
    )


@pytest.fixture
def springfield_candidates() -> list[GeocodeCandidate]:
    """Five US Springfields whose populations are within 10% of each other.

    Populations are non-increasing in provider order, so ranking keeps the
    provider order.
    """
    places = [
        ("Missouri", 37.2153, -93.2982, 169176),
        ("Massachusetts", 42.1015, -72.5898, 155929),
        ("Illinois", 39.7817, -89.6501, 114394),
        ("Oregon", 44.0462, -123.0220, 62256),
        ("Ohio", 39.9242, -83.8088, 58662),
    ]
    return [
        GeocodeCandidate(
            location=Location(
                name="Springfield",
                latitude=lat,
                longitude=lon,
                country="United States",
                country_code="US",
                admin1=state,
                population=population,
            ),
            provider_index=idx,
        )
        for idx, (state, lat, lon, population) in enumerate(places)
    ]


@pytest.fixture
def settings_yaml_path(tmp_path: Path) -> Path:
    """Write a minimal valid settings YAML and return its path."""
    data = {
        "units": "fahrenheit",
        "refresh_interval_secs": 300,
        "recent_locations": [
            {"name": "Oslo", "latitude": 59.9127, "longitude": 10.7461, "country": "Norway"}
        ],
    }
    path = tmp_path / "settings.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"

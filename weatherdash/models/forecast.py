"""Open-Meteo forecast data models."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum

from weatherdash.models.location import Location


class AirQualityCategory(StrEnum):
    GOOD = "Good"
    MODERATE = "Moderate"
    UNHEALTHY_SENSITIVE = "USG"
    UNHEALTHY = "Unhealthy"
    VERY_UNHEALTHY = "Very Unhealthy"
    HAZARDOUS = "Hazardous"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class CurrentConditions:
    temperature_2m_c: float
    relative_humidity_2m: float
    apparent_temperature_c: float
    dew_point_2m_c: float
    weather_code: int
    precipitation_mm: float
    cloud_cover: float
    pressure_msl_hpa: float
    visibility_m: float
    wind_speed_10m: float  # km/h
    wind_gusts_10m: float
    wind_direction_10m: float
    is_day: bool
    high_today_c: float | None = None
    low_today_c: float | None = None


@dataclass(frozen=True)
class HourlyForecast:
    time: datetime  # local time at the location, naive
    temperature_2m_c: float | None = None
    weather_code: int | None = None
    is_day: bool | None = None
    relative_humidity_2m: float | None = None
    precipitation_probability: float | None = None
    precipitation_mm: float | None = None
    wind_speed_10m: float | None = None
    wind_gusts_10m: float | None = None
    visibility_m: float | None = None
    cloud_cover: float | None = None


@dataclass(frozen=True)
class DailyForecast:
    date: date
    weather_code: int | None = None
    temperature_max_c: float | None = None
    temperature_min_c: float | None = None
    sunrise: datetime | None = None
    sunset: datetime | None = None
    uv_index_max: float | None = None
    precipitation_probability_max: float | None = None
    precipitation_sum_mm: float | None = None
    wind_gusts_10m_max: float | None = None


@dataclass(frozen=True)
class AirQualityReading:
    us_aqi: int | None
    european_aqi: int | None
    category: AirQualityCategory


@dataclass(frozen=True)
class ForecastSnapshot:
    current: CurrentConditions
    hourly: tuple[HourlyForecast, ...] = field(default_factory=tuple)
    daily: tuple[DailyForecast, ...] = field(default_factory=tuple)
    air_quality: AirQualityReading | None = None


@dataclass(frozen=True)
class ForecastBundle:
    location: Location
    snapshot: ForecastSnapshot
    fetched_at: datetime

    @property
    def current(self) -> CurrentConditions:
        return self.snapshot.current

    @property
    def daily(self) -> tuple[DailyForecast, ...]:
        return self.snapshot.daily

    @property
    def hourly(self) -> tuple[HourlyForecast, ...]:
        return self.snapshot.hourly


_US_AQI_BANDS = (
    (50, AirQualityCategory.GOOD),
    (100, AirQualityCategory.MODERATE),
    (150, AirQualityCategory.UNHEALTHY_SENSITIVE),
    (200, AirQualityCategory.UNHEALTHY),
    (300, AirQualityCategory.VERY_UNHEALTHY),
    (500, AirQualityCategory.HAZARDOUS),
)

_EUROPEAN_AQI_BANDS = (
    (20, AirQualityCategory.GOOD),
    (40, AirQualityCategory.MODERATE),
    (60, AirQualityCategory.UNHEALTHY_SENSITIVE),
    (80, AirQualityCategory.UNHEALTHY),
    (100, AirQualityCategory.VERY_UNHEALTHY),
)


def _categorize(value: int, bands: tuple, above: AirQualityCategory) -> AirQualityCategory:
    for upper, category in bands:
        if value <= upper:
            return category
    return above


def _sanitize_aqi(value: float | None) -> int | None:
    if value is None or value != value or value < 0:
        return None
    return int(round(value))


def air_quality_from_indices(
    us_aqi: float | None, european_aqi: float | None
) -> AirQualityReading | None:
    """Build a reading from raw indices; US AQI wins when both are present."""
    us = _sanitize_aqi(us_aqi)
    eu = _sanitize_aqi(european_aqi)
    if us is None and eu is None:
        return None
    if us is not None:
        category = _categorize(us, _US_AQI_BANDS, AirQualityCategory.UNKNOWN)
    else:
        category = _categorize(eu, _EUROPEAN_AQI_BANDS, AirQualityCategory.HAZARDOUS)
    return AirQualityReading(us_aqi=us, european_aqi=eu, category=category)

"""Open-Meteo forecast and air-quality client."""

import logging
from datetime import date, datetime

from pydantic import BaseModel, ValidationError

from weatherdash.config.defaults import AIR_QUALITY_URL, DEFAULT_USER_AGENT, FORECAST_URL
from weatherdash.ingest.http_client import get_json
from weatherdash.models.common import FetchErrorKind
from weatherdash.models.errors import FetchError
from weatherdash.models.forecast import (
    AirQualityReading,
    CurrentConditions,
    DailyForecast,
    ForecastSnapshot,
    HourlyForecast,
    air_quality_from_indices,
)
from weatherdash.models.location import Location

logger = logging.getLogger(__name__)

CURRENT_FIELDS = (
    "temperature_2m,relative_humidity_2m,apparent_temperature,dew_point_2m,weather_code,"
    "precipitation,cloud_cover,pressure_msl,visibility,wind_speed_10m,wind_gusts_10m,"
    "wind_direction_10m,is_day"
)
HOURLY_FIELDS = (
    "temperature_2m,weather_code,is_day,relative_humidity_2m,precipitation_probability,"
    "precipitation,wind_speed_10m,wind_gusts_10m,visibility,cloud_cover"
)
DAILY_FIELDS = (
    "weather_code,temperature_2m_max,temperature_2m_min,sunrise,sunset,uv_index_max,"
    "precipitation_probability_max,precipitation_sum,wind_gusts_10m_max"
)
FORECAST_DAYS = 7
FORECAST_HOURS = 48


class _CurrentBlock(BaseModel):
    temperature_2m: float
    relative_humidity_2m: float
    apparent_temperature: float
    dew_point_2m: float
    weather_code: int
    precipitation: float
    cloud_cover: float
    pressure_msl: float
    visibility: float
    wind_speed_10m: float
    wind_gusts_10m: float
    wind_direction_10m: float
    is_day: int


class _HourlyBlock(BaseModel):
    time: list[str] = []
    temperature_2m: list[float | None] = []
    weather_code: list[int | None] = []
    is_day: list[int | None] = []
    relative_humidity_2m: list[float | None] = []
    precipitation_probability: list[float | None] = []
    precipitation: list[float | None] = []
    wind_speed_10m: list[float | None] = []
    wind_gusts_10m: list[float | None] = []
    visibility: list[float | None] = []
    cloud_cover: list[float | None] = []


class _DailyBlock(BaseModel):
    time: list[str] = []
    weather_code: list[int | None] = []
    temperature_2m_max: list[float | None] = []
    temperature_2m_min: list[float | None] = []
    sunrise: list[str | None] = []
    sunset: list[str | None] = []
    uv_index_max: list[float | None] = []
    precipitation_probability_max: list[float | None] = []
    precipitation_sum: list[float | None] = []
    wind_gusts_10m_max: list[float | None] = []


class _ForecastResponse(BaseModel):
    current: _CurrentBlock
    hourly: _HourlyBlock = _HourlyBlock()
    daily: _DailyBlock = _DailyBlock()


class ForecastClient:
    def __init__(
        self,
        base_url: str = FORECAST_URL,
        air_quality_url: str = AIR_QUALITY_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 10.0,
    ):
        self.base_url = base_url
        self.air_quality_url = air_quality_url
        self.user_agent = user_agent
        self.timeout = timeout

    async def fetch(self, location: Location) -> ForecastSnapshot:
        """Fetch current, 48h hourly and 7-day daily forecast for a location.

        Air quality is fetched alongside but is optional: its failure never
        fails the forecast.
        """
        raw = await get_json(
            self.base_url,
            forecast_query(location),
            source="forecast",
            timeout=self.timeout,
            user_agent=self.user_agent,
        )
        try:
            payload = _ForecastResponse.model_validate(raw)
        except ValidationError as e:
            logger.warning("Forecast payload for %s failed validation: %s", location.name, e)
            raise FetchError(FetchErrorKind.MALFORMED, "failed to parse forecast payload") from e

        daily = parse_daily(payload.daily)
        return ForecastSnapshot(
            current=_current_from_payload(payload.current, daily),
            hourly=parse_hourly(payload.hourly),
            daily=daily,
            air_quality=await self.fetch_air_quality(location),
        )

    async def fetch_air_quality(self, location: Location) -> AirQualityReading | None:
        try:
            raw = await get_json(
                self.air_quality_url,
                {
                    "latitude": str(location.latitude),
                    "longitude": str(location.longitude),
                    "current": "us_aqi,european_aqi",
                    "timezone": "auto",
                },
                source="air-quality",
                timeout=self.timeout,
                user_agent=self.user_agent,
            )
        except FetchError as e:
            logger.info("Air quality unavailable for %s: %s", location.name, e)
            return None

        current = raw.get("current") if isinstance(raw, dict) else None
        if not isinstance(current, dict):
            return None
        return air_quality_from_indices(current.get("us_aqi"), current.get("european_aqi"))


def forecast_query(location: Location) -> dict[str, str]:
    return {
        "latitude": str(location.latitude),
        "longitude": str(location.longitude),
        "current": CURRENT_FIELDS,
        "hourly": HOURLY_FIELDS,
        "daily": DAILY_FIELDS,
        "timezone": "auto",
        "forecast_days": str(FORECAST_DAYS),
        "forecast_hours": str(FORECAST_HOURS),
    }


def _current_from_payload(
    current: _CurrentBlock, daily: tuple[DailyForecast, ...]
) -> CurrentConditions:
    today = daily[0] if daily else None
    return CurrentConditions(
        temperature_2m_c=current.temperature_2m,
        relative_humidity_2m=current.relative_humidity_2m,
        apparent_temperature_c=current.apparent_temperature,
        dew_point_2m_c=current.dew_point_2m,
        weather_code=current.weather_code,
        precipitation_mm=current.precipitation,
        cloud_cover=current.cloud_cover,
        pressure_msl_hpa=current.pressure_msl,
        visibility_m=current.visibility,
        wind_speed_10m=current.wind_speed_10m,
        wind_gusts_10m=current.wind_gusts_10m,
        wind_direction_10m=current.wind_direction_10m,
        is_day=current.is_day == 1,
        high_today_c=today.temperature_max_c if today else None,
        low_today_c=today.temperature_min_c if today else None,
    )


def _at(values: list, idx: int):
    return values[idx] if idx < len(values) else None


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def parse_hourly(block: _HourlyBlock) -> tuple[HourlyForecast, ...]:
    out = []
    for idx, raw_time in enumerate(block.time):
        time = _parse_datetime(raw_time)
        if time is None:
            continue
        is_day = _at(block.is_day, idx)
        out.append(
            HourlyForecast(
                time=time,
                temperature_2m_c=_at(block.temperature_2m, idx),
                weather_code=_at(block.weather_code, idx),
                is_day=None if is_day is None else is_day == 1,
                relative_humidity_2m=_at(block.relative_humidity_2m, idx),
                precipitation_probability=_at(block.precipitation_probability, idx),
                precipitation_mm=_at(block.precipitation, idx),
                wind_speed_10m=_at(block.wind_speed_10m, idx),
                wind_gusts_10m=_at(block.wind_gusts_10m, idx),
                visibility_m=_at(block.visibility, idx),
                cloud_cover=_at(block.cloud_cover, idx),
            )
        )
    return tuple(out)


def parse_daily(block: _DailyBlock) -> tuple[DailyForecast, ...]:
    out = []
    for idx, raw_date in enumerate(block.time):
        try:
            day = date.fromisoformat(raw_date)
        except ValueError:
            continue
        out.append(
            DailyForecast(
                date=day,
                weather_code=_at(block.weather_code, idx),
                temperature_max_c=_at(block.temperature_2m_max, idx),
                temperature_min_c=_at(block.temperature_2m_min, idx),
                sunrise=_parse_datetime(_at(block.sunrise, idx)),
                sunset=_parse_datetime(_at(block.sunset, idx)),
                uv_index_max=_at(block.uv_index_max, idx),
                precipitation_probability_max=_at(block.precipitation_probability_max, idx),
                precipitation_sum_mm=_at(block.precipitation_sum, idx),
                wind_gusts_10m_max=_at(block.wind_gusts_10m_max, idx),
            )
        )
    return tuple(out)

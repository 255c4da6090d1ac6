"""Pydantic v2 settings schema with strict validation."""

from pydantic import BaseModel, Field

from weatherdash.config.defaults import (
    AIR_QUALITY_URL,
    DEFAULT_USER_AGENT,
    FORECAST_URL,
    GEOCODE_URL,
    GEOIP_URL,
    REVERSE_GEOCODE_URL,
)
from weatherdash.models.common import Units
from weatherdash.models.location import Location


class RecentLocation(BaseModel):
    model_config = {"extra": "forbid"}

    name: str
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    country: str | None = None
    country_code: str | None = None
    admin1: str | None = None
    timezone: str | None = None

    @classmethod
    def from_location(cls, location: Location) -> "RecentLocation":
        return cls(
            name=location.name,
            latitude=location.latitude,
            longitude=location.longitude,
            country=location.country,
            country_code=location.country_code,
            admin1=location.admin1,
            timezone=location.timezone,
        )

    def to_location(self) -> Location:
        return Location(
            name=self.name,
            latitude=self.latitude,
            longitude=self.longitude,
            country=self.country,
            country_code=self.country_code,
            admin1=self.admin1,
            timezone=self.timezone,
        )

    def same_place(self, other: "RecentLocation") -> bool:
        same_name = self.name.casefold() == other.name.casefold()
        same_country = (self.country or "").casefold() == (other.country or "").casefold()
        close = (
            abs(self.latitude - other.latitude) < 0.05
            and abs(self.longitude - other.longitude) < 0.05
        )
        return same_name and same_country and close


class ResilienceConfig(BaseModel):
    model_config = {"extra": "forbid"}

    backoff_base_secs: float = Field(default=10.0, gt=0.0)
    backoff_max_secs: float = Field(default=300.0, gt=0.0)
    backoff_jitter_ratio: float = Field(default=0.1, ge=0.0, lt=1.0)
    stale_failure_threshold: int = Field(default=1, ge=1)
    offline_failure_threshold: int = Field(default=3, ge=1)
    offline_age_multiplier: float = Field(default=3.0, ge=1.0)


class NetworkConfig(BaseModel):
    model_config = {"extra": "forbid"}

    forecast_url: str = FORECAST_URL
    air_quality_url: str = AIR_QUALITY_URL
    geocode_url: str = GEOCODE_URL
    reverse_geocode_url: str = REVERSE_GEOCODE_URL
    geoip_url: str = GEOIP_URL
    user_agent: str = DEFAULT_USER_AGENT
    forecast_timeout_secs: float = Field(default=10.0, gt=0.0)
    geocode_timeout_secs: float = Field(default=8.0, gt=0.0)
    geolocation_timeout_secs: float = Field(default=5.0, gt=0.0)


class DashboardConfig(BaseModel):
    model_config = {"extra": "forbid"}

    units: Units = Units.CELSIUS
    refresh_interval_secs: int = Field(default=600, ge=10)
    fps: int = Field(default=30, ge=15, le=60)
    country_code: str | None = Field(default=None, min_length=2, max_length=2)
    recent_locations: list[RecentLocation] = []
    resilience: ResilienceConfig = ResilienceConfig()
    network: NetworkConfig = NetworkConfig()

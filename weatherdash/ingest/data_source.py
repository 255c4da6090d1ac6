"""The acquisition boundary used by the orchestrator and one-shot mode."""

from typing import Protocol

from weatherdash.config.schema import NetworkConfig
from weatherdash.ingest.forecast_client import ForecastClient
from weatherdash.ingest.geocode_client import GeocodeClient
from weatherdash.ingest.geoip_client import GeoIpClient
from weatherdash.models.forecast import ForecastSnapshot
from weatherdash.models.location import GeocodeCandidate, Location


class DataSource(Protocol):
    """Async weather and location provider. Failures raise FetchError."""

    async def fetch_forecast(self, location: Location) -> ForecastSnapshot: ...

    async def resolve_geocode(
        self, query: str, country_hint: str | None
    ) -> list[GeocodeCandidate]: ...

    async def resolve_ip_location(self) -> Location: ...


class OpenMeteoDataSource:
    """Open-Meteo forecast and geocoding, ipapi.co geolocation, Nominatim reverse lookup."""

    def __init__(self, network: NetworkConfig | None = None):
        network = network or NetworkConfig()
        self.forecast_client = ForecastClient(
            base_url=network.forecast_url,
            air_quality_url=network.air_quality_url,
            user_agent=network.user_agent,
            timeout=network.forecast_timeout_secs,
        )
        self.geocode_client = GeocodeClient(
            base_url=network.geocode_url,
            reverse_url=network.reverse_geocode_url,
            user_agent=network.user_agent,
            timeout=network.geocode_timeout_secs,
        )
        self.geoip_client = GeoIpClient(
            url=network.geoip_url,
            user_agent=network.user_agent,
            timeout=network.geolocation_timeout_secs,
        )

    async def fetch_forecast(self, location: Location) -> ForecastSnapshot:
        return await self.forecast_client.fetch(location)

    async def resolve_geocode(
        self, query: str, country_hint: str | None
    ) -> list[GeocodeCandidate]:
        return await self.geocode_client.search(query, country_hint)

    async def resolve_ip_location(self) -> Location:
        return await self.geoip_client.locate()

    async def reverse_geocode(self, latitude: float, longitude: float) -> Location | None:
        return await self.geocode_client.reverse(latitude, longitude)

"""Open-Meteo geocoding search and Nominatim reverse geocoding."""

import logging

from pydantic import BaseModel, ValidationError

from weatherdash.config.defaults import DEFAULT_USER_AGENT, GEOCODE_URL, REVERSE_GEOCODE_URL
from weatherdash.ingest.http_client import get_json
from weatherdash.models.common import FetchErrorKind
from weatherdash.models.errors import FetchError
from weatherdash.models.location import GeocodeCandidate, Location

logger = logging.getLogger(__name__)

RESULT_COUNT = 5


class _GeocodeResult(BaseModel):
    name: str
    latitude: float
    longitude: float
    country: str | None = None
    country_code: str | None = None
    admin1: str | None = None
    timezone: str | None = None
    population: int | None = None


class _GeocodeResponse(BaseModel):
    results: list[_GeocodeResult] | None = None


class _ReverseAddress(BaseModel):
    city: str | None = None
    town: str | None = None
    village: str | None = None
    municipality: str | None = None
    county: str | None = None
    state: str | None = None
    country: str | None = None
    country_code: str | None = None


class _ReverseResponse(BaseModel):
    address: _ReverseAddress | None = None


class GeocodeClient:
    def __init__(
        self,
        base_url: str = GEOCODE_URL,
        reverse_url: str = REVERSE_GEOCODE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 8.0,
    ):
        self.base_url = base_url
        self.reverse_url = reverse_url
        self.user_agent = user_agent
        self.timeout = timeout

    async def search(self, query: str, country_hint: str | None = None) -> list[GeocodeCandidate]:
        """Look up a free-text place name.

        Returns candidates in provider order; an empty list means no match.
        """
        params = {"name": query, "count": str(RESULT_COUNT), "language": "en", "format": "json"}
        if country_hint:
            params["countryCode"] = country_hint.upper()

        raw = await get_json(
            self.base_url, params, source="geocode", timeout=self.timeout, user_agent=self.user_agent
        )
        try:
            payload = _GeocodeResponse.model_validate(raw)
        except ValidationError as e:
            raise FetchError(FetchErrorKind.MALFORMED, "failed to parse geocoding payload") from e

        results = payload.results or []
        logger.debug("Geocode %r returned %d results", query, len(results))
        return [
            GeocodeCandidate(
                location=Location(
                    name=r.name,
                    latitude=r.latitude,
                    longitude=r.longitude,
                    country=r.country,
                    country_code=r.country_code,
                    admin1=r.admin1,
                    timezone=r.timezone,
                    population=r.population,
                ),
                provider_index=idx,
            )
            for idx, r in enumerate(results)
        ]

    async def reverse(self, latitude: float, longitude: float) -> Location | None:
        """Name a coordinate pair. None when the provider knows no place there."""
        params = {
            "lat": str(latitude),
            "lon": str(longitude),
            "accept-language": "en",
            "format": "jsonv2",
        }
        raw = await get_json(
            self.reverse_url,
            params,
            source="reverse-geocode",
            timeout=self.timeout,
            user_agent=self.user_agent,
        )
        try:
            payload = _ReverseResponse.model_validate(raw)
        except ValidationError as e:
            raise FetchError(
                FetchErrorKind.MALFORMED, "failed to parse reverse geocoding payload"
            ) from e

        if payload.address is None:
            return None
        return location_from_address(payload.address, latitude, longitude)


def location_from_address(
    address: _ReverseAddress, latitude: float, longitude: float
) -> Location | None:
    names = (
        address.city,
        address.town,
        address.village,
        address.municipality,
        address.county,
        address.state,
    )
    name = next((n.strip() for n in names if n and n.strip()), None)
    if name is None:
        return None
    return Location(
        name=name,
        latitude=latitude,
        longitude=longitude,
        country=address.country,
        country_code=address.country_code.upper() if address.country_code else None,
        admin1=address.state,
    )

"""IP-based location lookup via ipapi.co."""

import logging

from weatherdash.config.defaults import DEFAULT_USER_AGENT, GEOIP_URL
from weatherdash.ingest.http_client import get_json
from weatherdash.models.common import FetchErrorKind
from weatherdash.models.errors import FetchError
from weatherdash.models.location import Location

logger = logging.getLogger(__name__)


class GeoIpClient:
    def __init__(
        self,
        url: str = GEOIP_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 5.0,
    ):
        self.url = url
        self.user_agent = user_agent
        self.timeout = timeout

    async def locate(self) -> Location:
        raw = await get_json(
            self.url, source="geolocation", timeout=self.timeout, user_agent=self.user_agent
        )
        if not isinstance(raw, dict):
            raise FetchError(FetchErrorKind.MALFORMED, "geolocation payload is not an object")
        if raw.get("error"):
            # ipapi.co reports rate limiting as a 200 with an error body
            reason = raw.get("reason") or "unknown error"
            raise FetchError(FetchErrorKind.HTTP_STATUS, f"geolocation refused: {reason}")

        city = (raw.get("city") or "").strip()
        latitude = raw.get("latitude")
        longitude = raw.get("longitude")
        if not city or not isinstance(latitude, (int, float)) or not isinstance(
            longitude, (int, float)
        ):
            raise FetchError(FetchErrorKind.MALFORMED, "geolocation payload missing city or coordinates")

        location = Location(
            name=city,
            latitude=float(latitude),
            longitude=float(longitude),
            country=raw.get("country_name"),
            country_code=raw.get("country_code"),
            admin1=raw.get("region"),
            timezone=raw.get("timezone"),
        )
        logger.info("IP geolocation resolved to %s", location.display_name)
        return location

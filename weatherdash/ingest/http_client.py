"""Shared async GET helper that maps httpx failures onto FetchError kinds."""

import logging
from typing import Any

import httpx

from weatherdash.models.common import FetchErrorKind
from weatherdash.models.errors import FetchError

logger = logging.getLogger(__name__)


async def get_json(
    url: str,
    params: dict[str, str] | list[tuple[str, str]] | None = None,
    *,
    source: str,
    timeout: float,
    user_agent: str,
) -> Any:
    """GET ``url`` and decode JSON, raising FetchError on any failure."""
    headers = {"User-Agent": user_agent, "Accept": "application/json"}
    try:
        async with httpx.AsyncClient(timeout=timeout, headers=headers) as client:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
            return resp.json()
    except httpx.TimeoutException as e:
        logger.warning("%s request timed out after %.1fs: %s", source, timeout, url)
        raise FetchError(FetchErrorKind.TIMEOUT, f"{source} request timed out") from e
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        logger.warning("%s returned HTTP %d: %s", source, status, url)
        raise FetchError(FetchErrorKind.HTTP_STATUS, f"{source} returned HTTP {status}") from e
    except httpx.RequestError as e:
        logger.warning("%s request failed: %s", source, e)
        raise FetchError(FetchErrorKind.CONNECTION, f"{source} request failed: {e}") from e
    except ValueError as e:
        logger.warning("%s returned invalid JSON: %s", source, e)
        raise FetchError(FetchErrorKind.MALFORMED, f"{source} returned invalid JSON") from e

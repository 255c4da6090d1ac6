"""Non-interactive mode: resolve once, fetch once, return the bundle."""

import logging

from weatherdash.app.orchestrator import FetchOrchestrator, forecast, locate, resolve
from weatherdash.config.defaults import DEFAULT_CITY
from weatherdash.models.common import FetchKind
from weatherdash.models.errors import FetchError, GeocodeEmptyError
from weatherdash.models.forecast import ForecastBundle
from weatherdash.models.location import Location, LocationRequest
from weatherdash.resolver.location_resolver import best_candidate

logger = logging.getLogger(__name__)


async def run_once(
    orchestrator: FetchOrchestrator,
    request: LocationRequest,
    recent: Location | None = None,
) -> ForecastBundle:
    """Fetch a single forecast without starting the frame loop.

    Ambiguous queries take the top-ranked candidate. Raises FetchError
    (GeocodeEmptyError when a query has no match) on failure.
    """
    location = await resolve_location(orchestrator, request, recent)
    logger.info("One-shot forecast for %s", location.display_name)
    return await forecast(
        orchestrator.data_source,
        location,
        orchestrator.timeouts[FetchKind.FORECAST],
        orchestrator.clock,
    )


async def resolve_location(
    orchestrator: FetchOrchestrator,
    request: LocationRequest,
    recent: Location | None = None,
) -> Location:
    source = orchestrator.data_source
    timeouts = orchestrator.timeouts

    if request.has_coordinates:
        return await _label_coordinates(orchestrator, request.latitude, request.longitude)
    if request.query:
        return await _geocode(orchestrator, request.query, request.country_code)
    if recent is not None:
        return recent

    try:
        return await locate(source, timeouts[FetchKind.GEOLOCATION])
    except FetchError as e:
        logger.warning("Geolocation failed (%s), falling back to %s", e.message, DEFAULT_CITY)
        return await _geocode(orchestrator, DEFAULT_CITY, request.country_code)


async def _geocode(orchestrator: FetchOrchestrator, query: str, country_hint: str | None) -> Location:
    resolution = await resolve(
        orchestrator.data_source, query, country_hint, orchestrator.timeouts[FetchKind.GEOCODE]
    )
    location = best_candidate(resolution)
    if location is None:
        raise GeocodeEmptyError(query)
    return location


async def _label_coordinates(
    orchestrator: FetchOrchestrator, latitude: float, longitude: float
) -> Location:
    """Name a coordinate pair when the source supports reverse lookup."""
    fallback = Location.from_coords(latitude, longitude)
    reverse = getattr(orchestrator.data_source, "reverse_geocode", None)
    if reverse is None:
        return fallback
    try:
        named = await reverse(latitude, longitude)
    except FetchError as e:
        logger.info("Reverse geocoding unavailable: %s", e.message)
        return fallback
    return named or fallback

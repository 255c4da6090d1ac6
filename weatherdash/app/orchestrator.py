"""Concurrent execution of fetch commands against a DataSource.

Each command runs as its own asyncio task. The task posts ``FetchStarted``
and then exactly one completion event to the inbound queue, unless a newer
generation of the same kind was issued meanwhile, in which case the result
is dropped on arrival.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from weatherdash.config.schema import NetworkConfig
from weatherdash.ingest.data_source import DataSource
from weatherdash.models.common import FetchErrorKind, FetchKind, Generation, utc_now
from weatherdash.models.errors import FetchError
from weatherdash.models.events import (
    AppEvent,
    DetectLocation,
    FetchCommand,
    FetchFailed,
    FetchForecast,
    FetchStarted,
    FetchSucceeded,
    GeocodeResolved,
    ResolveGeocode,
)
from weatherdash.models.forecast import ForecastBundle
from weatherdash.models.location import GeocodeResolution, Location, Selected
from weatherdash.resolver.location_resolver import resolve as rank_and_resolve

logger = logging.getLogger(__name__)

# Added on top of the HTTP client timeout so the client's own timeout fires first.
TIMEOUT_GRACE_SECS = 2.0


def fetch_timeouts(network: NetworkConfig) -> dict[FetchKind, float]:
    return {
        FetchKind.GEOLOCATION: network.geolocation_timeout_secs + TIMEOUT_GRACE_SECS,
        FetchKind.GEOCODE: network.geocode_timeout_secs + TIMEOUT_GRACE_SECS,
        # forecast and air quality are fetched back to back
        FetchKind.FORECAST: 2 * network.forecast_timeout_secs + TIMEOUT_GRACE_SECS,
    }


async def _bounded(awaitable, timeout: float, what: str):
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except TimeoutError as e:
        logger.warning("%s did not finish within %.1fs", what, timeout)
        raise FetchError(FetchErrorKind.TIMEOUT, f"{what} timed out after {timeout:.0f}s") from e


async def locate(source: DataSource, timeout: float) -> Location:
    """Detect the user's location from their IP address."""
    return await _bounded(source.resolve_ip_location(), timeout, "geolocation")


async def resolve(
    source: DataSource, query: str, country_hint: str | None, timeout: float
) -> GeocodeResolution:
    """Geocode ``query`` and rank the candidates."""
    candidates = await _bounded(source.resolve_geocode(query, country_hint), timeout, "geocode")
    return rank_and_resolve(query, candidates, country_hint)


async def forecast(
    source: DataSource,
    location: Location,
    timeout: float,
    clock: Callable[[], datetime] = utc_now,
) -> ForecastBundle:
    """Fetch a forecast and stamp it with the completion time."""
    snapshot = await _bounded(source.fetch_forecast(location), timeout, "forecast")
    return ForecastBundle(location=location, snapshot=snapshot, fetched_at=clock())


def command_kind(command: FetchCommand) -> FetchKind:
    match command:
        case DetectLocation():
            return FetchKind.GEOLOCATION
        case ResolveGeocode():
            return FetchKind.GEOCODE
        case FetchForecast():
            return FetchKind.FORECAST
    raise TypeError(f"Not a fetch command: {command!r}")


class FetchOrchestrator:
    def __init__(
        self,
        data_source: DataSource,
        queue: "asyncio.Queue[AppEvent] | None" = None,
        network: NetworkConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.data_source = data_source
        self.queue = queue if queue is not None else asyncio.Queue()
        self.timeouts = fetch_timeouts(network or NetworkConfig())
        self.clock = clock
        self._live: dict[FetchKind, tuple[Generation, asyncio.Task]] = {}
        self._tasks: set[asyncio.Task] = set()
        self._latest: dict[FetchKind, Generation] = {}

    def dispatch(self, command: FetchCommand) -> asyncio.Task | None:
        """Start a task for ``command``. Returns None if it was ignored."""
        kind = command_kind(command)
        generation = command.generation

        live = self._live.get(kind)
        if live is not None and live[0] == generation and not live[1].done():
            logger.debug("Ignoring duplicate %s fetch for generation %d", kind, generation)
            return None
        if generation < self._latest.get(kind, -1):
            logger.debug("Ignoring outdated %s fetch for generation %d", kind, generation)
            return None

        self._latest[kind] = generation
        task = asyncio.create_task(self._run(kind, command), name=f"fetch-{kind}-{generation}")
        self._live[kind] = (generation, task)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def is_current(self, kind: FetchKind, generation: Generation) -> bool:
        return generation >= self._latest.get(kind, -1)

    async def _run(self, kind: FetchKind, command: FetchCommand) -> None:
        generation = command.generation
        await self.queue.put(FetchStarted(kind=kind, generation=generation))
        try:
            event = await self._execute(command)
        except FetchError as e:
            event = FetchFailed(
                kind=kind,
                error_kind=e.kind,
                message=e.message,
                generation=generation,
                at=self.clock(),
            )
        except Exception as e:
            logger.exception("Unexpected error during %s fetch", kind)
            event = FetchFailed(
                kind=kind,
                error_kind=FetchErrorKind.MALFORMED,
                message=str(e) or type(e).__name__,
                generation=generation,
                at=self.clock(),
            )

        if not self.is_current(kind, generation):
            logger.debug("Dropping %s result from superseded generation %d", kind, generation)
            return
        await self.queue.put(event)

    async def _execute(self, command: FetchCommand) -> AppEvent:
        match command:
            case DetectLocation(generation=generation):
                location = await locate(self.data_source, self.timeouts[FetchKind.GEOLOCATION])
                return GeocodeResolved(
                    resolution=Selected(location=location),
                    generation=generation,
                    kind=FetchKind.GEOLOCATION,
                )
            case ResolveGeocode(query=query, country_hint=hint, generation=generation):
                resolution = await resolve(
                    self.data_source, query, hint, self.timeouts[FetchKind.GEOCODE]
                )
                return GeocodeResolved(resolution=resolution, generation=generation)
            case FetchForecast(location=location, generation=generation):
                bundle = await forecast(
                    self.data_source, location, self.timeouts[FetchKind.FORECAST], self.clock
                )
                return FetchSucceeded(bundle=bundle, generation=generation)
        raise TypeError(f"Not a fetch command: {command!r}")

    async def shutdown(self) -> None:
        """Cancel every outstanding fetch task and wait for them to finish."""
        tasks = [task for task in self._tasks if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._live.clear()


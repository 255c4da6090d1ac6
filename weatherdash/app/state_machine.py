"""Pure dashboard state machine.

``transition`` never performs I/O. Time comes from event timestamps and
backoff jitter from the context's seeded RNG, so a recorded event sequence
always replays to the same model and commands.

Every fetch chain (bootstrap, refresh, search, selection) runs under a fresh
generation number. Completion events from any other generation are dropped.
"""

import logging
import random
from dataclasses import dataclass, field, replace

from weatherdash.config.defaults import DEFAULT_CITY
from weatherdash.config.loader import push_recent_location
from weatherdash.models.common import FetchKind, Generation
from weatherdash.models.events import (
    AppEvent,
    Bootstrap,
    Command,
    DetectLocation,
    FetchFailed,
    FetchForecast,
    FetchStarted,
    FetchSucceeded,
    GeocodeResolved,
    Input,
    PersistSettings,
    QuitEvent,
    QuitRequested,
    Refresh,
    RenderFrame,
    ResolveGeocode,
    ScheduleRetry,
    SearchCity,
    SelectCandidate,
    SetUnits,
    Terminate,
    TickFrame,
    TickRefresh,
)
from weatherdash.models.location import Location, NeedsDisambiguation, NotFound, Selected
from weatherdash.models.state import (
    Error,
    Loading,
    Model,
    Quit,
    Ready,
    RetryState,
    SelectingLocation,
)
from weatherdash.resilience.backoff import record_failure, record_success, retry_eligible
from weatherdash.resolver.location_resolver import MAX_CHOICES, select_candidate

logger = logging.getLogger(__name__)

Outcome = tuple[Model, list[Command]]


@dataclass
class TransitionContext:
    rng: random.Random = field(default_factory=random.Random)


def transition(model: Model, event: AppEvent, context: TransitionContext) -> Outcome:
    """Apply one event. Returns the next model and the commands to execute."""
    if isinstance(model.state, Quit):
        return model, []

    match event:
        case Bootstrap():
            if isinstance(model.state, Loading) and model.generation == 0:
                return _bootstrap(model)
            return model, []
        case TickFrame(at=at):
            return model, [RenderFrame(at=at)]
        case TickRefresh():
            return _on_tick_refresh(model, event)
        case Input():
            return _on_input(model, event)
        case FetchStarted(kind=kind, generation=generation):
            if generation != model.generation:
                return model, []
            return replace(model, in_flight=model.in_flight | {kind}), []
        case GeocodeResolved(generation=generation):
            if generation != model.generation:
                logger.debug("Discarding geocode result from generation %d", generation)
                return model, []
            return _on_geocode_resolved(model, event)
        case FetchSucceeded(generation=generation):
            if generation != model.generation:
                logger.debug("Discarding forecast from generation %d", generation)
                return model, []
            return _on_fetch_succeeded(model, event)
        case FetchFailed(generation=generation):
            if generation != model.generation:
                logger.debug("Discarding failure from generation %d", generation)
                return model, []
            return _on_fetch_failed(model, event, context)
        case QuitEvent():
            return _quit(model)
    return model, []


def _suspended(model: Model) -> Ready | None:
    """The Ready screen the user would return to, if any."""
    match model.state:
        case Ready():
            return model.state
        case Loading(previous=previous) | SelectingLocation(previous=previous):
            return previous
        case _:
            return None


def _country_hint(model: Model) -> str | None:
    return model.request.country_code or model.settings.country_code


def _quit(model: Model) -> Outcome:
    logger.info("Quit requested")
    return replace(model, state=Quit(), in_flight=frozenset()), [Terminate()]


def _fetch_forecast(model: Model, location: Location, message: str | None = None) -> Outcome:
    """Start a new generation targeting ``location``.

    Ready stays Ready while refreshing; any other screen becomes Loading.
    A different location starts a fresh failure streak.
    """
    generation = model.generation + 1
    state = model.state
    if not isinstance(state, Ready):
        state = Loading(
            message=message or f"Fetching forecast for {location.display_name}...",
            previous=_suspended(model),
        )
    model = replace(
        model,
        state=state,
        location=location,
        generation=generation,
        in_flight=frozenset({FetchKind.FORECAST}),
        retry=model.retry if location == model.location else RetryState(),
    )
    return model, [FetchForecast(location=location, generation=generation)]


def _resolve_query(model: Model, query: str, message: str) -> Outcome:
    generation = model.generation + 1
    model = replace(
        model,
        state=Loading(message=message, previous=_suspended(model)),
        location=None,
        generation=generation,
        in_flight=frozenset({FetchKind.GEOCODE}),
        retry=RetryState(),
    )
    return model, [
        ResolveGeocode(query=query, country_hint=_country_hint(model), generation=generation)
    ]


def _bootstrap(model: Model) -> Outcome:
    """Pick the first location source: coordinates, query, recent, then IP."""
    request = model.request
    if request.has_coordinates:
        location = Location.from_coords(request.latitude, request.longitude)
        return _fetch_forecast(model, location)
    if request.query:
        return _resolve_query(model, request.query, f"Resolving '{request.query}'...")
    if model.settings.recent_locations:
        location = model.settings.recent_locations[0].to_location()
        logger.info("Starting with most recent location %s", location.display_name)
        return _fetch_forecast(model, location)

    generation = model.generation + 1
    model = replace(
        model,
        state=Loading(message="Detecting location..."),
        location=None,
        generation=generation,
        in_flight=frozenset({FetchKind.GEOLOCATION}),
    )
    return model, [DetectLocation(generation=generation)]


def _on_tick_refresh(model: Model, event: TickRefresh) -> Outcome:
    if model.in_flight:
        return model, []
    if event.generation is not None and event.generation != model.generation:
        logger.debug("Ignoring retry timer from generation %d", event.generation)
        return model, []
    match model.state:
        case Ready(retry=retry, location=location):
            if not retry_eligible(retry, event.at):
                return model, []
            return _fetch_forecast(model, location)
        case Loading():
            if model.location is None or not retry_eligible(model.retry, event.at):
                return model, []
            return _fetch_forecast(model, model.location, model.state.message)
        case _:
            return model, []


def _on_input(model: Model, event: Input) -> Outcome:
    match event.action:
        case QuitRequested():
            return _quit(model)
        case Refresh():
            return _on_refresh(model)
        case SelectCandidate(ordinal=ordinal):
            if not isinstance(model.state, SelectingLocation):
                return model, []
            location = select_candidate(model.state.candidates, ordinal)
            if location is None:
                logger.debug("Ignoring out-of-range selection %d", ordinal)
                return model, []
            logger.info("Selected candidate %d: %s", ordinal, location.display_name)
            return _fetch_forecast(model, location)
        case SearchCity(query=query):
            query = query.strip()
            if not query:
                return model, []
            return _resolve_query(model, query, f"Searching for '{query}'...")
        case SetUnits(units=units):
            if units == model.settings.units:
                return model, []
            settings = model.settings.model_copy(update={"units": units})
            return replace(model, settings=settings), [PersistSettings(settings=settings)]
    return model, []


def _on_refresh(model: Model) -> Outcome:
    """Manual refresh ignores the backoff window but keeps the failure count."""
    match model.state:
        case Ready(location=location):
            model = replace(model, state=replace(model.state, status_message="Refreshing..."))
            return _fetch_forecast(model, location)
        case Loading():
            if model.location is not None:
                return _fetch_forecast(model, model.location)
            if model.in_flight:
                return model, []
            return _bootstrap(model)
        case Error():
            return _bootstrap(replace(model, state=Loading(), location=None))
        case _:
            return model, []


def _on_geocode_resolved(model: Model, event: GeocodeResolved) -> Outcome:
    model = replace(model, in_flight=model.in_flight - {event.kind})
    match event.resolution:
        case Selected(location=location):
            generation = model.generation
            state = Loading(
                message=f"Fetching forecast for {location.display_name}...",
                previous=_suspended(model),
            )
            model = replace(
                model,
                state=state,
                location=location,
                in_flight=model.in_flight | {FetchKind.FORECAST},
            )
            return model, [FetchForecast(location=location, generation=generation)]
        case NeedsDisambiguation(candidates=candidates):
            state = SelectingLocation(
                candidates=tuple(candidates[:MAX_CHOICES]), previous=_suspended(model)
            )
            return replace(model, state=state, location=None), []
        case NotFound(query=query):
            return _abandon_resolution(model, f"No location found for '{query}'")
    return model, []


def _abandon_resolution(model: Model, message: str) -> Outcome:
    """Return to the suspended screen, or fail if there is none."""
    previous = _suspended(model)
    if previous is not None:
        logger.info("%s; keeping %s", message, previous.location.display_name)
        state = replace(previous, status_message=message)
        return replace(model, state=state, location=previous.location), []
    logger.error("%s; nothing to fall back on", message)
    return replace(model, state=Error(message=message), location=None), []


def _on_fetch_succeeded(model: Model, event: FetchSucceeded) -> Outcome:
    bundle = event.bundle
    settings = push_recent_location(model.settings, bundle.location)
    model = replace(
        model,
        state=Ready(bundle=bundle, retry=record_success(), location=bundle.location),
        settings=settings,
        location=bundle.location,
        in_flight=model.in_flight - {FetchKind.FORECAST},
        retry=record_success(),
    )
    logger.info("Forecast updated for %s", bundle.location.display_name)
    return model, [PersistSettings(settings=settings)]


def _on_fetch_failed(model: Model, event: FetchFailed, context: TransitionContext) -> Outcome:
    model = replace(model, in_flight=model.in_flight - {event.kind})
    policy = model.settings.resilience

    match event.kind:
        case FetchKind.GEOLOCATION:
            if not isinstance(model.state, Loading):
                return model, []
            logger.warning("Geolocation failed (%s), falling back to %s", event.message, DEFAULT_CITY)
            model = replace(
                model,
                state=Loading(message=f"Location detection failed, trying {DEFAULT_CITY}..."),
                in_flight=model.in_flight | {FetchKind.GEOCODE},
            )
            return model, [
                ResolveGeocode(
                    query=DEFAULT_CITY,
                    country_hint=_country_hint(model),
                    generation=model.generation,
                )
            ]
        case FetchKind.GEOCODE:
            return _abandon_resolution(model, f"Location search failed: {event.message}")
        case FetchKind.FORECAST:
            match model.state:
                case Ready(retry=retry):
                    retry = record_failure(retry, event.at, event.error_kind, policy, context.rng)
                    state = replace(
                        model.state,
                        retry=retry,
                        status_message=f"Refresh failed: {event.message}",
                    )
                    return replace(model, state=state), [_schedule(retry, model.generation)]
                case Loading(previous=previous):
                    if model.location is None:
                        return replace(model, state=Error(message=event.message)), []
                    retry = record_failure(
                        model.retry, event.at, event.error_kind, policy, context.rng
                    )
                    state = Loading(
                        message=(
                            f"Forecast failed ({event.message}), "
                            f"retrying in {retry.last_delay_secs:.0f}s..."
                        ),
                        previous=previous,
                    )
                    model = replace(model, state=state, retry=retry)
                    return model, [_schedule(retry, model.generation)]
    return model, []


def _schedule(retry: RetryState, generation: Generation) -> ScheduleRetry:
    return ScheduleRetry(delay_secs=retry.last_delay_secs, generation=generation)

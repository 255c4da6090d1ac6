"""Events consumed by the state machine and commands it emits."""

from dataclasses import dataclass
from datetime import datetime

from weatherdash.config.schema import DashboardConfig
from weatherdash.models.common import FetchErrorKind, FetchKind, Generation, Units
from weatherdash.models.forecast import ForecastBundle
from weatherdash.models.location import GeocodeResolution, Location

# --- Input actions (produced by the input collaborator) ---


@dataclass(frozen=True)
class Refresh:
    pass


@dataclass(frozen=True)
class SelectCandidate:
    ordinal: int  # 1-based, as shown on screen


@dataclass(frozen=True)
class SearchCity:
    query: str


@dataclass(frozen=True)
class SetUnits:
    units: Units


@dataclass(frozen=True)
class QuitRequested:
    pass


InputAction = Refresh | SelectCandidate | SearchCity | SetUnits | QuitRequested

# --- Events ---


@dataclass(frozen=True)
class Bootstrap:
    at: datetime


@dataclass(frozen=True)
class TickFrame:
    at: datetime


@dataclass(frozen=True)
class TickRefresh:
    at: datetime
    # Set by retry timers to the generation that failed; None for the periodic timer.
    generation: Generation | None = None


@dataclass(frozen=True)
class Input:
    action: InputAction
    at: datetime


@dataclass(frozen=True)
class FetchStarted:
    kind: FetchKind
    generation: Generation


@dataclass(frozen=True)
class GeocodeResolved:
    resolution: GeocodeResolution
    generation: Generation
    kind: FetchKind = FetchKind.GEOCODE


@dataclass(frozen=True)
class FetchSucceeded:
    bundle: ForecastBundle
    generation: Generation


@dataclass(frozen=True)
class FetchFailed:
    kind: FetchKind
    error_kind: FetchErrorKind
    message: str
    generation: Generation
    at: datetime


@dataclass(frozen=True)
class QuitEvent:
    pass


AppEvent = (
    Bootstrap
    | TickFrame
    | TickRefresh
    | Input
    | FetchStarted
    | GeocodeResolved
    | FetchSucceeded
    | FetchFailed
    | QuitEvent
)

# --- Commands ---


@dataclass(frozen=True)
class DetectLocation:
    generation: Generation


@dataclass(frozen=True)
class ResolveGeocode:
    query: str
    country_hint: str | None
    generation: Generation


@dataclass(frozen=True)
class FetchForecast:
    location: Location
    generation: Generation


@dataclass(frozen=True)
class ScheduleRetry:
    delay_secs: float
    generation: Generation


@dataclass(frozen=True)
class PersistSettings:
    settings: DashboardConfig


@dataclass(frozen=True)
class RenderFrame:
    at: datetime


@dataclass(frozen=True)
class Terminate:
    pass


FetchCommand = DetectLocation | ResolveGeocode | FetchForecast

Command = FetchCommand | ScheduleRetry | PersistSettings | RenderFrame | Terminate

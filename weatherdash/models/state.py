"""Application state: the closed set of dashboard screens plus runtime bookkeeping."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from weatherdash.config.schema import DashboardConfig
from weatherdash.models.common import FetchErrorKind, FetchKind, Generation
from weatherdash.models.forecast import ForecastBundle
from weatherdash.models.location import GeocodeCandidate, Location, LocationRequest


@dataclass(frozen=True)
class RetryState:
    attempts: int = 0
    next_eligible_at: datetime | None = None
    last_error: FetchErrorKind | None = None
    last_delay_secs: float = 0.0


@dataclass(frozen=True)
class Fresh:
    pass


@dataclass(frozen=True)
class Stale:
    age: timedelta | None


@dataclass(frozen=True)
class Offline:
    failure_count: int


FreshnessStatus = Fresh | Stale | Offline


@dataclass(frozen=True)
class Ready:
    bundle: ForecastBundle
    retry: RetryState
    location: Location
    status_message: str | None = None


@dataclass(frozen=True)
class Loading:
    message: str = "Initializing..."
    # Suspended screen restored if the new fetch fails.
    previous: Ready | None = None


@dataclass(frozen=True)
class SelectingLocation:
    candidates: tuple[GeocodeCandidate, ...]
    previous: Ready | None = None


@dataclass(frozen=True)
class Error:
    message: str


@dataclass(frozen=True)
class Quit:
    pass


AppState = Loading | SelectingLocation | Ready | Error | Quit


@dataclass(frozen=True)
class Model:
    """Everything the state machine owns.

    ``location`` is the committed location: the one the current or next
    forecast fetch targets. It is always None while selecting.
    ``retry`` tracks failures while no bundle exists yet; once Ready, the
    screen carries its own retry state.
    """

    state: AppState
    settings: DashboardConfig
    request: LocationRequest = field(default_factory=LocationRequest)
    location: Location | None = None
    generation: Generation = 0
    in_flight: frozenset[FetchKind] = frozenset()
    retry: RetryState = field(default_factory=RetryState)

    @property
    def bundle(self) -> ForecastBundle | None:
        """Last-known-good bundle, whichever screen is showing."""
        match self.state:
            case Ready(bundle=bundle):
                return bundle
            case Loading(previous=Ready(bundle=bundle)) | SelectingLocation(
                previous=Ready(bundle=bundle)
            ):
                return bundle
            case _:
                return None

    @property
    def active_retry(self) -> RetryState:
        """Failure streak behind the data on screen.

        While a suspended Ready screen is shown, its own streak counts until
        the pending location starts failing.
        """
        match self.state:
            case Ready(retry=retry):
                return retry
            case Loading(previous=Ready(retry=retry)) if not self.retry.attempts:
                return retry
            case _:
                return self.retry


def initial_model(settings: DashboardConfig, request: LocationRequest) -> Model:
    return Model(state=Loading(), settings=settings, request=request)

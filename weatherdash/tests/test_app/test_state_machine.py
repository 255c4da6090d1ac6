"""Tests for the pure dashboard state machine."""

from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest

from weatherdash.app.state_machine import transition
from weatherdash.config.loader import push_recent_location
from weatherdash.config.schema import DashboardConfig
from weatherdash.models.common import FetchErrorKind, FetchKind, Units
from weatherdash.models.events import (
    Bootstrap,
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
from weatherdash.models.location import (
    Location,
    LocationRequest,
    NeedsDisambiguation,
    NotFound,
    Selected,
)
from weatherdash.models.state import (
    Error,
    Fresh,
    Loading,
    Model,
    Offline,
    Quit,
    Ready,
    RetryState,
    SelectingLocation,
    Stale,
    initial_model,
)
from weatherdash.resilience.freshness import model_freshness
from weatherdash.resolver.location_resolver import resolve

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=UTC)


def _failed(generation: int, at: datetime = NOW, kind: FetchKind = FetchKind.FORECAST,
            error_kind: FetchErrorKind = FetchErrorKind.TIMEOUT) -> FetchFailed:
    return FetchFailed(kind=kind, error_kind=error_kind, message="upstream down",
                       generation=generation, at=at)


@pytest.fixture
def ready_model(settings, stockholm, bundle_factory) -> Model:
    bundle = bundle_factory(stockholm, fetched_at=NOW)
    return Model(
        state=Ready(bundle=bundle, retry=RetryState(), location=stockholm),
        settings=settings,
        location=stockholm,
        generation=1,
    )


class TestBootstrap:
    def test_coordinates_fetch_forecast(self, settings, context):
        model = initial_model(settings, LocationRequest(latitude=59.33, longitude=18.07))
        model, commands = transition(model, Bootstrap(at=NOW), context)
        assert isinstance(model.state, Loading)
        assert model.generation == 1
        assert model.in_flight == {FetchKind.FORECAST}
        assert commands == [FetchForecast(location=Location.from_coords(59.33, 18.07), generation=1)]

    def test_query_geocodes_with_country_hint(self, settings, context):
        model = initial_model(settings, LocationRequest(query="Paris", country_code="FR"))
        model, commands = transition(model, Bootstrap(at=NOW), context)
        assert commands == [ResolveGeocode(query="Paris", country_hint="FR", generation=1)]
        assert model.in_flight == {FetchKind.GEOCODE}

    def test_settings_country_hint(self, context):
        model = initial_model(DashboardConfig(country_code="US"), LocationRequest(query="Paris"))
        _, commands = transition(model, Bootstrap(at=NOW), context)
        assert commands[0].country_hint == "US"

    def test_coordinates_win_over_query(self, settings, context):
        request = LocationRequest(query="Paris", latitude=1.0, longitude=2.0)
        _, commands = transition(initial_model(settings, request), Bootstrap(at=NOW), context)
        assert isinstance(commands[0], FetchForecast)

    def test_recent_location_used(self, settings, oslo, context):
        settings = push_recent_location(settings, oslo)
        model, commands = transition(initial_model(settings, LocationRequest()), Bootstrap(at=NOW), context)
        assert len(commands) == 1
        assert isinstance(commands[0], FetchForecast)
        assert commands[0].location.name == "Oslo"
        assert model.location.name == "Oslo"

    def test_detects_location_otherwise(self, settings, context):
        model, commands = transition(initial_model(settings, LocationRequest()), Bootstrap(at=NOW), context)
        assert commands == [DetectLocation(generation=1)]
        assert model.in_flight == {FetchKind.GEOLOCATION}

    def test_second_bootstrap_ignored(self, settings, context):
        model, _ = transition(initial_model(settings, LocationRequest()), Bootstrap(at=NOW), context)
        again, commands = transition(model, Bootstrap(at=NOW), context)
        assert again == model
        assert commands == []


class TestBootstrapResolution:
    def test_geolocation_success_fetches(self, settings, stockholm, context):
        model, _ = transition(initial_model(settings, LocationRequest()), Bootstrap(at=NOW), context)
        event = GeocodeResolved(resolution=Selected(location=stockholm), generation=1,
                                kind=FetchKind.GEOLOCATION)
        model, commands = transition(model, event, context)
        assert commands == [FetchForecast(location=stockholm, generation=1)]
        assert model.in_flight == {FetchKind.FORECAST}
        assert model.location == stockholm

    def test_geolocation_failure_falls_back_to_default_city(self, settings, context):
        model, _ = transition(initial_model(settings, LocationRequest()), Bootstrap(at=NOW), context)
        model, commands = transition(model, _failed(1, kind=FetchKind.GEOLOCATION), context)
        assert commands == [ResolveGeocode(query="Stockholm", country_hint=None, generation=1)]
        assert isinstance(model.state, Loading)
        assert model.in_flight == {FetchKind.GEOCODE}

    def test_single_match_then_success_is_ready(self, settings, stockholm, bundle_factory, context):
        model = initial_model(settings, LocationRequest(query="Stockholm"))
        model, _ = transition(model, Bootstrap(at=NOW), context)
        model, commands = transition(
            model, GeocodeResolved(resolution=Selected(location=stockholm), generation=1), context
        )
        assert commands == [FetchForecast(location=stockholm, generation=1)]

        bundle = bundle_factory(stockholm)
        model, commands = transition(model, FetchSucceeded(bundle=bundle, generation=1), context)
        assert isinstance(model.state, Ready)
        assert model.state.bundle is bundle
        assert model.in_flight == frozenset()
        assert len(commands) == 1
        assert isinstance(commands[0], PersistSettings)
        assert commands[0].settings.recent_locations[0].name == "Stockholm"
        assert model.settings.recent_locations[0].name == "Stockholm"

    def test_not_found_without_cache_is_error(self, settings, context):
        model = initial_model(settings, LocationRequest(query="Atlantis"))
        model, _ = transition(model, Bootstrap(at=NOW), context)
        model, commands = transition(
            model, GeocodeResolved(resolution=NotFound(query="Atlantis"), generation=1), context
        )
        assert isinstance(model.state, Error)
        assert "Atlantis" in model.state.message
        assert commands == []

    def test_geocode_failure_without_cache_is_error(self, settings, context):
        model = initial_model(settings, LocationRequest(query="Oslo"))
        model, _ = transition(model, Bootstrap(at=NOW), context)
        model, _ = transition(model, _failed(1, kind=FetchKind.GEOCODE), context)
        assert isinstance(model.state, Error)

    def test_refresh_recovers_from_error(self, settings, context):
        model = initial_model(settings, LocationRequest(query="Oslo"))
        model, _ = transition(model, Bootstrap(at=NOW), context)
        model, _ = transition(model, _failed(1, kind=FetchKind.GEOCODE), context)
        model, commands = transition(model, Input(action=Refresh(), at=NOW), context)
        assert isinstance(model.state, Loading)
        assert commands == [ResolveGeocode(query="Oslo", country_hint=None, generation=2)]

    def test_forecast_failure_keeps_loading_and_retries(self, settings, context):
        model = initial_model(settings, LocationRequest(latitude=1.0, longitude=2.0))
        model, _ = transition(model, Bootstrap(at=NOW), context)
        model, commands = transition(model, _failed(1), context)
        assert isinstance(model.state, Loading)
        assert model.retry.attempts == 1
        assert model.location is not None
        assert len(commands) == 1
        assert isinstance(commands[0], ScheduleRetry)
        assert 10.0 <= commands[0].delay_secs < 11.0

    def test_loading_retry_tick_refetches(self, settings, context):
        model = initial_model(settings, LocationRequest(latitude=1.0, longitude=2.0))
        model, _ = transition(model, Bootstrap(at=NOW), context)
        model, _ = transition(model, _failed(1), context)

        _, commands = transition(model, TickRefresh(at=NOW + timedelta(seconds=1)), context)
        assert commands == []

        later = model.retry.next_eligible_at
        model, commands = transition(model, TickRefresh(at=later), context)
        assert commands == [FetchForecast(location=Location.from_coords(1.0, 2.0), generation=2)]


class TestDisambiguation:
    def test_springfield_select_second(self, settings, springfield_candidates, context):
        model = initial_model(settings, LocationRequest(query="Springfield"))
        model, _ = transition(model, Bootstrap(at=NOW), context)
        resolution = resolve("Springfield", springfield_candidates)
        model, commands = transition(
            model, GeocodeResolved(resolution=resolution, generation=1), context
        )
        assert commands == []
        assert isinstance(model.state, SelectingLocation)
        assert len(model.state.candidates) == 5
        assert [c.location.admin1 for c in model.state.candidates] == [
            "Missouri", "Massachusetts", "Illinois", "Oregon", "Ohio",
        ]
        assert model.location is None

        model, commands = transition(model, Input(action=SelectCandidate(ordinal=2), at=NOW), context)
        assert isinstance(model.state, Loading)
        assert len(commands) == 1
        assert isinstance(commands[0], FetchForecast)
        assert commands[0].location.admin1 == "Massachusetts"
        assert model.location.admin1 == "Massachusetts"
        assert model.in_flight == {FetchKind.FORECAST}

    def test_choices_capped_at_five(self, settings, springfield_candidates, context):
        extra = [replace(c, provider_index=c.provider_index + 5) for c in springfield_candidates]
        model = initial_model(settings, LocationRequest(query="Springfield"))
        model, _ = transition(model, Bootstrap(at=NOW), context)
        resolution = NeedsDisambiguation(candidates=tuple(springfield_candidates + extra))
        model, _ = transition(model, GeocodeResolved(resolution=resolution, generation=1), context)
        assert len(model.state.candidates) == 5

    def test_out_of_range_selection_ignored(self, settings, springfield_candidates, context):
        model = Model(
            state=SelectingLocation(candidates=tuple(springfield_candidates)),
            settings=settings,
            generation=1,
        )
        after, commands = transition(model, Input(action=SelectCandidate(ordinal=9), at=NOW), context)
        assert after == model
        assert commands == []

    def test_selection_outside_selecting_ignored(self, ready_model, context):
        after, commands = transition(ready_model, Input(action=SelectCandidate(ordinal=1), at=NOW), context)
        assert after == ready_model
        assert commands == []


class TestReadyRefreshCycle:
    def test_success_replaces_bundle(self, ready_model, stockholm, bundle_factory, context):
        model, _ = transition(ready_model, TickRefresh(at=NOW + timedelta(minutes=10)), context)
        newer = bundle_factory(stockholm, fetched_at=NOW + timedelta(minutes=10), temperature_c=9.0)
        model, commands = transition(model, FetchSucceeded(bundle=newer, generation=2), context)
        assert model.state.bundle is newer
        assert isinstance(commands[0], PersistSettings)

    def test_failure_keeps_bundle_and_schedules_retry(self, ready_model, context):
        bundle = ready_model.state.bundle
        model, commands = transition(ready_model, _failed(1), context)
        assert isinstance(model.state, Ready)
        assert model.state.bundle is bundle
        assert model.state.retry.attempts == 1
        assert "upstream down" in model.state.status_message
        assert commands == [
            ScheduleRetry(delay_secs=model.state.retry.last_delay_secs, generation=1)
        ]

    def test_three_failures_degrade_to_offline(self, ready_model, context):
        model = ready_model
        assert model_freshness(model, NOW) == Fresh()

        statuses, delays = [], []
        for minute in (1, 2, 3):
            at = NOW + timedelta(minutes=minute)
            model, commands = transition(model, _failed(1, at=at), context)
            statuses.append(model_freshness(model, at))
            delays.append(commands[0].delay_secs)

        assert isinstance(statuses[0], Stale)
        assert isinstance(statuses[1], Stale)
        assert statuses[2] == Offline(failure_count=3)
        assert model.state.retry.attempts == 3
        assert delays[0] < delays[1] < delays[2]

    def test_offline_recovers_on_success(self, settings, stockholm, bundle_factory, context):
        old = bundle_factory(stockholm, fetched_at=NOW - timedelta(hours=2))
        model = Model(
            state=Ready(bundle=old, retry=RetryState(attempts=4), location=stockholm),
            settings=settings,
            location=stockholm,
            generation=3,
        )
        assert isinstance(model_freshness(model, NOW), Offline)

        fresh = bundle_factory(stockholm, fetched_at=NOW)
        model, _ = transition(model, FetchSucceeded(bundle=fresh, generation=3), context)
        assert model_freshness(model, NOW) == Fresh()
        assert model.state.retry.attempts == 0

    def test_bundle_never_cleared_by_failures(self, ready_model, context):
        bundle = ready_model.state.bundle
        model = ready_model
        kinds = list(FetchErrorKind) * 3
        for i, error_kind in enumerate(kinds):
            model, _ = transition(
                model, _failed(1, at=NOW + timedelta(seconds=i), error_kind=error_kind), context
            )
            assert model.bundle is bundle
        assert model.state.retry.attempts == len(kinds)

    def test_tick_refresh_in_flight_is_noop(self, ready_model, context):
        model, _ = transition(ready_model, TickRefresh(at=NOW + timedelta(minutes=10)), context)
        assert model.in_flight == {FetchKind.FORECAST}
        again, commands = transition(model, TickRefresh(at=NOW + timedelta(minutes=20)), context)
        assert commands == []
        assert again == model

    def test_tick_refresh_respects_backoff(self, ready_model, context):
        model, _ = transition(ready_model, _failed(1), context)
        _, commands = transition(model, TickRefresh(at=NOW + timedelta(seconds=2)), context)
        assert commands == []

        eligible = model.state.retry.next_eligible_at
        model, commands = transition(model, TickRefresh(at=eligible), context)
        assert commands == [FetchForecast(location=model.location, generation=2)]
        assert model.state.retry.attempts == 1

    def test_manual_refresh_bypasses_backoff(self, ready_model, context):
        model, _ = transition(ready_model, _failed(1), context)
        model, commands = transition(model, Input(action=Refresh(), at=NOW), context)
        assert commands == [FetchForecast(location=model.location, generation=2)]
        assert isinstance(model.state, Ready)
        assert model.state.retry.attempts == 1

    def test_retry_timer_for_current_generation_refetches(self, ready_model, context):
        model, commands = transition(ready_model, _failed(1), context)
        timer = commands[0]
        tick = TickRefresh(at=model.state.retry.next_eligible_at, generation=timer.generation)
        _, commands = transition(model, tick, context)
        assert commands == [FetchForecast(location=model.location, generation=2)]

    def test_retry_timer_outlived_by_success_is_ignored(
        self, ready_model, stockholm, bundle_factory, context
    ):
        model, commands = transition(ready_model, _failed(1), context)
        timer = commands[0]
        assert 10.0 <= timer.delay_secs < 11.0

        model, _ = transition(model, Input(action=Refresh(), at=NOW + timedelta(seconds=1)), context)
        newer = bundle_factory(stockholm, fetched_at=NOW + timedelta(seconds=2))
        model, _ = transition(model, FetchSucceeded(bundle=newer, generation=2), context)
        assert model.state.retry.attempts == 0

        late = TickRefresh(at=NOW + timedelta(seconds=11), generation=timer.generation)
        after, commands = transition(model, late, context)
        assert commands == []
        assert after == model

    def test_superseded_generation_discarded(self, ready_model, stockholm, bundle_factory, context):
        model, _ = transition(ready_model, Input(action=Refresh(), at=NOW), context)
        model, _ = transition(model, Input(action=Refresh(), at=NOW), context)
        assert model.generation == 3

        stale = bundle_factory(stockholm, temperature_c=-20.0)
        after, commands = transition(model, FetchSucceeded(bundle=stale, generation=2), context)
        assert after == model
        assert commands == []

        after, commands = transition(model, _failed(2), context)
        assert after == model
        assert commands == []

    def test_fetch_started_tracks_current_generation(self, ready_model, context):
        model, _ = transition(ready_model, FetchStarted(kind=FetchKind.FORECAST, generation=1), context)
        assert model.in_flight == {FetchKind.FORECAST}
        model2, _ = transition(ready_model, FetchStarted(kind=FetchKind.FORECAST, generation=0), context)
        assert model2.in_flight == frozenset()


class TestSearch:
    def test_search_suspends_ready(self, ready_model, context):
        model, commands = transition(ready_model, Input(action=SearchCity(query=" Oslo "), at=NOW), context)
        assert isinstance(model.state, Loading)
        assert model.state.previous == ready_model.state
        assert model.bundle is ready_model.state.bundle
        assert model.location is None
        assert commands == [ResolveGeocode(query="Oslo", country_hint=None, generation=2)]

    def test_not_found_restores_previous(self, ready_model, stockholm, context):
        model, _ = transition(ready_model, Input(action=SearchCity(query="Atlantis"), at=NOW), context)
        model, commands = transition(
            model, GeocodeResolved(resolution=NotFound(query="Atlantis"), generation=2), context
        )
        assert isinstance(model.state, Ready)
        assert model.state.bundle is ready_model.state.bundle
        assert "Atlantis" in model.state.status_message
        assert model.location == stockholm
        assert commands == []

    def test_new_city_forecast(self, ready_model, oslo, bundle_factory, context):
        model, _ = transition(ready_model, Input(action=SearchCity(query="Oslo"), at=NOW), context)
        model, commands = transition(
            model, GeocodeResolved(resolution=Selected(location=oslo), generation=2), context
        )
        assert commands == [FetchForecast(location=oslo, generation=2)]
        assert model.bundle is ready_model.state.bundle

        model, _ = transition(model, FetchSucceeded(bundle=bundle_factory(oslo), generation=2), context)
        assert model.state.location == oslo
        assert [r.name for r in model.settings.recent_locations] == ["Oslo"]

    def test_failing_new_city_degrades_freshness(self, ready_model, oslo, context):
        model, _ = transition(ready_model, Input(action=SearchCity(query="Oslo"), at=NOW), context)
        model, _ = transition(
            model, GeocodeResolved(resolution=Selected(location=oslo), generation=2), context
        )
        assert model_freshness(model, NOW + timedelta(seconds=5)) == Fresh()

        statuses, delays = [], []
        generation = 2
        for second in (10, 70, 130):
            at = NOW + timedelta(seconds=second)
            model, commands = transition(model, _failed(generation, at=at), context)
            statuses.append(model_freshness(model, at))
            delays.append(commands[0].delay_secs)
            tick = TickRefresh(at=at + timedelta(seconds=50), generation=commands[0].generation)
            model, commands = transition(model, tick, context)
            generation += 1
            assert commands == [FetchForecast(location=oslo, generation=generation)]

        assert isinstance(model.state, Loading)
        assert model.bundle is ready_model.state.bundle
        assert model.retry.attempts == 3
        assert isinstance(statuses[0], Stale)
        assert isinstance(statuses[1], Stale)
        assert statuses[2] == Offline(failure_count=3)
        assert delays[0] < delays[1] < delays[2]

    def test_new_search_starts_fresh_streak(self, ready_model, oslo, context):
        model, _ = transition(ready_model, Input(action=SearchCity(query="Oslo"), at=NOW), context)
        model, _ = transition(
            model, GeocodeResolved(resolution=Selected(location=oslo), generation=2), context
        )
        model, _ = transition(model, _failed(2), context)
        assert model.retry.attempts == 1

        model, _ = transition(model, Input(action=SearchCity(query="Bergen"), at=NOW), context)
        assert model.retry == RetryState()
        assert model_freshness(model, NOW) == Fresh()

    def test_blank_search_ignored(self, ready_model, context):
        after, commands = transition(ready_model, Input(action=SearchCity(query="  "), at=NOW), context)
        assert after == ready_model
        assert commands == []


class TestUnitsAndQuit:
    def test_set_units_persists(self, ready_model, context):
        model, commands = transition(
            ready_model, Input(action=SetUnits(units=Units.FAHRENHEIT), at=NOW), context
        )
        assert model.settings.units == Units.FAHRENHEIT
        assert commands == [PersistSettings(settings=model.settings)]
        assert model.state == ready_model.state

    def test_same_units_noop(self, ready_model, context):
        _, commands = transition(ready_model, Input(action=SetUnits(units=Units.CELSIUS), at=NOW), context)
        assert commands == []

    def test_tick_frame_renders_without_mutation(self, ready_model, context):
        model, commands = transition(ready_model, TickFrame(at=NOW), context)
        assert model == ready_model
        assert commands == [RenderFrame(at=NOW)]

    @pytest.mark.parametrize("event", [QuitEvent(), Input(action=QuitRequested(), at=NOW)])
    def test_quit_is_terminal(self, ready_model, context, event):
        model, commands = transition(ready_model, event, context)
        assert isinstance(model.state, Quit)
        assert commands == [Terminate()]

        after, commands = transition(model, Input(action=Refresh(), at=NOW), context)
        assert after == model
        assert commands == []

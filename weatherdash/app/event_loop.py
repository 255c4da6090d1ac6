"""Cooperative event loop driving the dashboard.

A single task owns the model. Every other task (fetches, timers, input)
only posts events to the shared queue.
"""

import asyncio
import logging
import random
from collections.abc import Callable, Coroutine
from datetime import datetime

from weatherdash.app.orchestrator import FetchOrchestrator
from weatherdash.app.state_machine import TransitionContext, transition
from weatherdash.config.loader import SettingsStore
from weatherdash.models.common import Generation, utc_now
from weatherdash.models.events import (
    AppEvent,
    Bootstrap,
    Command,
    DetectLocation,
    FetchForecast,
    Input,
    PersistSettings,
    RenderFrame,
    ResolveGeocode,
    ScheduleRetry,
    Terminate,
    TickFrame,
    TickRefresh,
)
from weatherdash.models.state import Model, Quit
from weatherdash.resilience.freshness import model_freshness
from weatherdash.ui.console import DashboardSnapshot, InputSource, Renderer

logger = logging.getLogger(__name__)

REFRESH_JITTER_RATIO = 0.1


class DashboardLoop:
    def __init__(
        self,
        model: Model,
        orchestrator: FetchOrchestrator,
        renderer: Renderer,
        settings_store: SettingsStore | None = None,
        input_source: InputSource | None = None,
        context: TransitionContext | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.model = model
        self.orchestrator = orchestrator
        self.queue: asyncio.Queue[AppEvent] = orchestrator.queue
        self.renderer = renderer
        self.settings_store = settings_store
        self.input_source = input_source
        self.context = context or TransitionContext()
        self.clock = clock
        self._timer_rng = random.Random()
        self._tasks: set[asyncio.Task] = set()

    @property
    def frame_interval(self) -> float:
        return 1.0 / self.model.settings.fps

    async def run(self) -> Model:
        """Run until the model reaches Quit. Returns the final model."""
        loop = asyncio.get_running_loop()
        self._spawn(self._refresh_timer(), "refresh-timer")
        if self.input_source is not None:
            self._spawn(self._read_input(), "input")
        await self.queue.put(Bootstrap(at=self.clock()))

        next_frame = loop.time()
        try:
            while not isinstance(self.model.state, Quit):
                timeout = max(0.0, next_frame - loop.time())
                try:
                    event = await asyncio.wait_for(self.queue.get(), timeout=timeout)
                except TimeoutError:
                    event = None

                if event is not None:
                    self.step(event)
                if loop.time() >= next_frame:
                    self.step(TickFrame(at=self.clock()))
                    next_frame = loop.time() + self.frame_interval
        finally:
            await self.shutdown()
        return self.model

    def step(self, event: AppEvent) -> None:
        self.model, commands = transition(self.model, event, self.context)
        for command in commands:
            self.execute(command)

    def execute(self, command: Command) -> None:
        match command:
            case DetectLocation() | ResolveGeocode() | FetchForecast():
                self.orchestrator.dispatch(command)
            case ScheduleRetry(delay_secs=delay, generation=generation):
                logger.debug("Retry timer armed for %.1fs (generation %d)", delay, generation)
                self._spawn(self._post_after(delay, generation), "retry-timer")
            case PersistSettings(settings=settings):
                if self.settings_store is not None:
                    self.settings_store.save(settings)
            case RenderFrame(at=at):
                freshness = model_freshness(self.model, at)
                self.renderer.render(DashboardSnapshot(model=self.model, freshness=freshness, now=at))
            case Terminate():
                logger.info("Dashboard terminating")

    def _spawn(self, coro: Coroutine, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _post_after(self, delay: float, generation: Generation) -> None:
        await asyncio.sleep(delay)
        await self.queue.put(TickRefresh(at=self.clock(), generation=generation))

    async def _refresh_timer(self) -> None:
        while True:
            interval = self.model.settings.refresh_interval_secs
            jitter = self._timer_rng.uniform(-REFRESH_JITTER_RATIO, REFRESH_JITTER_RATIO)
            await asyncio.sleep(interval * (1.0 + jitter))
            await self.queue.put(TickRefresh(at=self.clock()))

    async def _read_input(self) -> None:
        async for action in self.input_source.actions():
            await self.queue.put(Input(action=action, at=self.clock()))

    async def shutdown(self) -> None:
        """Cancel timers, input and outstanding fetches."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        await self.orchestrator.shutdown()

"""Line-oriented console renderer and input source."""

import asyncio
import logging
import sys
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, TextIO

from weatherdash.models.common import Units
from weatherdash.models.events import (
    InputAction,
    QuitRequested,
    Refresh,
    SearchCity,
    SelectCandidate,
    SetUnits,
)
from weatherdash.models.state import FreshnessStatus, Model
from weatherdash.resolver.location_resolver import MAX_CHOICES
from weatherdash.ui.formatters import format_dashboard

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardSnapshot:
    """Read-only view handed to the renderer each frame."""

    model: Model
    freshness: FreshnessStatus
    now: datetime


class Renderer(Protocol):
    def render(self, snapshot: DashboardSnapshot) -> None: ...


class InputSource(Protocol):
    def actions(self) -> AsyncIterator[InputAction]: ...


class ConsoleRenderer:
    """Prints the status block whenever its text changes."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream or sys.stdout
        self._last: str | None = None

    def render(self, snapshot: DashboardSnapshot) -> None:
        text = format_dashboard(snapshot.model, snapshot.freshness)
        if not text or text == self._last:
            return
        self._last = text
        print(text, file=self.stream)
        print(file=self.stream)
        self.stream.flush()


def parse_command(line: str) -> InputAction | None:
    """Map one typed line to an input action.

    ``r`` refresh, ``1``..``5`` pick a candidate, ``/city`` search,
    ``f``/``c`` switch units, ``q`` quit.
    """
    text = line.strip()
    if not text:
        return None
    if text.startswith("/"):
        query = text[1:].strip()
        return SearchCity(query=query) if query else None

    key = text.lower()
    if key == "r":
        return Refresh()
    if key == "q":
        return QuitRequested()
    if key == "f":
        return SetUnits(units=Units.FAHRENHEIT)
    if key == "c":
        return SetUnits(units=Units.CELSIUS)
    if key.isdigit() and 1 <= int(key) <= MAX_CHOICES:
        return SelectCandidate(ordinal=int(key))
    return None


class LineInputSource:
    """Reads commands from a text stream, one per line, until EOF."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream or sys.stdin

    async def actions(self) -> AsyncIterator[InputAction]:
        while True:
            line = await asyncio.to_thread(self.stream.readline)
            if not line:
                logger.debug("Input stream closed")
                return
            action = parse_command(line)
            if action is None:
                logger.debug("Ignoring unrecognised input %r", line.strip())
                continue
            yield action
            if isinstance(action, QuitRequested):
                # no further blocking read, so the worker thread can exit
                return

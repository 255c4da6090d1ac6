"""Common types and helpers shared across models."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import TypeAlias

Generation: TypeAlias = int


class Units(StrEnum):
    CELSIUS = "celsius"
    FAHRENHEIT = "fahrenheit"


class FetchKind(StrEnum):
    GEOLOCATION = "geolocation"
    GEOCODE = "geocode"
    FORECAST = "forecast"


class FetchErrorKind(StrEnum):
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    HTTP_STATUS = "http_status"
    MALFORMED = "malformed"
    GEOCODE_EMPTY = "geocode_empty"


def utc_now() -> datetime:
    return datetime.now(UTC)


def convert_temp(celsius: float, units: Units) -> float:
    if units == Units.FAHRENHEIT:
        return celsius * 9.0 / 5.0 + 32.0
    return celsius


def unit_symbol(units: Units) -> str:
    return "F" if units == Units.FAHRENHEIT else "C"

"""Weather alert models."""

from dataclasses import dataclass
from enum import IntEnum, StrEnum


class AlertSeverity(IntEnum):
    WARNING = 1
    DANGER = 2


class AlertKind(StrEnum):
    WIND_GUST = "wind_gust"
    UV = "uv"
    FREEZING = "freezing"
    HEAVY_PRECIPITATION = "heavy_precipitation"
    LOW_VISIBILITY = "low_visibility"
    EXTREME_HEAT = "extreme_heat"
    EXTREME_COLD = "extreme_cold"
    THUNDER = "thunder"


@dataclass(frozen=True)
class WeatherAlert:
    kind: AlertKind
    severity: AlertSeverity
    message: str

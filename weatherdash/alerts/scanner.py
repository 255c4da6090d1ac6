"""Weather alert scan over the next 24 hours of a forecast bundle.

Every check runs; none short-circuits. Alerts come back most severe first,
in check order within a severity.
"""

from weatherdash.models.alerts import AlertKind, AlertSeverity, WeatherAlert
from weatherdash.models.common import Units, convert_temp, unit_symbol
from weatherdash.models.forecast import ForecastBundle, HourlyForecast

ALERT_WINDOW_HOURS = 24

GUST_WARNING_KMH = 50.0
GUST_DANGER_KMH = 80.0
UV_WARNING = 6.0
UV_DANGER = 8.0
HEAVY_PRECIP_MM = 25.0
LOW_VISIBILITY_M = 1000.0
EXTREME_HEAT_C = 38.0
EXTREME_COLD_C = -15.0

FREEZING_CODES = frozenset({56, 57, 66, 67})
THUNDER_CODES = frozenset({95, 96, 99})


def scan_alerts(bundle: ForecastBundle, units: Units) -> list[WeatherAlert]:
    hours = next_hours(bundle)
    checks = [
        wind_gust_alert(hours),
        uv_alert(bundle),
        freezing_alert(hours),
        heavy_precipitation_alert(hours),
        low_visibility_alert(hours),
        extreme_heat_alert(hours, units),
        extreme_cold_alert(hours, units),
        thunder_alert(hours),
    ]
    alerts = [alert for alert in checks if alert is not None]
    return sorted(alerts, key=lambda a: a.severity, reverse=True)


def next_hours(bundle: ForecastBundle) -> tuple[HourlyForecast, ...]:
    return bundle.hourly[:ALERT_WINDOW_HOURS]


def _values(hours: tuple[HourlyForecast, ...], field: str) -> list[float]:
    return [v for v in (getattr(h, field) for h in hours) if v is not None]


def _display_temp(celsius: float, units: Units) -> str:
    return f"{round(convert_temp(celsius, units))}°{unit_symbol(units)}"


def wind_gust_alert(hours: tuple[HourlyForecast, ...]) -> WeatherAlert | None:
    gusts = _values(hours, "wind_gusts_10m")
    if not gusts:
        return None
    peak = max(gusts)
    if peak >= GUST_DANGER_KMH:
        severity = AlertSeverity.DANGER
    elif peak >= GUST_WARNING_KMH:
        severity = AlertSeverity.WARNING
    else:
        return None
    return WeatherAlert(AlertKind.WIND_GUST, severity, f"Wind gusts up to {round(peak)} km/h")


def uv_alert(bundle: ForecastBundle) -> WeatherAlert | None:
    uv = bundle.daily[0].uv_index_max if bundle.daily else None
    if uv is None:
        return None
    if uv >= UV_DANGER:
        return WeatherAlert(AlertKind.UV, AlertSeverity.DANGER, f"UV index very high ({uv:.0f})")
    if uv >= UV_WARNING:
        return WeatherAlert(AlertKind.UV, AlertSeverity.WARNING, f"UV index high ({uv:.0f})")
    return None


def freezing_alert(hours: tuple[HourlyForecast, ...]) -> WeatherAlert | None:
    if any(h.weather_code in FREEZING_CODES for h in hours):
        return WeatherAlert(
            AlertKind.FREEZING, AlertSeverity.DANGER, "Freezing rain/drizzle expected"
        )
    return None


def heavy_precipitation_alert(hours: tuple[HourlyForecast, ...]) -> WeatherAlert | None:
    # negative readings clamp to zero
    total = sum(max(p, 0.0) for p in _values(hours, "precipitation_mm"))
    if total >= HEAVY_PRECIP_MM:
        return WeatherAlert(
            AlertKind.HEAVY_PRECIPITATION,
            AlertSeverity.WARNING,
            f"Heavy precipitation: {total:.1f}mm in 24h",
        )
    return None


def low_visibility_alert(hours: tuple[HourlyForecast, ...]) -> WeatherAlert | None:
    visibility = _values(hours, "visibility_m")
    if visibility and min(visibility) < LOW_VISIBILITY_M:
        return WeatherAlert(
            AlertKind.LOW_VISIBILITY,
            AlertSeverity.WARNING,
            f"Low visibility: {min(visibility) / 1000.0:.1f}km",
        )
    return None


def extreme_heat_alert(hours: tuple[HourlyForecast, ...], units: Units) -> WeatherAlert | None:
    temps = _values(hours, "temperature_2m_c")
    if temps and max(temps) >= EXTREME_HEAT_C:
        return WeatherAlert(
            AlertKind.EXTREME_HEAT,
            AlertSeverity.DANGER,
            f"Extreme heat: up to {_display_temp(max(temps), units)}",
        )
    return None


def extreme_cold_alert(hours: tuple[HourlyForecast, ...], units: Units) -> WeatherAlert | None:
    temps = _values(hours, "temperature_2m_c")
    if temps and min(temps) <= EXTREME_COLD_C:
        return WeatherAlert(
            AlertKind.EXTREME_COLD,
            AlertSeverity.DANGER,
            f"Extreme cold: down to {_display_temp(min(temps), units)}",
        )
    return None


def thunder_alert(hours: tuple[HourlyForecast, ...]) -> WeatherAlert | None:
    if any(h.weather_code in THUNDER_CODES for h in hours):
        return WeatherAlert(AlertKind.THUNDER, AlertSeverity.WARNING, "Thunderstorms expected")
    return None

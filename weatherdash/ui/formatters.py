"""Plain-text formatting of forecasts and dashboard screens."""

from weatherdash.alerts.scanner import scan_alerts
from weatherdash.models.alerts import AlertSeverity
from weatherdash.models.common import Units, convert_temp, unit_symbol
from weatherdash.models.forecast import ForecastBundle
from weatherdash.models.state import (
    Error,
    FreshnessStatus,
    Loading,
    Model,
    Quit,
    Ready,
    SelectingLocation,
)
from weatherdash.resilience.freshness import freshness_label

ALERT_MARKERS = {
    AlertSeverity.DANGER: "[!!]",
    AlertSeverity.WARNING: "[!]",
}

WEATHER_LABELS = {
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snowfall",
    73: "Moderate snowfall",
    75: "Heavy snowfall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm + light hail",
    99: "Thunderstorm + heavy hail",
}


def weather_label(code: int | None, is_day: bool = True) -> str:
    if code is None:
        return "--"
    if code == 0:
        return "Clear sky" if is_day else "Clear night"
    if code == 1:
        return "Mainly clear" if is_day else "Mainly clear night"
    return WEATHER_LABELS.get(code, "Unknown")


def format_temp(celsius: float | None, units: Units) -> str:
    if celsius is None:
        return "--"
    return f"{round(convert_temp(celsius, units))}°{unit_symbol(units)}"


def wind_ms(kmh: float) -> int:
    """Open-Meteo reports km/h; the dashboard shows m/s."""
    return round(kmh / 3.6)


def format_current(bundle: ForecastBundle, units: Units) -> str:
    c = bundle.current
    lines = [
        f"  {bundle.location.display_name}",
        f"  {format_temp(c.temperature_2m_c, units)}  {weather_label(c.weather_code, c.is_day)}",
        f"  Feels {format_temp(c.apparent_temperature_c, units)}  "
        f"Humidity {c.relative_humidity_2m:.0f}%  "
        f"Wind {wind_ms(c.wind_speed_10m)}/{wind_ms(c.wind_gusts_10m)} m/s",
        f"  Pressure {c.pressure_msl_hpa:.0f}hPa  Visibility {c.visibility_m / 1000.0:.1f}km",
    ]
    if c.high_today_c is not None and c.low_today_c is not None:
        lines.append(
            f"  H {format_temp(c.high_today_c, units)}  L {format_temp(c.low_today_c, units)}"
        )
    aq = bundle.snapshot.air_quality
    if aq is not None:
        index = aq.us_aqi if aq.us_aqi is not None else aq.european_aqi
        lines.append(f"  Air quality {index:.0f} ({aq.category})")
    lines.extend(format_alerts(bundle, units))
    return "\n".join(lines)


def format_alerts(bundle: ForecastBundle, units: Units) -> list[str]:
    return [
        f"  {ALERT_MARKERS[alert.severity]} {alert.message}" for alert in scan_alerts(bundle, units)
    ]


def format_daily(bundle: ForecastBundle, units: Units) -> str:
    lines = ["  7-Day Forecast"]
    for day in bundle.daily:
        precip = (
            f"{day.precipitation_sum_mm:.1f}mm" if day.precipitation_sum_mm is not None else "--"
        )
        lines.append(
            f"  {day.date.strftime('%a %d')}  "
            f"{weather_label(day.weather_code):<26}"
            f"{format_temp(day.temperature_min_c, units):>6} / "
            f"{format_temp(day.temperature_max_c, units):<6} {precip:>7}"
        )
    return "\n".join(lines)


def format_one_shot(bundle: ForecastBundle, units: Units) -> str:
    return format_current(bundle, units) + "\n\n" + format_daily(bundle, units)


def format_dashboard(model: Model, freshness: FreshnessStatus) -> str:
    """Status block for the current screen."""
    units = model.settings.units
    match model.state:
        case Loading(message=message, previous=previous):
            lines = [f"weatherdash | {message}"]
            if previous is not None:
                lines += [
                    f"  (showing last data, {freshness_label(freshness)})",
                    format_current(previous.bundle, units),
                ]
            return "\n".join(lines)
        case SelectingLocation(candidates=candidates):
            lines = ["weatherdash | Multiple matches, choose one:"]
            for ordinal, candidate in enumerate(candidates, start=1):
                pop = f" (pop {candidate.population:,})" if candidate.population else ""
                lines.append(f"  {ordinal}. {candidate.location.display_name}{pop}")
            lines.append("  Type a number to choose, /city to search again")
            return "\n".join(lines)
        case Ready(bundle=bundle, retry=retry, status_message=status_message):
            updated = bundle.fetched_at.strftime("%H:%M UTC")
            lines = [
                f"weatherdash | {freshness_label(freshness)} | updated {updated}",
                format_current(bundle, units),
            ]
            if retry.attempts:
                lines.append(
                    f"  Retry #{retry.attempts} after {retry.last_delay_secs:.0f}s backoff"
                )
            if status_message:
                lines.append(f"  {status_message}")
            return "\n".join(lines)
        case Error(message=message):
            return f"weatherdash | Error: {message}\n  Press r to retry, q to quit"
        case Quit():
            return ""
    return ""

"""CLI entry point for the weather dashboard."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from weatherdash.app.event_loop import DashboardLoop
from weatherdash.app.one_shot import run_once
from weatherdash.app.orchestrator import FetchOrchestrator
from weatherdash.config.loader import SettingsStore, default_settings_path, load_config
from weatherdash.config.schema import DashboardConfig
from weatherdash.ingest.data_source import OpenMeteoDataSource
from weatherdash.models.common import Units
from weatherdash.models.errors import CoordinateInputError, FetchError
from weatherdash.models.location import LocationRequest
from weatherdash.models.state import initial_model
from weatherdash.ui.console import ConsoleRenderer, LineInputSource
from weatherdash.ui.formatters import format_one_shot

logger = logging.getLogger(__name__)

DEFAULT_LOG_FILE = "logs/weatherdash.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _int_between(low: int, high: int | None = None):
    def parse(value: str) -> int:
        try:
            number = int(value)
        except ValueError as e:
            raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from e
        if number < low or (high is not None and number > high):
            bound = f"between {low} and {high}" if high is not None else f">= {low}"
            raise argparse.ArgumentTypeError(f"must be {bound}, got {number}")
        return number

    return parse


def _country_code(value: str) -> str:
    code = value.strip().upper()
    if len(code) != 2 or not code.isalpha():
        raise argparse.ArgumentTypeError(f"expected a two-letter country code, got {value!r}")
    return code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="weatherdash",
        description="Live terminal weather dashboard",
    )
    parser.add_argument("city", nargs="?", help="City to show (default: last used or detected)")
    parser.add_argument("--lat", type=float, help="Latitude, requires --lon")
    parser.add_argument("--lon", type=float, help="Longitude, requires --lat")
    parser.add_argument(
        "--country-code", type=_country_code, help="Two-letter country code to bias geocoding"
    )
    parser.add_argument("--units", choices=[u.value for u in Units], help="Temperature units")
    parser.add_argument(
        "--refresh-interval",
        type=_int_between(10),
        help="Seconds between forecast refreshes",
    )
    parser.add_argument("--fps", type=_int_between(15, 60), help="Frame rate (15-60)")
    parser.add_argument("--config", help="Settings YAML path")
    parser.add_argument(
        "--one-shot", action="store_true", help="Print current conditions and exit"
    )
    parser.add_argument(
        "--log-file", default=DEFAULT_LOG_FILE, help="Log file for the interactive dashboard"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def location_request(args: argparse.Namespace) -> LocationRequest:
    """Build the bootstrap request, rejecting bad coordinate input."""
    if (args.lat is None) != (args.lon is None):
        raise CoordinateInputError("--lat and --lon must be given together")
    if args.lat is not None and not -90.0 <= args.lat <= 90.0:
        raise CoordinateInputError(f"latitude {args.lat} out of range [-90, 90]")
    if args.lon is not None and not -180.0 <= args.lon <= 180.0:
        raise CoordinateInputError(f"longitude {args.lon} out of range [-180, 180]")

    query = args.city.strip() if args.city else None
    return LocationRequest(
        query=query or None,
        latitude=args.lat,
        longitude=args.lon,
        country_code=args.country_code,
    )


def apply_overrides(settings: DashboardConfig, args: argparse.Namespace) -> DashboardConfig:
    update = {}
    if args.units is not None:
        update["units"] = Units(args.units)
    if args.refresh_interval is not None:
        update["refresh_interval_secs"] = args.refresh_interval
    if args.fps is not None:
        update["fps"] = args.fps
    if args.country_code is not None:
        update["country_code"] = args.country_code
    if not update:
        return settings
    return settings.model_copy(update=update)


def configure_logging(one_shot: bool, log_file: str, verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    if one_shot:
        # stdout carries the forecast; keep stderr quiet unless asked
        logging.basicConfig(level=level if verbose else logging.WARNING, format=LOG_FORMAT)
        return
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(level=level, format=LOG_FORMAT, filename=str(path))


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        request = location_request(args)
    except CoordinateInputError as e:
        print(f"weatherdash: error: {e}", file=sys.stderr)
        return 2

    configure_logging(args.one_shot, args.log_file, args.verbose)

    settings_path = Path(args.config) if args.config else default_settings_path()
    settings = apply_overrides(load_config(settings_path), args)

    if args.one_shot:
        return _cmd_one_shot(settings, request)
    return _cmd_dashboard(settings, request, settings_path)


def _cmd_one_shot(settings: DashboardConfig, request: LocationRequest) -> int:
    orchestrator = FetchOrchestrator(OpenMeteoDataSource(settings.network), network=settings.network)
    recent = settings.recent_locations[0].to_location() if settings.recent_locations else None
    try:
        bundle = asyncio.run(run_once(orchestrator, request, recent))
    except FetchError as e:
        print(f"weatherdash: {e.message}", file=sys.stderr)
        return 1
    print(format_one_shot(bundle, settings.units))
    return 0


def _cmd_dashboard(settings: DashboardConfig, request: LocationRequest, settings_path: Path) -> int:
    logger.info("Starting dashboard (settings %s)", settings_path)
    try:
        asyncio.run(_run_dashboard(settings, request, SettingsStore(settings_path)))
    except KeyboardInterrupt:
        logger.info("Dashboard interrupted by keyboard")
    return 0


async def _run_dashboard(
    settings: DashboardConfig, request: LocationRequest, store: SettingsStore
) -> None:
    orchestrator = FetchOrchestrator(
        OpenMeteoDataSource(settings.network), asyncio.Queue(), settings.network
    )
    loop = DashboardLoop(
        initial_model(settings, request),
        orchestrator,
        ConsoleRenderer(),
        settings_store=store,
        input_source=LineInputSource(),
    )
    print("weatherdash: r refresh, 1-5 choose, /city search, f/c units, q quit")
    await loop.run()

"""YAML settings loader, persistence and recent-location bookkeeping."""

import hashlib
import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from weatherdash.config.defaults import RECENT_LOCATIONS_MAX, SETTINGS_FILENAME
from weatherdash.config.schema import DashboardConfig, RecentLocation
from weatherdash.models.errors import ConfigurationError
from weatherdash.models.location import Location

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "WEATHERDASH_CONFIG_DIR"


def default_settings_path() -> Path:
    """Resolve the settings file location.

    ``$WEATHERDASH_CONFIG_DIR/settings.yaml`` if set, otherwise
    ``~/.config/weatherdash/settings.yaml``.
    """
    base = os.environ.get(CONFIG_DIR_ENV)
    if base:
        return Path(base) / SETTINGS_FILENAME
    return Path.home() / ".config" / "weatherdash" / SETTINGS_FILENAME


def read_config(path: str | Path) -> DashboardConfig:
    """Read and validate settings from a YAML file.

    Raises ConfigurationError if the file is unreadable or invalid.
    """
    path = Path(path)
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read settings {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Settings {path} must be a mapping, got {type(raw).__name__}")
    try:
        return DashboardConfig(**raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings {path}: {e}") from e


def load_config(path: str | Path | None = None) -> DashboardConfig:
    """Load settings, falling back to defaults when missing or invalid."""
    path = Path(path) if path is not None else default_settings_path()
    if not path.exists():
        logger.info("No settings at %s, using defaults", path)
        return DashboardConfig()
    try:
        return read_config(path)
    except ConfigurationError as e:
        logger.warning("%s; falling back to defaults", e)
        return DashboardConfig()


def save_config(config: DashboardConfig, path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(config.model_dump(mode="json"), f, sort_keys=False)


def config_hash(config: DashboardConfig) -> str:
    """Compute a deterministic SHA256 hash of the config."""
    data = config.model_dump_json(indent=None)
    return hashlib.sha256(data.encode()).hexdigest()[:16]


def push_recent_location(config: DashboardConfig, location: Location) -> DashboardConfig:
    """Return a copy with ``location`` first in the recent list.

    Entries for the same place are collapsed, and the list is capped.
    """
    entry = RecentLocation.from_location(location)
    recent = [entry] + [r for r in config.recent_locations if not r.same_place(entry)]
    return config.model_copy(update={"recent_locations": recent[:RECENT_LOCATIONS_MAX]})


class SettingsStore:
    """Writes settings snapshots to disk, skipping unchanged ones."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path is not None else default_settings_path()
        self._last_hash: str | None = None

    def save(self, config: DashboardConfig) -> bool:
        """Persist ``config``. Returns True if the file was written."""
        h = config_hash(config)
        if h == self._last_hash:
            return False
        try:
            save_config(config, self.path)
        except OSError:
            logger.exception("Failed to persist settings to %s", self.path)
            return False
        self._last_hash = h
        logger.debug("Settings persisted to %s (%s)", self.path, h)
        return True

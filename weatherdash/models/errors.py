"""Error taxonomy for data acquisition, user input and settings."""

from weatherdash.models.common import FetchErrorKind


class FetchError(Exception):
    """Raised by a data source when an acquisition fails."""

    def __init__(self, kind: FetchErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class GeocodeEmptyError(FetchError):
    """A free-text query produced no geocoding candidates."""

    def __init__(self, query: str):
        super().__init__(FetchErrorKind.GEOCODE_EMPTY, f"No geocoding result for {query}")
        self.query = query


class CoordinateInputError(ValueError):
    """Invalid caller-supplied latitude/longitude pairing."""


class ConfigurationError(Exception):
    """Persisted settings could not be read or validated."""

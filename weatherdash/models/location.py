"""Location and geocoding models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Location:
    name: str
    latitude: float
    longitude: float
    country: str | None = None
    country_code: str | None = None
    admin1: str | None = None
    timezone: str | None = None
    population: int | None = None

    @classmethod
    def from_coords(cls, latitude: float, longitude: float) -> "Location":
        return cls(name=f"{latitude:.4f}, {longitude:.4f}", latitude=latitude, longitude=longitude)

    @property
    def display_name(self) -> str:
        parts = [self.name]
        if self.admin1:
            parts.append(self.admin1)
        if self.country:
            parts.append(self.country)
        return ", ".join(parts)


@dataclass(frozen=True)
class LocationRequest:
    """How the dashboard should find its first location.

    Explicit coordinates win over a city query; with neither, the most
    recent saved location is used, then IP geolocation.
    """

    query: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    country_code: str | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class GeocodeCandidate:
    """A geocoder match under consideration, before one is committed."""

    location: Location
    provider_index: int
    exact_name_match: bool = False
    country_match: bool = False
    score: int = 0

    @property
    def population(self) -> int:
        return self.location.population or 0


@dataclass(frozen=True)
class Selected:
    location: Location


@dataclass(frozen=True)
class NeedsDisambiguation:
    candidates: tuple[GeocodeCandidate, ...]


@dataclass(frozen=True)
class NotFound:
    query: str


GeocodeResolution = Selected | NeedsDisambiguation | NotFound

"""Deterministic ranking of geocoder candidates and ambiguity detection.

Candidates are ordered by:

1. exact (case-insensitive, whitespace-normalised) name match,
2. population, descending,
3. country-code bias match,
4. the provider's original order.

When the top two ranked candidates are indistinguishable on the match flags
and their populations are within ``AMBIGUITY_POPULATION_RATIO`` of each other,
the query is ambiguous and the caller gets up to ``MAX_CHOICES`` candidates
to pick from instead of an automatic selection.
"""

import logging
from dataclasses import replace

from weatherdash.models.location import (
    GeocodeCandidate,
    GeocodeResolution,
    Location,
    NeedsDisambiguation,
    NotFound,
    Selected,
)

logger = logging.getLogger(__name__)

MAX_CHOICES = 5
AMBIGUITY_POPULATION_RATIO = 1.10


def normalize_name(value: str) -> str:
    folded = value.strip().casefold().replace("-", " ").replace("_", " ")
    return " ".join(folded.split())


def _rank_key(candidate: GeocodeCandidate) -> tuple:
    return (
        not candidate.exact_name_match,
        -candidate.population,
        not candidate.country_match,
        candidate.provider_index,
    )


def rank_candidates(
    candidates: list[GeocodeCandidate], query: str, country_hint: str | None = None
) -> list[GeocodeCandidate]:
    """Score and sort candidates. The input list is not modified."""
    normalized_query = normalize_name(query)
    hint = country_hint.casefold() if country_hint else None

    scored = []
    for candidate in candidates:
        exact = normalize_name(candidate.location.name) == normalized_query
        country = (
            hint is not None
            and candidate.location.country_code is not None
            and candidate.location.country_code.casefold() == hint
        )
        scored.append(replace(candidate, exact_name_match=exact, country_match=country))

    ranked = sorted(scored, key=_rank_key)
    return [replace(c, score=len(ranked) - i) for i, c in enumerate(ranked)]


def is_ambiguous(top: GeocodeCandidate, second: GeocodeCandidate) -> bool:
    if top.exact_name_match != second.exact_name_match:
        return False
    if top.country_match != second.country_match:
        return False
    p1 = max(top.population, 1)
    p2 = max(second.population, 1)
    ratio = p1 / p2 if p1 >= p2 else p2 / p1
    return ratio <= AMBIGUITY_POPULATION_RATIO


def resolve(
    query: str, candidates: list[GeocodeCandidate], country_hint: str | None = None
) -> GeocodeResolution:
    """Turn raw geocoder candidates into a selection, a choice list, or not-found."""
    if not candidates:
        logger.info("Geocode query %r returned no candidates", query)
        return NotFound(query=query)

    ranked = rank_candidates(candidates, query, country_hint)
    if len(ranked) > 1 and is_ambiguous(ranked[0], ranked[1]):
        choices = tuple(ranked[:MAX_CHOICES])
        logger.info("Geocode query %r is ambiguous, %d choices", query, len(choices))
        return NeedsDisambiguation(candidates=choices)

    top = ranked[0].location
    logger.info("Geocode query %r resolved to %s", query, top.display_name)
    return Selected(location=top)


def select_candidate(candidates: tuple[GeocodeCandidate, ...], ordinal: int) -> Location | None:
    """Pick a candidate by its 1-based on-screen ordinal."""
    if ordinal < 1 or ordinal > len(candidates):
        return None
    return candidates[ordinal - 1].location


def best_candidate(resolution: GeocodeResolution) -> Location | None:
    """Top-ranked location of a resolution, for callers that cannot ask the user."""
    match resolution:
        case Selected(location=location):
            return location
        case NeedsDisambiguation(candidates=candidates):
            return candidates[0].location
        case NotFound():
            return None

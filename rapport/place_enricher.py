"""Attach a one-line blurb to each nearby place."""
from __future__ import annotations

import asyncio
from typing import List

from rapport.data_sources.base import SnippetQuery
from rapport.domain import LocalPlace
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="place_enricher")

HIGHLIGHT_QUERIES = (
    "Why do locals love {name} in {city}, {state}?",
    "{name} {city} {state} popular activities",
)


def _format_miles(miles: float) -> str:
    return f"{miles:g}"


def summarize_place(place: LocalPlace) -> str:
    """Generic sentence built only from the place's own metadata."""
    descriptors: List[str] = []
    if place.category:
        descriptors.append(place.category.lower())
    if place.distance_miles is not None:
        descriptors.append(f"{_format_miles(place.distance_miles)} miles from the ZIP center")
    descriptor_text = ", ".join(descriptors) if descriptors else "local favorite"
    tail = " that residents often mention online." if place.url else "."
    return f"{place.name} is a {descriptor_text}{tail}"


async def _highlight(place: LocalPlace, city: str, state: str, query_snippets: SnippetQuery) -> str | None:
    # The fallback phrasing only runs when the first one finds nothing.
    for template in HIGHLIGHT_QUERIES:
        hits = await query_snippets(template.format(name=place.name, city=city, state=state), 1)
        if hits:
            return hits[0]
    return None


async def enrich_local_places(
    places: List[LocalPlace],
    city: str,
    state: str,
    *,
    query_snippets: SnippetQuery,
    top_n: int = 3,
) -> List[LocalPlace]:
    """
    Return copies of ``places`` with ``summary`` set, in the same order.

    The first ``top_n`` places get a searched highlight when city and state
    are known; everything else (and any place whose searches come back empty)
    gets the templated summary.
    """
    can_search = bool(city and state)

    async def enrich(index: int, place: LocalPlace) -> LocalPlace:
        summary = summarize_place(place)
        if can_search and index < top_n:
            summary = await _highlight(place, city, state, query_snippets) or summary
        return place.model_copy(update={"summary": summary})

    enriched = await asyncio.gather(*(enrich(i, p) for i, p in enumerate(places)))
    logger.debug("Enriched %d places (%d searched)", len(enriched), min(top_n, len(places)) if can_search else 0)
    return list(enriched)

"""Interfaces for the upstream lookups the rapport pipeline depends on."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, List, Optional, Protocol

from rapport.domain import GeoResult, LocalPlace


class ZipLookup(Protocol):
    def __call__(self, zip_code: str) -> Awaitable[Optional[GeoResult]]:
        """Resolve a ZIP; None means the ZIP is unknown."""
        ...


class SnippetQuery(Protocol):
    def __call__(self, query: str, limit: int = 3) -> Awaitable[List[str]]:
        """Return up to ``limit`` sentences for a question; never raises."""
        ...


class PlaceSearch(Protocol):
    def __call__(self, latitude: Optional[float], longitude: Optional[float]) -> Awaitable[List[LocalPlace]]:
        """Return merged, name-deduplicated nearby places."""
        ...


@dataclass
class RapportSources:
    """Bundle of upstream callables so the orchestrator can run against real clients or fakes."""

    lookup_zip: ZipLookup
    query_snippets: SnippetQuery
    fetch_local_places: PlaceSearch

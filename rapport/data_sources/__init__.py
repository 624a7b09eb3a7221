"""Upstream data sources feeding the rapport pipeline."""

from .base import PlaceSearch, RapportSources, SnippetQuery, ZipLookup
from .factory import build_http_client, build_sources
from .duckduckgo_client import ensure_sentence, query_snippets
from .nominatim_client import fetch_local_places, haversine_miles
from .zippopotam_client import lookup_zip

__all__ = [
    "build_http_client",
    "build_sources",
    "RapportSources",
    "ZipLookup",
    "SnippetQuery",
    "PlaceSearch",
    "ensure_sentence",
    "query_snippets",
    "fetch_local_places",
    "haversine_miles",
    "lookup_zip",
]

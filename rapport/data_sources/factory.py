"""Factory that binds the upstream clients to a shared HTTP client and settings."""

from __future__ import annotations

from functools import partial

import httpx

from rapport import config
from rapport.data_sources.base import RapportSources
from rapport.data_sources.duckduckgo_client import query_snippets
from rapport.data_sources.nominatim_client import fetch_local_places
from rapport.data_sources.zippopotam_client import lookup_zip
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


def build_http_client(settings: config.Settings | None = None) -> httpx.AsyncClient:
    """Create the shared async client; every upstream sees the contact User-Agent."""
    settings = settings or config.settings
    return httpx.AsyncClient(
        headers={"User-Agent": settings.contact_user_agent},
        timeout=httpx.Timeout(settings.request_timeout_seconds),
        follow_redirects=True,
    )


def build_sources(client: httpx.AsyncClient, settings: config.Settings | None = None) -> RapportSources:
    """Bind Zippopotam, DuckDuckGo and Nominatim to ``client`` with configured limits."""
    settings = settings or config.settings
    timeout = settings.request_timeout_seconds
    logger.info(
        "Using Zippopotam/DuckDuckGo/Nominatim sources (user agent %r, timeout %ss)",
        settings.contact_user_agent,
        timeout,
    )
    return RapportSources(
        lookup_zip=partial(lookup_zip, client=client, timeout=timeout),
        query_snippets=partial(query_snippets, client=client, timeout=timeout),
        fetch_local_places=partial(
            fetch_local_places,
            client=client,
            limit=settings.places_per_category,
            concurrency=settings.places_concurrency,
            timeout=timeout,
        ),
    )

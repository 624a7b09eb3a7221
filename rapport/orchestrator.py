"""
Request pipeline: ZIP in, rapport payload out.

    validate -> cache check -> geo lookup -> {strategic context || places}
             -> enrich places -> synthesize -> assemble -> cache -> respond

Geo lookup and synthesis are ``required`` steps: their errors end the
request. The context and place branches are ``best_effort``: a failure or a
missed deadline leaves an empty default and the request carries on.
"""
from __future__ import annotations

import asyncio
import re
import time
from typing import Any, Callable, Dict, Optional

from rapport.concurrency import best_effort, required
from rapport.config import Settings, settings as default_settings
from rapport.data_sources.base import RapportSources
from rapport.domain import GeoResult, RapportResponse, RawSupportingData
from rapport.errors import ZipNotFoundError, ZipValidationError
from rapport.place_enricher import enrich_local_places
from rapport.response_cache import ResponseCache
from rapport.strategic_context import empty_strategic_buckets, fetch_strategic_context
from rapport.synthesis import ChatClient, build_synthesis_context, synthesize
from utils.logging_utils import bind_zip, get_tagged_logger

logger = get_tagged_logger(__name__, tag="orchestrator")

ZIP_RE = re.compile(r"[0-9]{5}")


def validate_zip(zip_code: Optional[str]) -> str:
    if not zip_code or not ZIP_RE.fullmatch(zip_code):
        raise ZipValidationError("ZIP code must be 5 digits.")
    return zip_code


def cached_payload_is_current(payload: Any) -> bool:
    """Reject cached payloads written before the strategic-context bucket lists existed."""
    try:
        strategic = payload["raw_supporting_data"]["strategic_context"]
        return isinstance(strategic["iconic_destinations"], list)
    except (KeyError, TypeError):
        return False


class RapportOrchestrator:
    """Runs one request through every pipeline stage."""

    def __init__(
        self,
        sources: RapportSources,
        chat_client: ChatClient,
        cache: ResponseCache,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.sources = sources
        self.chat_client = chat_client
        self.cache = cache
        self.settings = settings or default_settings
        self.clock = clock

    async def _resolve(self, zip_code: str) -> GeoResult:
        geo = await required(
            self.sources.lookup_zip(zip_code),
            deadline=self.settings.geo_timeout_seconds,
            message="Geo lookup timed out.",
        )
        if geo is None:
            raise ZipNotFoundError(zip_code)
        return geo

    async def _gather_inputs(self, geo: GeoResult):
        s = self.settings
        return await asyncio.gather(
            best_effort(
                fetch_strategic_context(
                    geo.city,
                    geo.state,
                    geo.zip,
                    query_snippets=self.sources.query_snippets,
                    concurrency=s.context_concurrency,
                ),
                default=empty_strategic_buckets,
                label="Strategic context lookup",
                deadline=s.context_timeout_seconds,
            ),
            best_effort(
                self.sources.fetch_local_places(geo.latitude, geo.longitude),
                default=list,
                label="OSM lookup",
                deadline=s.places_timeout_seconds,
            ),
        )

    async def build(self, zip_code: str) -> Dict[str, Any]:
        """
        Return the rapport payload for ``zip_code`` as a JSON-ready dict.

        Raises ZipValidationError before any I/O, ZipNotFoundError for unknown
        ZIPs, and the geo/synthesis error otherwise. Concurrent requests for
        the same ZIP may both run the pipeline; the last write wins.
        """
        zip_code = validate_zip(zip_code)
        bind_zip(zip_code)
        started_at = self.clock()

        cached = await self.cache.get(zip_code)
        if cached is not None and cached_payload_is_current(cached):
            cached.setdefault("anchors", [])
            logger.info("Cache hit for %s", zip_code)
            return cached

        geo = await self._resolve(zip_code)
        logger.info("Resolved %s to %s, %s", zip_code, geo.city, geo.state)

        strategic_context, places = await self._gather_inputs(geo)
        enriched = await enrich_local_places(
            places,
            geo.city,
            geo.state,
            query_snippets=self.sources.query_snippets,
            top_n=self.settings.enrich_top_n,
        )

        context = build_synthesis_context(
            geo, strategic_context, enriched, max_anchor_spots=self.settings.anchor_candidates
        )
        synthesis = await required(
            synthesize(context, self.chat_client),
            deadline=self.settings.synthesis_timeout_seconds,
            message="Grok request timed out.",
        )

        payload = RapportResponse(
            zip=geo.zip,
            city=geo.city,
            state=geo.state,
            knowledge_brief=synthesis.knowledge,
            anchors=synthesis.anchors,
            raw_supporting_data=RawSupportingData(
                strategic_context=strategic_context,
                local_places=enriched,
            ),
        ).model_dump(mode="json")

        await self.cache.set(zip_code, payload, timestamp=started_at)
        logger.info(
            "Built rapport for %s in %.2fs (%d places, %d anchors)",
            zip_code,
            self.clock() - started_at,
            len(enriched),
            len(synthesis.anchors),
        )
        return payload

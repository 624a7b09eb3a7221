"""Short factual snippets from the DuckDuckGo Instant Answer API.

Best effort by contract: every failure mode (transport error, timeout,
non-success status, empty or non-JSON body) produces an empty list.
"""
from __future__ import annotations

import re
from typing import Any, List

import httpx

from rapport.concurrency import with_deadline
from rapport.domain import dedup_key
from rapport.errors import TransportTimeout
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/duckduckgo")

DUCKDUCKGO_URL = "https://api.duckduckgo.com/"

MAX_SNIPPET_CHARS = 220
ELLIPSIS = "…"

_WHITESPACE_RE = re.compile(r"\s+")
_TERMINAL_PUNCTUATION = (".", "!", "?")


def normalize_blurb(text: str) -> str:
    """Collapse runs of whitespace and trim."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def ensure_sentence(text: str) -> str:
    """Normalize, clip to MAX_SNIPPET_CHARS with an ellipsis, and end with punctuation."""
    trimmed = normalize_blurb(text)
    if not trimmed:
        return ""
    if len(trimmed) > MAX_SNIPPET_CHARS:
        trimmed = f"{trimmed[:MAX_SNIPPET_CHARS - 3].strip()}{ELLIPSIS}"
    return trimmed if trimmed.endswith(_TERMINAL_PUNCTUATION) else f"{trimmed}."


def _related_topic_texts(data: dict) -> List[str]:
    """Flatten RelatedTopics, including one level of grouped ``Topics``."""
    out: List[str] = []
    related = data.get("RelatedTopics")
    if not isinstance(related, list):
        return out
    for item in related:
        if not isinstance(item, dict):
            continue
        if isinstance(item.get("Text"), str):
            out.append(item["Text"])
        elif isinstance(item.get("Topics"), list):
            for nested in item["Topics"]:
                if isinstance(nested, dict) and isinstance(nested.get("Text"), str):
                    out.append(nested["Text"])
    return out


def extract_candidates(data: Any) -> List[str]:
    """Collect candidate texts in field priority order."""
    if not isinstance(data, dict):
        return []
    candidates: List[str] = []
    for field in ("Heading", "AbstractText", "Abstract", "Answer"):
        value = data.get(field)
        if isinstance(value, str) and value:
            candidates.append(value)

    infobox = data.get("Infobox")
    content = infobox.get("content") if isinstance(infobox, dict) else None
    if isinstance(content, list):
        for item in content:
            if not isinstance(item, dict) or not item.get("value"):
                continue
            label = item.get("label")
            candidates.append(f"{label}: {item['value']}" if label else str(item["value"]))

    candidates.extend(_related_topic_texts(data))
    return candidates


def select_snippets(candidates: List[str], limit: int) -> List[str]:
    """Turn candidates into sentences, drop case-insensitive duplicates, keep the first ``limit``."""
    snippets: List[str] = []
    seen: set[str] = set()
    for candidate in candidates:
        sentence = ensure_sentence(candidate)
        if not sentence:
            continue
        key = dedup_key(sentence)
        if key in seen:
            continue
        seen.add(key)
        snippets.append(sentence)
        if len(snippets) >= limit:
            break
    return snippets


async def query_snippets(
    query: str,
    limit: int = 3,
    *,
    client: httpx.AsyncClient,
    timeout: float = 8.0,
) -> List[str]:
    """Return up to ``limit`` normalized sentences answering ``query``; never raises."""
    params = {
        "q": query,
        "format": "json",
        "no_html": "1",
        "no_redirect": "1",
    }
    try:
        resp = await with_deadline(
            client.get(DUCKDUCKGO_URL, params=params, headers={"Content-Type": "application/json"}),
            timeout,
            "DuckDuckGo query timed out.",
        )
    except (httpx.HTTPError, TransportTimeout) as exc:
        logger.warning("DuckDuckGo query %r failed: %s", query, exc)
        return []

    if not resp.is_success or not resp.text:
        logger.debug("DuckDuckGo returned status %s with %d bytes", resp.status_code, len(resp.text))
        return []
    try:
        data = resp.json()
    except ValueError as exc:
        logger.warning("DuckDuckGo JSON parse failed for %r: %s", query, exc)
        return []

    return select_snippets(extract_candidates(data), limit)

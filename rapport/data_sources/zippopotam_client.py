"""ZIP code geocoding against the Zippopotam.us API."""
from __future__ import annotations

import math
from typing import Any, Optional

import httpx

from rapport.concurrency import with_deadline
from rapport.domain import GeoResult
from rapport.errors import TransportFailure
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/zippopotam")

ZIPPOPOTAM_URL = "https://api.zippopotam.us/us/{zip}"


def _finite_float(value: Any) -> Optional[float]:
    """Parse a coordinate string; NaN, infinities and junk become None."""
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


async def lookup_zip(
    zip_code: str,
    *,
    client: httpx.AsyncClient,
    timeout: float = 8.0,
) -> Optional[GeoResult]:
    """
    Resolve a 5-digit ZIP to city/state/coordinates.

    Returns None when the upstream reports the ZIP as unknown (404 or an empty
    place list). Raises TransportFailure for any other non-success status or a
    payload that is not the expected JSON object.
    """
    url = ZIPPOPOTAM_URL.format(zip=zip_code)
    try:
        resp = await with_deadline(client.get(url), timeout, "Zippopotam lookup timed out.")
    except httpx.HTTPError as exc:
        raise TransportFailure(f"Zippopotam lookup failed: {exc}") from exc

    if resp.status_code == 404:
        logger.info("ZIP %s unknown to Zippopotam", zip_code)
        return None
    if not resp.is_success:
        raise TransportFailure(f"Zippopotam lookup failed with status {resp.status_code}")

    try:
        data = resp.json()
    except ValueError as exc:
        raise TransportFailure("Zippopotam returned a malformed payload.") from exc
    if not isinstance(data, dict):
        raise TransportFailure("Zippopotam returned a malformed payload.")

    places = data.get("places")
    if not isinstance(places, list) or not places:
        return None

    first = places[0] if isinstance(places[0], dict) else {}
    return GeoResult(
        zip=str(data.get("post code") or zip_code),
        city=str(first.get("place name") or ""),
        state=str(first.get("state abbreviation") or first.get("state") or ""),
        latitude=_finite_float(first.get("latitude")),
        longitude=_finite_float(first.get("longitude")),
    )

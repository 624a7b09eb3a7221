"""Nearby points of interest from the OpenStreetMap Nominatim search API."""
from __future__ import annotations

import math
from typing import List, Optional, Tuple

import httpx

from rapport.concurrency import best_effort, map_bounded, with_deadline
from rapport.domain import LocalPlace, dedup_key
from rapport.errors import TransportFailure
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/nominatim")

NOMINATIM_URL = "https://nominatim.openstreetmap.org/search.php"

EARTH_RADIUS_KM = 6371.0
KM_TO_MILES = 0.621371
VIEWBOX_DELTA_DEG = 0.15

# (search term, display label)
PLACE_QUERIES: List[Tuple[str, str]] = [
    ("park", "Park"),
    ("trail", "Trail"),
    ("lake", "Lake"),
    ("stadium", "Stadium"),
    ("recreation center", "Rec Center"),
    ("community center", "Community Hub"),
    ("museum", "Museum"),
    ("farmers market", "Market"),
    ("shopping center", "Shopping Destination"),
    ("brewery", "Brewery"),
]


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in miles."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c * KM_TO_MILES


def build_viewbox(latitude: float, longitude: float, delta: float = VIEWBOX_DELTA_DEG) -> str:
    """Nominatim viewbox ``left,top,right,bottom`` around a point."""
    return f"{longitude - delta},{latitude + delta},{longitude + delta},{latitude - delta}"


def _coordinate(value) -> Optional[float]:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def parse_places(items, label: str, latitude: float, longitude: float) -> List[LocalPlace]:
    """Map raw Nominatim results to LocalPlace records; entries without a display name are skipped."""
    places: List[LocalPlace] = []
    if not isinstance(items, list):
        return places
    for item in items:
        if not isinstance(item, dict):
            continue
        display_name = item.get("display_name")
        if not isinstance(display_name, str) or not display_name:
            continue

        place_lat = _coordinate(item.get("lat"))
        place_lon = _coordinate(item.get("lon"))
        distance = None
        if place_lat is not None and place_lon is not None:
            distance = round(haversine_miles(latitude, longitude, place_lat, place_lon), 1)
        url = item.get("wikipedia") or item.get("website")

        places.append(
            LocalPlace(
                name=display_name.split(",")[0].strip() or display_name,
                category=label,
                distance_miles=distance,
                url=url if isinstance(url, str) else None,
            )
        )
    return places


async def search_category(
    query: str,
    label: str,
    latitude: float,
    longitude: float,
    *,
    client: httpx.AsyncClient,
    limit: int = 5,
    timeout: float = 8.0,
) -> List[LocalPlace]:
    """Search one category inside the bounding box; raises on transport or status errors."""
    params = {
        "q": query,
        "format": "json",
        "limit": str(limit),
        "viewbox": build_viewbox(latitude, longitude),
        "bounded": "1",
    }
    resp = await with_deadline(client.get(NOMINATIM_URL, params=params), timeout, f"OSM '{query}' query timed out.")
    if not resp.is_success:
        raise TransportFailure(f"OSM '{query}' query failed with status {resp.status_code}")
    return parse_places(resp.json(), label, latitude, longitude)[:limit]


def merge_places(place_lists: List[List[LocalPlace]]) -> List[LocalPlace]:
    """Concatenate category results, keeping the first place seen for each name."""
    seen: set[str] = set()
    merged: List[LocalPlace] = []
    for places in place_lists:
        for place in places:
            key = dedup_key(place.name)
            if key in seen:
                continue
            seen.add(key)
            merged.append(place)
    return merged


async def fetch_local_places(
    latitude: Optional[float],
    longitude: Optional[float],
    *,
    client: httpx.AsyncClient,
    limit: int = 5,
    concurrency: int = 3,
    timeout: float = 8.0,
) -> List[LocalPlace]:
    """
    Search every category around the coordinates and merge the results.

    A failing category contributes nothing; the others still run. Without
    coordinates there is nothing to search and an empty list is returned.
    """
    if latitude is None or longitude is None:
        return []

    async def run(entry: Tuple[str, str]) -> List[LocalPlace]:
        query, label = entry
        return await best_effort(
            search_category(query, label, latitude, longitude, client=client, limit=limit, timeout=timeout),
            default=list,
            label=f"OSM '{query}' query",
        )

    per_category = await map_bounded(PLACE_QUERIES, concurrency, run)
    merged = merge_places(per_category)
    logger.info("Found %d distinct places across %d categories", len(merged), len(PLACE_QUERIES))
    return merged

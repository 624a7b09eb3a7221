"""Prompting the model with gathered context and parsing its line-oriented reply.

Reply grammar (one record per line):

    ANCHOR|<CATEGORY>|<Name>|<Why it matters>
    <BUCKET_LABEL>: <sentence>

Anything else is ignored. Bucket labels are kept exactly as the model wrote
them (lower-cased); they are not checked against ``ContextBucket``.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Protocol

from rapport.domain import Anchor, GeoResult, LocalPlace, StrategicContextBuckets, Synthesis
from rapport.errors import EmptySynthesis
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="synthesis")

ANCHOR_PREFIX = "ANCHOR|"
MIN_ANCHOR_FIELDS = 4

_JSON_FENCE_RE = re.compile(r"```json([\s\S]*?)```", re.IGNORECASE)
_ANY_FENCE_RE = re.compile(r"```([\s\S]*?)```")

SYSTEM_PROMPT = "\n".join([
    "You are preparing a knowledge brief so a mortgage loan officer can sound like a genuine neighbor.",
    "",
    "INPUT JSON is a light scaffolding:",
    "- location: {city, state, zip, coordinates}",
    "- strategic_context: bucket hints (state_identity, state_trends, seasonal_rhythms, community_traditions, "
    "iconic_destinations, outdoor_showstoppers, neighborhood_archetypes, home_projects, economic_momentum, "
    "population_growth, desirability_factors, sports_heat, food_and_drink, civic_culture, housing_signals, "
    "life_stage_notes, positive_news, emotional_connectors, city_snapshot)",
    "- anchor_spots: notable venues with metadata",
    "",
    "Bring your own knowledge of geography, attractions, sports, economy, population, and culture. Use the hints "
    "as anchors when they're helpful, but feel free to supplement or expand with what you already know about the "
    "region. Accuracy matters more than repeating the provided blurbs.",
    "",
    "TASK:",
    "Create a concise knowledge brief organized by bucket so the officer understands:",
    "- Iconic attractions and day trips (theme parks, stadiums, scenic drives)",
    "- Seasonal lifestyle patterns and outdoor highlights",
    "- Major employers, developments, and growth stats",
    "- Reasons people move there (schools, cost of living, amenities)",
    "- Food, sports, culture, and emotional pride points",
    "",
    "First, suggest 5-6 diverse local anchors using the format ANCHOR|Category|Name|Why it matters. Categories can "
    "include ICONIC_DESTINATIONS, OUTDOOR_SHOWSTOPPERS, FOOD_AND_DRINK, SPORTS_HEAT, ECONOMIC_MOMENTUM, "
    "COMMUNITY_TRADITIONS, etc.",
    "After the anchor lines, provide the knowledge brief: for each bucket that has insight, start a new line with "
    "the bucket name in uppercase followed by a colon, then list one or two sentences. Example:",
    "ANCHOR|FOOD_AND_DRINK|Joe's Farm Grill|Farm-to-table courtyard in Agritopia where locals gather for live music nights.",
    "STATE_IDENTITY: Arizona blends desert living with booming tech corridors.",
    "ICONIC_DESTINATIONS: Phoenix sits less than 30 minutes from Camelback Mountain and the Desert Botanical Garden.",
    "",
    "Guidance:",
    "- Provide 5-6 anchor lines before the bucket summary.",
    "- Provide 1-2 sentences per bucket; combine related buckets when appropriate.",
    "- Blend provided anchors with your broader knowledge (e.g., mention Disneyland, State Farm Stadium playoff runs, "
    "Intel fabs, fast population growth).",
    "- Avoid repeating the same fact in multiple places; make each sentence additive.",
    "- Keep language educational, friendly, and non-salesy.",
    "- If you truly know nothing about a bucket, skip it rather than inventing specifics.",
    "",
    "Compliance:",
    "- No mention of crime, demographics, income levels, or politics.",
    "- Do not assume personal finances, debt, credit, job status, or family situation.",
    "- Do not promise rates or savings.",
])


class ChatClient(Protocol):
    async def chat(self, messages: list[dict]) -> str: ...


def build_synthesis_context(
    geo: GeoResult,
    strategic_context: StrategicContextBuckets,
    places: List[LocalPlace],
    *,
    max_anchor_spots: int = 6,
) -> Dict[str, Any]:
    """Assemble the JSON scaffold sent to the model."""
    coordinates = None
    if geo.has_coordinates:
        coordinates = {"latitude": geo.latitude, "longitude": geo.longitude}
    return {
        "location": {
            "zip": geo.zip,
            "city": geo.city,
            "state": geo.state,
            "coordinates": coordinates,
        },
        "strategic_context": strategic_context.model_dump(),
        "anchor_spots": [place.model_dump() for place in places[:max_anchor_spots]],
    }


def build_synthesis_messages(context: Dict[str, Any]) -> list[dict]:
    """System prompt plus the serialized context as the user turn."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": json.dumps(context)},
    ]


def extract_model_text(content: str) -> str:
    """Unwrap a fenced block if present (a ```json block wins over any other) and trim."""
    match = _JSON_FENCE_RE.search(content) or _ANY_FENCE_RE.search(content)
    if match:
        content = match.group(1)
    return content.strip()


def parse_synthesis(content: str) -> Synthesis:
    """
    Parse a model reply into anchors and a knowledge mapping.

    Malformed anchor lines and lines without a colon are dropped silently.
    Raises EmptySynthesis when nothing usable is left.
    """
    knowledge: Dict[str, List[str]] = {}
    anchors: List[Anchor] = []

    for raw_line in extract_model_text(content).splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if line.startswith(ANCHOR_PREFIX):
            parts = [part.strip() for part in line.split("|")]
            if len(parts) >= MIN_ANCHOR_FIELDS:
                anchors.append(Anchor(category=parts[1], name=parts[2], summary=" ".join(parts[3:])))
            continue

        label, sep, sentence = line.partition(":")
        if not sep:
            continue
        label = label.strip().lower()
        sentence = sentence.strip()
        if not label or not sentence:
            continue
        knowledge.setdefault(label, []).append(sentence)

    if not knowledge and not anchors:
        raise EmptySynthesis("Grok returned an empty synthesis payload.")
    return Synthesis(knowledge=knowledge, anchors=anchors)


async def synthesize(context: Dict[str, Any], client: ChatClient) -> Synthesis:
    """Ask the model for a brief and parse it; every failure propagates."""
    reply = await client.chat(build_synthesis_messages(context))
    synthesis = parse_synthesis(reply)
    logger.info(
        "Synthesis parsed: %d anchors, %d knowledge buckets",
        len(synthesis.anchors),
        len(synthesis.knowledge),
    )
    return synthesis

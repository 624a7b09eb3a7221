"""Fan the snippet source out across the fixed research topics for a location."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from rapport.concurrency import map_bounded
from rapport.data_sources.base import SnippetQuery
from rapport.domain import ContextBucket, StrategicContextBuckets, dedup_key
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="strategic_context")

DEFAULT_BUCKET_CAP = 3


@dataclass(frozen=True)
class BucketQuery:
    """Question templates for one topic; ``{city}``, ``{state}`` and ``{zip}`` are substituted."""
    key: ContextBucket
    templates: Tuple[str, ...]
    cap: int = DEFAULT_BUCKET_CAP


STRATEGIC_QUERIES: Tuple[BucketQuery, ...] = (
    BucketQuery(
        ContextBucket.STATE_IDENTITY,
        (
            "How do residents describe the character of {state}? Mention pride points or what makes living there special.",
            "Signature cultural traits or statewide identity markers people associate with {state}.",
            "What do long-time residents love telling newcomers about {state}?",
        ),
        cap=2,
    ),
    BucketQuery(
        ContextBucket.STATE_TRENDS,
        (
            "What lifestyle or outdoor trends are residents across {state} excited about lately? Share vivid activities locals mention.",
            "Popular weekend adventures {state} homeowners rave about lately.",
            "Seasonal highlights or statewide events people across {state} keep talking about.",
        ),
    ),
    BucketQuery(
        ContextBucket.SEASONAL_RHYTHMS,
        (
            "What seasonal rhythms define life in {state}? Mention weather extremes and how locals adapt.",
            "Traditions or rituals people in {state} follow as seasons shift (snowbirds, monsoon storms, summer nights).",
            "How do homeowners in {state} prep their homes for upcoming seasons?",
        ),
    ),
    BucketQuery(
        ContextBucket.COMMUNITY_TRADITIONS,
        (
            "Signature annual events, markets, or traditions in {city}, {state} that locals celebrate.",
            "Upcoming community events or festivals residents in {city}, {state} are buzzing about.",
            "Family-friendly or foodie-focused traditions unique to {city}, {state}.",
        ),
    ),
    BucketQuery(
        ContextBucket.ICONIC_DESTINATIONS,
        (
            "Iconic attractions or major destinations in or near {city}, {state} that locals brag about (theme parks, stadiums, landmarks).",
            "Bucket-list spots around {city}, {state} that friends and family visit when they come to town.",
            "Within an hour of {city}, {state}, what well-known attractions draw the biggest crowds?",
        ),
    ),
    BucketQuery(
        ContextBucket.OUTDOOR_SHOWSTOPPERS,
        (
            "Scenic drives, lakes, mountains, or outdoor escapes near {city}, {state} that locals love for day trips.",
            "Where do residents of {city}, {state} head when they want nature or a change of scenery without flying?",
            "Popular golf courses, resorts, or hiking loops people in {city}, {state} keep talking about this season.",
        ),
    ),
    BucketQuery(
        ContextBucket.NEIGHBORHOOD_ARCHETYPES,
        (
            "Iconic neighborhoods or master-planned communities around {city}, {state} and what they are known for.",
            "Up-and-coming corridors or historic districts near {city}, {state} that locals love to brag about.",
            "Describe the vibe locals associate with neighborhoods near ZIP {zip}.",
        ),
    ),
    BucketQuery(
        ContextBucket.HOME_PROJECTS,
        (
            "Homeowners in ZIP {zip} near {city}, {state}: what improvement or renovation projects are trending or commonly discussed?",
            "What kinds of home upgrades or backyard projects are popular in ZIP {zip} these days, and why?",
            "Any incentives or local contractors people mention when tackling projects around {city}, {state}?",
        ),
        cap=2,
    ),
    BucketQuery(
        ContextBucket.ECONOMIC_MOMENTUM,
        (
            "Major employers, new campuses, or infrastructure projects shaping {city}, {state} right now.",
            "What big developments (factories, tech hubs, hospitals) are in the pipeline around {city}, {state}?",
            "Any headline-making investments or revitalization efforts near {city}, {state} that residents keep mentioning?",
        ),
    ),
    BucketQuery(
        ContextBucket.POPULATION_GROWTH,
        (
            "Summarize population or growth trends for {city}, {state} or ZIP {zip}. Why are people moving there?",
            "Recent migration or growth stats that show how {city}, {state} is changing.",
            "How has the population around {city}, {state} shifted over the past few years?",
        ),
        cap=2,
    ),
    BucketQuery(
        ContextBucket.DESIRABILITY_FACTORS,
        (
            "Top reasons people choose to move to {city}, {state}—schools, lifestyle, cost of living, climate, etc.",
            "What makes {city}, {state} desirable compared with surrounding areas?",
            "Awards or rankings that highlight {city}, {state} as a great place to live.",
        ),
    ),
    BucketQuery(
        ContextBucket.SPORTS_HEAT,
        (
            "Sports teams, youth leagues, or game-day traditions people in {city}, {state} rally around lately.",
            "Which local teams, rec leagues, or outdoor sports keep {city}, {state} residents fired up?",
            "Any big wins, rivalry games, or upcoming tournaments locals are buzzing about in {city}, {state}.",
        ),
    ),
    BucketQuery(
        ContextBucket.FOOD_AND_DRINK,
        (
            "Beloved local restaurants, cafes, or breweries in {city}, {state} that residents rave about.",
            "Signature dishes or food experiences people insist visitors try in {city}, {state}.",
            "Popular farmers markets, craft beverage spots, or foodie events in {city}, {state}.",
        ),
    ),
    BucketQuery(
        ContextBucket.CIVIC_CULTURE,
        (
            "Museums, performing arts centers, or cultural institutions that define {city}, {state}.",
            "Recent civic projects or community centers locals are excited about in {city}, {state}.",
            "Where do people gather for arts, libraries, or community programs near {city}, {state}?",
        ),
        cap=2,
    ),
    BucketQuery(
        ContextBucket.HOUSING_SIGNALS,
        (
            "Housing market signals around ZIP {zip}: home ages, new builds, or design styles locals mention.",
            "Any chatter about inventory, price trends, or neighborhood transitions in {city}, {state}.",
            "How are neighbors around {city}, {state} leveraging equity or refreshing older homes?",
        ),
        cap=2,
    ),
    BucketQuery(
        ContextBucket.LIFE_STAGE_NOTES,
        (
            "What life stages dominate neighborhoods near ZIP {zip}? Mention families, retirees, or young professionals without using sensitive statistics.",
            "Any signs of multigenerational living, downsizing, or move-up buyers in {city}, {state}.",
            "How do locals describe the mix of people settling into {city}, {state} neighborhoods lately?",
        ),
        cap=2,
    ),
    BucketQuery(
        ContextBucket.POSITIVE_NEWS,
        (
            "Recent good news stories around {city}, {state}—new parks, business expansions, or community wins.",
            "Infrastructure improvements or openings locals near {city}, {state} are excited about.",
            "Feel-good headlines or local achievements people in {city}, {state} are proud of.",
        ),
        cap=2,
    ),
    BucketQuery(
        ContextBucket.EMOTIONAL_CONNECTORS,
        (
            "Where do locals in {city}, {state} show pride or nostalgia—longstanding restaurants, charity events, volunteer traditions?",
            "Beloved community rituals, memorials, or volunteer efforts that bring neighbors together in {city}, {state}.",
            "What stories make residents of {city}, {state} light up when they talk about home?",
        ),
        cap=2,
    ),
)

# Buckets consulted, in order, for the one-line city snapshot.
SNAPSHOT_PRIORITY: Tuple[ContextBucket, ...] = (
    ContextBucket.STATE_IDENTITY,
    ContextBucket.STATE_TRENDS,
    ContextBucket.COMMUNITY_TRADITIONS,
    ContextBucket.ICONIC_DESTINATIONS,
    ContextBucket.OUTDOOR_SHOWSTOPPERS,
    ContextBucket.NEIGHBORHOOD_ARCHETYPES,
    ContextBucket.FOOD_AND_DRINK,
    ContextBucket.EMOTIONAL_CONNECTORS,
    ContextBucket.POSITIVE_NEWS,
)


def empty_strategic_buckets() -> StrategicContextBuckets:
    """All 18 buckets present and empty, no snapshot."""
    return StrategicContextBuckets()


def render_template(template: str, *, city: str, state: str, zip_code: str) -> str:
    return template.replace("{city}", city).replace("{state}", state).replace("{zip}", zip_code)


def merge_bucket(responses: Sequence[object], cap: int) -> List[str]:
    """
    Fill a bucket from settled per-template results, in template order.

    Failed templates (exceptions) are skipped. Sentences are compared
    case-insensitively. Once ``cap`` is reached the remaining output is ignored.
    """
    bucket: List[str] = []
    seen: set[str] = set()
    for response in responses:
        if isinstance(response, BaseException):
            logger.debug("Skipping failed template query: %s", response)
            continue
        for snippet in response:
            key = dedup_key(snippet)
            if key in seen:
                continue
            seen.add(key)
            bucket.append(snippet)
            if len(bucket) >= cap:
                return bucket
    return bucket


def pick_city_snapshot(buckets: StrategicContextBuckets) -> Optional[str]:
    for key in SNAPSHOT_PRIORITY:
        sentences = buckets.bucket(key)
        if sentences:
            return sentences[0]
    return None


async def fetch_strategic_context(
    city: str,
    state: str,
    zip_code: str,
    *,
    query_snippets: SnippetQuery,
    concurrency: int = 4,
) -> StrategicContextBuckets:
    """
    Gather capped snippets for every research topic.

    Without a state there is nothing meaningful to ask, so no query is issued.
    A missing city falls back to the state name in the templates.
    """
    if not state:
        return empty_strategic_buckets()

    place = city or state

    async def fill(bucket_query: BucketQuery) -> Tuple[ContextBucket, List[str]]:
        queries = [render_template(t, city=place, state=state, zip_code=zip_code) for t in bucket_query.templates]
        responses = await asyncio.gather(
            *(query_snippets(query, bucket_query.cap) for query in queries),
            return_exceptions=True,
        )
        return bucket_query.key, merge_bucket(responses, bucket_query.cap)

    entries = await map_bounded(STRATEGIC_QUERIES, concurrency, fill)

    buckets = empty_strategic_buckets()
    for key, sentences in entries:
        setattr(buckets, key.value, sentences)
    buckets.city_snapshot = pick_city_snapshot(buckets)

    filled = sum(1 for _, sentences in entries if sentences)
    logger.info("Strategic context for %s, %s: %d/%d buckets filled", place, state, filled, len(entries))
    return buckets

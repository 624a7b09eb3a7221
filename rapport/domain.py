"""Domain vocabulary and schemas for the rapport pipeline.

Two bucket vocabularies live side by side on purpose. ``ContextBucket`` is the
closed set of 18 research topics the strategic-context aggregator fills.
``KnowledgeBrief`` is an open mapping keyed by whatever labels the model
chose to write, which may or may not match those topics.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _StrictBaseModel(BaseModel):
    """Base model with strict extra handling."""

    model_config = ConfigDict(extra="forbid")


class ContextBucket(str, Enum):
    """Fixed research topics gathered from the snippet source."""
    STATE_IDENTITY = "state_identity"
    STATE_TRENDS = "state_trends"
    SEASONAL_RHYTHMS = "seasonal_rhythms"
    COMMUNITY_TRADITIONS = "community_traditions"
    ICONIC_DESTINATIONS = "iconic_destinations"
    OUTDOOR_SHOWSTOPPERS = "outdoor_showstoppers"
    NEIGHBORHOOD_ARCHETYPES = "neighborhood_archetypes"
    HOME_PROJECTS = "home_projects"
    ECONOMIC_MOMENTUM = "economic_momentum"
    POPULATION_GROWTH = "population_growth"
    DESIRABILITY_FACTORS = "desirability_factors"
    SPORTS_HEAT = "sports_heat"
    FOOD_AND_DRINK = "food_and_drink"
    CIVIC_CULTURE = "civic_culture"
    HOUSING_SIGNALS = "housing_signals"
    LIFE_STAGE_NOTES = "life_stage_notes"
    POSITIVE_NEWS = "positive_news"
    EMOTIONAL_CONNECTORS = "emotional_connectors"


KnowledgeBrief = Dict[str, List[str]]


def dedup_key(text: str) -> str:
    """Normalized identity used wherever sentences or place names are deduplicated."""
    return text.strip().lower()


class GeoResult(BaseModel):
    """Resolved location for a ZIP code."""
    model_config = ConfigDict(frozen=True)

    zip: str
    city: str
    state: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class StrategicContextBuckets(_StrictBaseModel):
    """Capped, deduplicated snippets per research topic plus a one-line city snapshot."""
    state_identity: List[str] = Field(default_factory=list)
    state_trends: List[str] = Field(default_factory=list)
    seasonal_rhythms: List[str] = Field(default_factory=list)
    community_traditions: List[str] = Field(default_factory=list)
    iconic_destinations: List[str] = Field(default_factory=list)
    outdoor_showstoppers: List[str] = Field(default_factory=list)
    neighborhood_archetypes: List[str] = Field(default_factory=list)
    home_projects: List[str] = Field(default_factory=list)
    economic_momentum: List[str] = Field(default_factory=list)
    population_growth: List[str] = Field(default_factory=list)
    desirability_factors: List[str] = Field(default_factory=list)
    sports_heat: List[str] = Field(default_factory=list)
    food_and_drink: List[str] = Field(default_factory=list)
    civic_culture: List[str] = Field(default_factory=list)
    housing_signals: List[str] = Field(default_factory=list)
    life_stage_notes: List[str] = Field(default_factory=list)
    positive_news: List[str] = Field(default_factory=list)
    emotional_connectors: List[str] = Field(default_factory=list)
    city_snapshot: Optional[str] = None

    def bucket(self, key: ContextBucket) -> List[str]:
        return getattr(self, key.value)


class LocalPlace(_StrictBaseModel):
    """Nearby venue found by the place source; identity is the lower-cased name."""
    name: str
    category: Optional[str] = None
    distance_miles: Optional[float] = None
    url: Optional[str] = None
    summary: Optional[str] = None


class Anchor(_StrictBaseModel):
    """Model-curated venue recommendation."""
    category: str
    name: str
    summary: str


class Synthesis(_StrictBaseModel):
    """Structured result of parsing one model reply."""
    knowledge: KnowledgeBrief = Field(default_factory=dict)
    anchors: List[Anchor] = Field(default_factory=list)


class RapportSummary(_StrictBaseModel):
    """Talk-track hooks; filled downstream, emitted empty by the pipeline."""
    local_lifestyle_hook: str = ""
    equity_or_payment_hook: str = ""
    intent_probe: str = ""


class RawSupportingData(_StrictBaseModel):
    """Unsynthesized inputs kept alongside the brief."""
    strategic_context: StrategicContextBuckets
    local_places: List[LocalPlace] = Field(default_factory=list)


class RapportResponse(_StrictBaseModel):
    """Full payload returned for a ZIP code and stored in the response cache."""
    zip: str
    city: str
    state: str
    summary_card: RapportSummary = Field(default_factory=RapportSummary)
    knowledge_brief: KnowledgeBrief = Field(default_factory=dict)
    anchors: List[Anchor] = Field(default_factory=list)
    raw_supporting_data: RawSupportingData

import pytest
from pydantic import ValidationError

from rapport.domain import (
    Anchor,
    ContextBucket,
    GeoResult,
    LocalPlace,
    RapportResponse,
    RawSupportingData,
    StrategicContextBuckets,
    dedup_key,
)


def test_dedup_key_normalizes_case_and_whitespace():
    assert dedup_key("  Old Town ") == dedup_key("old town")


def test_strategic_buckets_cover_every_context_bucket():
    buckets = StrategicContextBuckets()
    for key in ContextBucket:
        assert buckets.bucket(key) == []
    assert buckets.city_snapshot is None
    assert set(buckets.model_dump()) == {key.value for key in ContextBucket} | {"city_snapshot"}


def test_strict_models_reject_unknown_fields():
    with pytest.raises(ValidationError):
        LocalPlace(name="Chaparral Park", rating=5)


def test_geo_result_is_frozen():
    geo = GeoResult(zip="85260", city="Scottsdale", state="AZ")
    assert not geo.has_coordinates
    with pytest.raises(ValidationError):
        geo.city = "Phoenix"


def test_response_defaults_and_shape():
    response = RapportResponse(
        zip="85260",
        city="Scottsdale",
        state="AZ",
        anchors=[Anchor(category="SPORTS_HEAT", name="Chase Field", summary="Diamondbacks home games.")],
        raw_supporting_data=RawSupportingData(strategic_context=StrategicContextBuckets()),
    )
    dumped = response.model_dump(mode="json")
    assert list(dumped) == [
        "zip",
        "city",
        "state",
        "summary_card",
        "knowledge_brief",
        "anchors",
        "raw_supporting_data",
    ]
    assert dumped["summary_card"] == {"local_lifestyle_hook": "", "equity_or_payment_hook": "", "intent_probe": ""}
    assert dumped["knowledge_brief"] == {}
    assert dumped["raw_supporting_data"]["local_places"] == []

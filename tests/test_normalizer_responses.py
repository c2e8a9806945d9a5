from __future__ import annotations

from inkfinder.models.domain import (
    BodyPartIntent,
    ExclusionIntent,
    ImageRecord,
    KeywordIntent,
    PaginationState,
    PathIntent,
    SimilarityIntent,
    intent_from_params,
    intent_to_params,
)
from inkfinder.search.normalizer import filename_from_path, normalize, synthesize_id
from inkfinder.search.responses import render, render_clarification, render_failure


def test_filename_from_path() -> None:
    assert filename_from_path("local:arm/rose.jpg") == "rose.jpg"
    assert filename_from_path("local:rose.jpg") == "rose.jpg"
    assert filename_from_path("rose.jpg") == "rose.jpg"


def test_normalize_lifts_insights_and_keeps_first_per_path() -> None:
    rows = [
        {"id": "a1", "path": "local:arm/rose.jpg", "analysis": {"insights": {"bodyPart": "arm", "style": "fine"}}},
        {"id": "e1", "image_path": "local:arm/rose.jpg", "embedding_type": "full"},
        {"image_path": "local:leg/dragon.jpg", "embedding_type": "crop", "similarity": 0.75},
        {"id": "broken"},
    ]

    records = normalize(rows, "keyword")

    assert [record.path for record in records] == ["local:arm/rose.jpg", "local:leg/dragon.jpg"]
    rose, dragon = records
    assert rose.id == "a1"
    assert rose.attributes.body_part == "arm"
    assert rose.attributes.extra == {"style": "fine"}
    assert dragon.id == synthesize_id("keyword", "local:leg/dragon.jpg")
    assert dragon.filename == "dragon.jpg"
    assert dragon.similarity == 0.75
    assert dragon.embedding_type == "crop"


def test_normalize_is_idempotent() -> None:
    rows = [{"path": "local:a/one.jpg"}, {"path": "local:b/two.jpg"}]

    once = normalize(rows, "path")

    assert normalize(once, "path") == once


def test_synthesized_ids_are_stable() -> None:
    assert synthesize_id("path", "local:a.jpg") == synthesize_id("path", "local:a.jpg")
    assert synthesize_id("path", "local:a.jpg") != synthesize_id("path", "local:b.jpg")


def test_record_serialization_is_camel_case() -> None:
    record = normalize([{"path": "local:x.jpg", "insights": {"isLikelyTattoo": False}}], "noTattoo")[0]

    payload = record.to_dict()

    assert payload["attributes"] == {"isLikelyTattoo": False}
    assert "similarity" not in payload
    assert isinstance(record, ImageRecord)


def test_render_pluralization() -> None:
    arm = BodyPartIntent(part="arm", limit=12)

    assert render(arm, 3) == "Here are 3 images with tattoos on the arm."
    assert render(arm, 1) == "Here is 1 image with tattoos on the arm."
    assert render(ExclusionIntent(limit=12), 2) == "Here are 2 images without tattoos."
    assert render(PathIntent(fragment="summer", limit=12), 1) == 'I found 1 image in the path containing "summer".'


def test_render_zero_results_names_the_term() -> None:
    message = render(KeywordIntent(term="rose", limit=12), 0)

    assert '"rose"' in message
    assert message.startswith("I couldn't find")


def test_failure_and_clarification_differ_from_no_results() -> None:
    intent = SimilarityIntent(limit=12)

    assert render_failure(intent) != render(intent, 0)
    assert "compare" in render_clarification(intent)
    assert "body part" in render_clarification(BodyPartIntent(part=None, limit=12))


def test_intent_params_round_trip() -> None:
    params = intent_to_params(SimilarityIntent(reference_path="local:a.jpg", raw_image=b"x", limit=5))

    assert params == {"type": "similarity", "referencePath": "local:a.jpg", "limit": 5, "threshold": None, "hasImage": True}
    assert intent_from_params(params, 12) == SimilarityIntent(reference_path="local:a.jpg", limit=5)
    assert intent_from_params({"type": "mystery", "text": "koi"}, 12) == KeywordIntent(term="koi", limit=12)


def test_pagination_state() -> None:
    state = PaginationState(page=2, page_size=20, total_count=45)

    assert state.offset == 40
    assert state.page_count == 3


def test_intent_params_with_unusable_numbers_use_defaults() -> None:
    assert intent_from_params({"type": "bodyPart", "part": "arm", "limit": "lots"}, 20) == BodyPartIntent(
        part="arm", limit=20
    )
    assert intent_from_params({"type": "similarity", "referencePath": "local:a.jpg", "threshold": "high"}, 12) == (
        SimilarityIntent(reference_path="local:a.jpg", limit=12)
    )

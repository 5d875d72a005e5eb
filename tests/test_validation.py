import copy

import pytest

from story_suite.errors import FieldValidationError
from story_suite.validation import check_engagement_score, validate_response

from conftest import story_payload


def _score(**overrides):
    score = copy.deepcopy(story_payload()["engagementScore"])
    score.update(overrides)
    return score


def test_valid_score_is_kept():
    validated = validate_response(story_payload())
    assert validated["engagementScore"]["total"] == 13
    assert validated["engagementScore"]["justification"]["e"] == "A clear human story."


def test_score_missing_total_becomes_null():
    score = _score()
    del score["total"]
    validated = validate_response(story_payload(engagementScore=score))
    assert validated["engagementScore"] is None
    # The rest of the record is still accepted.
    assert validated["summary"].startswith("A nursery")
    assert len(validated["factSections"]) == 3


@pytest.mark.parametrize(
    "overrides",
    [
        {"s": "4"},
        {"p": None},
        {"i": 6},
        {"c": 0},
        {"e": True},
        {"total": 14},
        {"justification": None},
        {"justification": {"s": "only one"}},
    ],
)
def test_malformed_score_is_nulled(overrides):
    validated = validate_response(story_payload(engagementScore=_score(**overrides)))
    assert validated["engagementScore"] is None


def test_check_engagement_score_reports_field():
    with pytest.raises(FieldValidationError) as excinfo:
        check_engagement_score({"s": 1})
    assert excinfo.value.field == "engagementScore"
    assert "total" in excinfo.value.detail


def test_score_accepts_integral_floats():
    score = _score(s=3.0, total=13.0)
    validated = validate_response(story_payload(engagementScore=score))
    assert validated["engagementScore"]["s"] == 3
    assert isinstance(validated["engagementScore"]["total"], int)


def test_legacy_spice_score_key():
    payload = story_payload()
    payload["spiceScore"] = payload.pop("engagementScore")
    validated = validate_response(payload)
    assert validated["engagementScore"]["total"] == 13
    assert "spiceScore" not in validated


def test_absent_score_is_null():
    payload = story_payload()
    del payload["engagementScore"]
    assert validate_response(payload)["engagementScore"] is None


def test_non_array_fields_become_empty_lists():
    validated = validate_response(
        story_payload(highlights="one big string", factSections={"title": "x"}, quotes=None)
    )
    assert validated["highlights"] == []
    assert validated["factSections"] == []
    assert validated["quotes"] == []


def test_missing_arrays_become_empty_lists():
    validated = validate_response({"title": "Only a title"})
    assert validated["highlights"] == []
    assert validated["factSections"] == []
    assert validated["quotes"] == []
    assert validated["title"] == "Only a title"


def test_highlights_capped_and_filtered():
    validated = validate_response(
        story_payload(highlights=["a", 3, "b", "  ", "c", "d", "e"])
    )
    assert validated["highlights"] == ["a", "b", "c", "d"]


def test_fact_sections_keep_objects_only():
    sections = [
        {"title": "First", "content": "One."},
        "not an object",
        {"title": "Second"},
        {"title": 3, "content": ["odd"]},
    ]
    validated = validate_response(story_payload(factSections=sections))
    assert [s["title"] for s in validated["factSections"]] == ["First", "Second", "3"]
    assert validated["factSections"][1]["content"] == ""


def test_quotes_accept_strings_and_objects():
    quotes = [
        "Plain quote",
        {"text": "Spoken", "speaker": " Maria "},
        {"quote": "Old key", "speaker": ""},
        {"speaker": "No text"},
        42,
    ]
    validated = validate_response(story_payload(quotes=quotes))
    assert validated["quotes"] == [
        {"text": "Plain quote", "speaker": None},
        {"text": "Spoken", "speaker": "Maria"},
        {"text": "Old key", "speaker": None},
    ]

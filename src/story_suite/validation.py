"""Validate the parsed model output and degrade optional pieces instead of failing."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .errors import FieldValidationError
from .schema import format_errors, schema_errors

logger = logging.getLogger(__name__)

MAX_HIGHLIGHTS = 4
SCORE_DIMENSIONS = ("s", "p", "i", "c", "e")
# Earlier prompt versions called the score "spiceScore".
SCORE_KEYS = ("engagementScore", "spiceScore")


def _as_list(data: Dict[str, Any], key: str) -> List[Any]:
    value = data.get(key)
    if isinstance(value, list):
        return value
    if value is not None:
        logger.warning("Expected %s to be an array, got %s; using []", key, type(value).__name__)
    return []


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _highlights(data: Dict[str, Any]) -> List[str]:
    items = [item.strip() for item in _as_list(data, "highlights") if isinstance(item, str)]
    return [item for item in items if item][:MAX_HIGHLIGHTS]


def _fact_sections(data: Dict[str, Any]) -> List[Dict[str, str]]:
    sections = []
    for item in _as_list(data, "factSections"):
        if not isinstance(item, dict):
            logger.warning("Dropping non-object fact section: %r", item)
            continue
        sections.append(
            {
                "title": _text(item.get("title")).strip(),
                "content": _text(item.get("content")).strip(),
            }
        )
    return sections


def _quotes(data: Dict[str, Any]) -> List[Dict[str, Optional[str]]]:
    quotes = []
    for item in _as_list(data, "quotes"):
        if isinstance(item, str):
            text, speaker = item, None
        elif isinstance(item, dict):
            text, speaker = item.get("text") or item.get("quote"), item.get("speaker")
        else:
            continue
        if not isinstance(text, str) or not text.strip():
            continue
        speaker = speaker.strip() if isinstance(speaker, str) and speaker.strip() else None
        quotes.append({"text": text.strip(), "speaker": speaker})
    return quotes


def check_engagement_score(score: Any) -> Dict[str, Any]:
    """
    Return ``score`` if it is a complete, well-typed SPICE score.

    Raises FieldValidationError when any dimension, the total, or the
    justification map is missing or malformed, or when the total is not the
    sum of the five dimensions.
    """
    errors = schema_errors(score)
    if errors:
        raise FieldValidationError("engagementScore", format_errors(errors))
    expected = sum(score[dim] for dim in SCORE_DIMENSIONS)
    if score["total"] != expected:
        raise FieldValidationError(
            "engagementScore", f"total {score['total']} does not equal sum {expected}"
        )
    return {
        **{dim: int(score[dim]) for dim in SCORE_DIMENSIONS},
        "total": int(score["total"]),
        "justification": {dim: score["justification"][dim] for dim in SCORE_DIMENSIONS},
    }


def _engagement_score(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    key = next((k for k in SCORE_KEYS if k in data), None)
    if key is None or data[key] is None:
        return None
    try:
        return check_engagement_score(data[key])
    except FieldValidationError as exc:
        logger.warning("Discarding malformed engagement score: %s", exc.detail)
        return None


def validate_response(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalize parsed model output.

    Never raises for shape problems: arrays that are not arrays become ``[]``
    and a malformed engagement score becomes ``None``. All other keys are
    passed through untouched.
    """
    validated = dict(data)
    for key in SCORE_KEYS[1:]:
        validated.pop(key, None)
    validated["highlights"] = _highlights(data)
    validated["factSections"] = _fact_sections(data)
    validated["quotes"] = _quotes(data)
    validated["engagementScore"] = _engagement_score(data)
    return validated

"""Recover a JSON object from model output that is almost, but not quite, JSON.

Only two known defects are repaired, both produced by models that over-escape:

* ``\\'``: single quotes escaped with a backslash (invalid in JSON strings).
* a backslash directly before whitespace, e.g. ``\\ `` or a backslash at the
  end of a line.

Anything else is left to the JSON parser to reject.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict

from .errors import NoDelimitersError, ParseError

logger = logging.getLogger(__name__)

_ESCAPED_SINGLE_QUOTE = re.compile(r"\\'")
_BACKSLASH_BEFORE_WHITESPACE = re.compile(r"(?<!\\)\\(\s)")


def extract_json_object(raw: str) -> str:
    """Return the text from the first ``{`` through the last ``}`` inclusive."""
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise NoDelimitersError(
            "Analysis service response did not contain recognizable JSON object delimiters.",
            raw=raw,
        )
    return raw[start : end + 1]


def repair_json_text(text: str) -> str:
    """
    Apply the known escaping repairs.

    Pure and idempotent: ``repair_json_text(repair_json_text(s)) == repair_json_text(s)``.
    Text with no ``\\'`` and no backslash-whitespace pairs is returned unchanged.
    """
    repaired = text
    # Each pass removes one backslash per match, so the loop terminates.
    while _ESCAPED_SINGLE_QUOTE.search(repaired):
        repaired = _ESCAPED_SINGLE_QUOTE.sub("'", repaired)
    return _BACKSLASH_BEFORE_WHITESPACE.sub(r"\1", repaired)


def recover_json(raw: str) -> Dict[str, Any]:
    """
    Parse the JSON object embedded in ``raw``.

    Raises NoDelimitersError when no object can be located and ParseError when
    the repaired text still fails to parse. On failure the raw, extracted, and
    repaired strings are logged for operators; they are never returned.
    """
    text = raw.strip()
    try:
        extracted = extract_json_object(text)
    except NoDelimitersError:
        logger.error("No JSON object delimiters in completion. Raw response:\n%s", text)
        raise

    repaired = repair_json_text(extracted)
    if repaired != extracted:
        logger.debug("Applied cleanup transformations to JSON string.")

    try:
        data = json.loads(repaired)
    except json.JSONDecodeError as exc:
        logger.error(
            "Error parsing completion JSON: %s\n"
            "--- Raw response ---\n%s\n"
            "--- Extracted JSON (before cleanup) ---\n%s\n"
            "--- Cleaned JSON (attempted fix) ---\n%s\n"
            "--- End ---",
            exc,
            text,
            extracted,
            repaired,
        )
        raise ParseError(
            "Failed to process the analysis service response (JSON parse error).",
            parser_message=str(exc),
            raw=text,
            extracted=extracted,
            repaired=repaired,
            position=exc.pos,
            lineno=exc.lineno,
            colno=exc.colno,
        ) from exc
    logger.debug("Parsed completion JSON with keys: %s", sorted(data))
    return data

"""Helpers to load the bundled JSON schemas and report violations."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

SCHEMAS_DIR = Path(__file__).resolve().parent / "schemas"
ENGAGEMENT_SCORE_SCHEMA = "engagement_score.json"


@lru_cache(maxsize=None)
def load_schema(name: str = ENGAGEMENT_SCORE_SCHEMA) -> Dict[str, Any]:
    """Load and cache a bundled schema as a dictionary."""
    return json.loads((SCHEMAS_DIR / name).read_text(encoding="utf-8"))


def format_errors(errors: Iterable[ValidationError]) -> str:
    """Turn jsonschema errors into a concise human-readable string."""
    parts = []
    for err in errors:
        location = ".".join(str(piece) for piece in err.absolute_path) or "<root>"
        parts.append(f"{location}: {err.message}")
    return "; ".join(parts)


def schema_errors(payload: Any, name: str = ENGAGEMENT_SCORE_SCHEMA) -> List[ValidationError]:
    """Return every violation of the named schema, sorted by location."""
    validator = Draft202012Validator(load_schema(name))
    errors = validator.iter_errors(payload)
    return sorted(errors, key=lambda err: [str(p) for p in err.absolute_path])

"""Render the analysis prompt sent to the completion service."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from string import Template

PROMPTS_DIR = Path(__file__).resolve().parent / "prompts"
DEFAULT_PROMPT = "story_analysis.txt"
MAX_ARTICLE_CHARS = 150_000
TRUNCATION_MARKER = "\n[... content truncated ...]"

SYSTEM_PROMPT = (
    "You are an expert data extraction tool. Your sole purpose is to return valid, "
    "correctly formatted JSON based precisely on the user's instructions and the "
    "provided text. You output ONLY the JSON object requested, nothing else. Ensure "
    "all special characters within JSON string values are properly escaped according "
    "to JSON specification."
)


@dataclass(frozen=True)
class PromptInputs:
    article_text: str
    title: str
    source: str
    published_date: str | None = None
    author: str | None = None


@lru_cache(maxsize=None)
def load_prompt_template(filename: str = DEFAULT_PROMPT) -> Template:
    path = PROMPTS_DIR / filename
    return Template(path.read_text(encoding="utf-8"))


def truncate_article_text(text: str, max_chars: int = MAX_ARTICLE_CHARS) -> str:
    """Cap ``text`` at ``max_chars`` and mark the cut so the model knows text is missing."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


def build_prompt(inputs: PromptInputs, *, max_chars: int = MAX_ARTICLE_CHARS) -> str:
    """
    Render the user prompt for one article.

    Pure and deterministic: the same inputs always produce the same string,
    which keeps the JSON repair rules in ``recovery`` aligned with the
    escaping instructions embedded in the template.
    """
    template = load_prompt_template()
    return template.substitute(
        article_text=truncate_article_text(inputs.article_text, max_chars),
        title=inputs.title,
        source=inputs.source,
        author=inputs.author or "Not found by scraper",
        date=inputs.published_date or "Not found by scraper",
        date_hint=inputs.published_date or "None",
    )

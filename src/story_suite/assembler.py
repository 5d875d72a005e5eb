"""Merge scraped page signals with validated model output into a StoryRecord."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict

from .models import (
    EngagementScore,
    ExtractedContent,
    FactSection,
    Quote,
    ScrapedMetadata,
    StoryRecord,
)

logger = logging.getLogger(__name__)

DATE_NOT_SPECIFIED = "Date not specified"

_WHITESPACE_RUN = re.compile(r"\s+")
_NON_SLUG_CHARS = re.compile(r"[^\w-]+")
_HYPHEN_RUN = re.compile(r"--+")


def slugify(title: str) -> str:
    """
    Anchor-safe id for a section title.

    "Rose Development: Details!" -> "rose-development-details"
    """
    slug = _WHITESPACE_RUN.sub("-", title.lower())
    slug = _NON_SLUG_CHARS.sub("", slug)
    slug = _HYPHEN_RUN.sub("-", slug)
    return slug.strip("-")


def _non_empty(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _pick_date(model_date: Any, scraped_date: str | None) -> str:
    date = _non_empty(model_date)
    if date and date.lower() != DATE_NOT_SPECIFIED.lower():
        return date
    return scraped_date or DATE_NOT_SPECIFIED


def assemble_story(
    data: Dict[str, Any],
    *,
    content: ExtractedContent,
    metadata: ScrapedMetadata,
    original_url: str,
) -> StoryRecord:
    """Build the final record; ``data`` must already have passed ``validate_response``."""
    score = data.get("engagementScore")
    story = StoryRecord(
        title=_non_empty(data.get("title")) or content.title,
        source=_non_empty(data.get("source")) or content.inferred_source,
        author=_non_empty(data.get("author")) or metadata.author,
        date=_pick_date(data.get("date"), metadata.published_date),
        summary=_non_empty(data.get("summary")) or "",
        highlights=list(data.get("highlights", [])),
        fact_sections=[
            FactSection(id=slugify(section["title"]), **section)
            for section in data.get("factSections", [])
        ],
        quotes=[Quote(**quote) for quote in data.get("quotes", [])],
        engagement_score=EngagementScore(**score) if score else None,
        primary_image_url=metadata.primary_image_url,
        additional_image_urls=list(metadata.additional_image_urls),
        original_url=original_url,
    )
    logger.debug(
        "Assembled story for %s: title=%r date=%r highlights=%d sections=%d",
        original_url,
        story.title,
        story.date,
        len(story.highlights),
        len(story.fact_sections),
    )
    if story.fact_sections:
        logger.debug(
            "Generated section titles: %s", "; ".join(s.title for s in story.fact_sections)
        )
    return story

"""Data models for the story pipeline."""

from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# --- Request-scoped extraction records -------------------------------------

@dataclass(frozen=True)
class FetchedPage:
    url: str
    html: str
    status_code: int
    content_type: str | None = None


@dataclass(frozen=True)
class ScrapedMetadata:
    """Best-effort signals scraped from the page; never fatal when missing."""

    primary_image_url: str | None = None
    additional_image_urls: tuple[str, ...] = ()
    published_date: str | None = None
    author: str | None = None


@dataclass(frozen=True)
class ReadabilityResult:
    title: str | None = None
    text_content: str | None = None
    byline: str | None = None
    site_name: str | None = None
    content: str | None = None


@dataclass(frozen=True)
class ExtractedContent:
    text: str
    title: str
    inferred_source: str
    strategy: str = "readability"
    byline: str | None = None
    content_html: str | None = field(default=None, repr=False)


# --- Output record ----------------------------------------------------------

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FactSection(_CamelModel):
    id: str
    title: str
    content: str


class Quote(_CamelModel):
    text: str
    speaker: Optional[str] = None


class ScoreJustification(_CamelModel):
    s: str
    p: str
    i: str
    c: str
    e: str


class EngagementScore(_CamelModel):
    """SPICE score: Scannability, Personalization, Interactivity, Curation, Emotion."""

    s: int = Field(..., ge=1, le=5)
    p: int = Field(..., ge=1, le=5)
    i: int = Field(..., ge=1, le=5)
    c: int = Field(..., ge=1, le=5)
    e: int = Field(..., ge=1, le=5)
    total: int = Field(..., ge=5, le=25)
    justification: ScoreJustification


class StoryRecord(_CamelModel):
    """Structured summary returned for one article URL."""

    title: str
    source: str
    author: Optional[str] = None
    date: str
    summary: str
    highlights: List[str] = Field(default_factory=list, max_length=4)
    fact_sections: List[FactSection] = Field(default_factory=list)
    quotes: List[Quote] = Field(default_factory=list)
    engagement_score: Optional[EngagementScore] = None
    primary_image_url: Optional[str] = None
    additional_image_urls: List[str] = Field(default_factory=list, max_length=10)
    original_url: str

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")

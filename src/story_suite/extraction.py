"""Main-content extraction: readability first, raw page body as fallback."""

from __future__ import annotations

import dataclasses
import logging
import re
from typing import Callable, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Comment, Declaration, Doctype, ProcessingInstruction
from readability import Document

from .errors import InsufficientContentError
from .metadata import TagStrategy, first_match, normalize_author, resolve_http_url
from .models import ExtractedContent, ReadabilityResult, ScrapedMetadata

logger = logging.getLogger(__name__)

MIN_CONTENT_CHARS = 150
MAX_ADDITIONAL_IMAGES = 10
MIN_IMAGE_DIMENSION = 50
TITLE_NOT_FOUND = "Title not found"

_NON_CONTENT_TAGS = {"script", "style", "noscript", "template"}
_MARKUP_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)
_LEADING_INT = re.compile(r"\s*(\d+)")

BYLINE_STRATEGIES: tuple[TagStrategy, ...] = (
    TagStrategy('[rel="author"]', attributes=(), use_text=True),
    TagStrategy('[itemprop~="author"]', attributes=("content",), use_text=True),
    TagStrategy(".byline", attributes=(), use_text=True),
    TagStrategy(".author", attributes=(), use_text=True),
)

SITE_NAME_STRATEGIES: tuple[TagStrategy, ...] = (
    TagStrategy('meta[property="og:site_name"]'),
)


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


def _clean_text(text: str) -> str:
    lines = (line.strip() for line in text.splitlines())
    return "\n".join(line for line in lines if line).strip()


def _body_text(soup: BeautifulSoup) -> str:
    """Visible text of <body>; empty when the document has no body."""
    if soup.body is None:
        return ""
    pieces = [
        piece
        for piece in soup.body.find_all(string=True)
        if not isinstance(piece, _MARKUP_STRINGS)
        and piece.parent is not None
        and piece.parent.name not in _NON_CONTENT_TAGS
    ]
    return _clean_text("\n".join(pieces))


def readability_parse(html: str, soup: BeautifulSoup, page_url: str) -> ReadabilityResult | None:
    """Run readability-lxml and shape the result like Mozilla Readability's article."""
    try:
        doc = Document(html, url=page_url)
        content = doc.summary(html_partial=True)
        title = doc.short_title() or doc.title()
    except Exception as exc:
        logger.warning("Readability could not parse %s: %s", page_url, exc)
        return None

    text = _clean_text(BeautifulSoup(content, "lxml").get_text("\n")) if content else ""
    return ReadabilityResult(
        title=title if title and title != "[no-title]" else None,
        text_content=text or None,
        byline=first_match(soup, BYLINE_STRATEGIES),
        site_name=first_match(soup, SITE_NAME_STRATEGIES),
        content=content or None,
    )


# --- Strategies -------------------------------------------------------------

StrategyFn = Callable[[str, BeautifulSoup, str], Optional[ExtractedContent]]


def _document_title(soup: BeautifulSoup) -> str | None:
    if soup.title and soup.title.string and soup.title.string.strip():
        return soup.title.string.strip()
    return None


def _hostname(page_url: str) -> str:
    return urlparse(page_url).hostname or page_url


def readability_strategy(
    html: str, soup: BeautifulSoup, page_url: str
) -> ExtractedContent | None:
    article = readability_parse(html, soup, page_url)
    if article is None or not article.text_content:
        return None
    return ExtractedContent(
        text=article.text_content.strip(),
        title=article.title or _document_title(soup) or TITLE_NOT_FOUND,
        inferred_source=article.site_name or _hostname(page_url),
        strategy="readability",
        byline=article.byline,
        content_html=article.content,
    )


def body_text_strategy(
    html: str, soup: BeautifulSoup, page_url: str
) -> ExtractedContent | None:
    text = _body_text(soup)
    if not text:
        return None
    return ExtractedContent(
        text=text,
        title=_document_title(soup) or TITLE_NOT_FOUND,
        inferred_source=_hostname(page_url),
        strategy="body",
    )


CONTENT_STRATEGIES: tuple[StrategyFn, ...] = (readability_strategy, body_text_strategy)


# --- Image harvesting -------------------------------------------------------

def _dimension(value) -> int:
    """Declared pixel size, or 0 when missing or not numeric."""
    if value is None:
        return 0
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def _image_source(img) -> str | None:
    src = img.get("src") or img.get("data-src")
    return src.strip() if isinstance(src, str) and src.strip() else None


def _declared_sizes(soup: BeautifulSoup, page_url: str) -> dict[str, tuple[int, int]]:
    """Map each resolved image URL in the full document to its declared width/height."""
    sizes: dict[str, tuple[int, int]] = {}
    for img in soup.find_all("img"):
        absolute = resolve_http_url(_image_source(img), page_url)
        if absolute and absolute not in sizes:
            sizes[absolute] = (_dimension(img.get("width")), _dimension(img.get("height")))
    return sizes


def is_too_small(width: int, height: int) -> bool:
    """True only when both dimensions are declared and both are under the minimum."""
    if width <= 0 or height <= 0:
        return False
    return width < MIN_IMAGE_DIMENSION and height < MIN_IMAGE_DIMENSION


def harvest_images(
    content_html: str | None,
    soup: BeautifulSoup,
    page_url: str,
    primary_image_url: str | None = None,
    limit: int = MAX_ADDITIONAL_IMAGES,
) -> list[str]:
    """
    Collect up to ``limit`` image URLs from the extracted content region.

    Readability drops width/height attributes, so declared sizes are looked up
    on the matching ``<img>`` of the original document.
    """
    if not content_html:
        return []
    region = BeautifulSoup(content_html, "lxml")
    sizes = _declared_sizes(soup, page_url)
    seen: set[str] = {primary_image_url} if primary_image_url else set()
    images: list[str] = []
    for img in region.find_all("img"):
        if len(images) >= limit:
            break
        absolute = resolve_http_url(_image_source(img), page_url)
        if not absolute or absolute in seen:
            continue
        declared = (_dimension(img.get("width")), _dimension(img.get("height")))
        width, height = sizes.get(absolute, declared)
        if is_too_small(width, height):
            logger.debug("Skipping small image %s (%sx%s)", absolute, width, height)
            continue
        seen.add(absolute)
        images.append(absolute)
    return images


# --- Entry point ------------------------------------------------------------

def extract_content(
    html: str,
    soup: BeautifulSoup,
    page_url: str,
    metadata: ScrapedMetadata,
    *,
    min_chars: int = MIN_CONTENT_CHARS,
    strategies: tuple[StrategyFn, ...] = CONTENT_STRATEGIES,
) -> tuple[ExtractedContent, ScrapedMetadata]:
    """
    Extract the readable article text and enrich ``metadata``.

    Strategies are tried in order; a result shorter than ``min_chars`` is
    rejected. Raises InsufficientContentError when every strategy is rejected.
    Returns the content plus a copy of ``metadata`` with in-content images and
    (when the page head had none) the readability byline as author.
    """
    content: ExtractedContent | None = None
    for strategy in strategies:
        candidate = strategy(html, soup, page_url)
        length = len(candidate.text) if candidate else 0
        if candidate and length >= min_chars:
            content = candidate
            break
        logger.warning(
            "%s produced %d chars for %s (minimum %d); trying next strategy",
            strategy.__name__,
            length,
            page_url,
            min_chars,
        )

    if content is None:
        logger.error("Could not extract meaningful content for %s", page_url)
        raise InsufficientContentError("Could not extract sufficient article content.")

    logger.info(
        "Extracted ~%d characters from %s via %s", len(content.text), page_url, content.strategy
    )

    images = harvest_images(
        content.content_html, soup, page_url, primary_image_url=metadata.primary_image_url
    )
    author = metadata.author
    if not author and content.byline:
        author = normalize_author(content.byline)

    enriched = dataclasses.replace(
        metadata, additional_image_urls=tuple(images), author=author
    )
    return content, enriched

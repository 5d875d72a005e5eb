"""Scrape image, publication date, and author from the page head."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from dateutil import parser as dateparser

from .models import ScrapedMetadata

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_SCHEMES = ("http", "https")
_BY_PREFIX = re.compile(r"^by\s+", re.IGNORECASE)
_DATE_DEFAULTS = (datetime(2000, 1, 1), datetime(2004, 2, 2))


# Strategies are tried in order; the first tag with a non-empty value wins.
@dataclass(frozen=True)
class TagStrategy:
    selector: str
    attributes: tuple[str, ...] = ("content",)
    use_text: bool = False


IMAGE_STRATEGIES: tuple[TagStrategy, ...] = (
    TagStrategy('meta[property="og:image"]'),
    TagStrategy('meta[name="twitter:image"]'),
)

DATE_STRATEGIES: tuple[TagStrategy, ...] = (
    TagStrategy('meta[property="article:published_time"]'),
    TagStrategy('meta[name="date"]'),
    TagStrategy('meta[name="pubdate"]'),
    TagStrategy('meta[name="timestamp"]'),
    TagStrategy("time[datetime]", attributes=("datetime",)),
)

AUTHOR_STRATEGIES: tuple[TagStrategy, ...] = (
    TagStrategy('meta[name="author"]'),
    TagStrategy('meta[property="article:author"]'),
    TagStrategy('meta[name="byl"]'),
    TagStrategy('meta[name="parsely-author"]'),
)


def first_match(soup: BeautifulSoup, strategies: tuple[TagStrategy, ...]) -> str | None:
    """Return the value of the first strategy whose selector matches with a value."""
    for strategy in strategies:
        tag = soup.select_one(strategy.selector)
        if tag is None:
            continue
        for attr in strategy.attributes:
            value = tag.get(attr)
            if isinstance(value, list):
                value = " ".join(value)
            if value and value.strip():
                return value.strip()
        if strategy.use_text:
            text = tag.get_text(" ", strip=True)
            if text:
                return text
    return None


def resolve_http_url(candidate: str | None, base_url: str) -> str | None:
    """Resolve ``candidate`` against ``base_url``; None unless the result is http(s)."""
    if not candidate or not candidate.strip():
        return None
    try:
        absolute = urljoin(base_url, candidate.strip())
        parsed = urlparse(absolute)
    except ValueError as exc:
        logger.debug("Could not resolve URL %r against %s: %s", candidate, base_url, exc)
        return None
    if parsed.scheme.lower() not in ALLOWED_IMAGE_SCHEMES or not parsed.netloc:
        logger.debug("Discarding %r: non-http(s) URL after resolution", absolute)
        return None
    return absolute


def format_published_date(raw: str | None) -> str | None:
    """
    Return "Month Day, Year" when ``raw`` is a complete date, else ``raw`` unchanged.

    dateutil fills missing parts from its default, so ``raw`` is parsed against
    two different defaults; any part that changes was not in the string.
    """
    if not raw:
        return None
    try:
        parsed, check = (dateparser.parse(raw, default=d) for d in _DATE_DEFAULTS)
    except (ValueError, OverflowError) as exc:
        logger.debug("Could not parse scraped date %r (%s); keeping raw", raw, exc)
        return raw
    if parsed.date() != check.date():
        logger.debug("Scraped date %r is partial; keeping raw", raw)
        return raw
    return f"{parsed:%B} {parsed.day}, {parsed.year}"


def normalize_author(raw: str | None) -> str | None:
    if not raw:
        return None
    author = _BY_PREFIX.sub("", raw.strip()).strip()
    return author or None


def _scrape(soup: BeautifulSoup, page_url: str) -> ScrapedMetadata:
    image_raw = first_match(soup, IMAGE_STRATEGIES)
    date_raw = first_match(soup, DATE_STRATEGIES)
    author_raw = first_match(soup, AUTHOR_STRATEGIES)
    logger.debug(
        "Scraped raw metadata: image=%r date=%r author=%r", image_raw, date_raw, author_raw
    )
    return ScrapedMetadata(
        primary_image_url=resolve_http_url(image_raw, page_url),
        published_date=format_published_date(date_raw),
        author=normalize_author(author_raw),
    )


def extract_metadata(soup: BeautifulSoup, page_url: str) -> ScrapedMetadata:
    """
    Scrape primary image, publication date, and author.

    Metadata is best-effort: any unexpected error clears every field instead of
    aborting the request.
    """
    try:
        return _scrape(soup, page_url)
    except Exception:
        logger.exception("Error scraping metadata for %s; continuing without it", page_url)
        return ScrapedMetadata()

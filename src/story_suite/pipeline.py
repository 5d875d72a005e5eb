"""Sequential article-to-story pipeline.

Stages run in a fixed order and each either returns its result or raises a
``StoryError``; nothing is retried. The response validator is the only stage
that recovers from bad data (it nulls the supplementary engagement score).

    fetch -> metadata + content -> prompt -> completion -> recover JSON
          -> validate -> assemble
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlparse

import requests

from .assembler import assemble_story
from .completion import CompletionClient
from .config import Settings, get_settings
from .errors import InvalidInputError
from .extraction import extract_content, parse_document
from .fetcher import fetch_page
from .metadata import extract_metadata
from .models import StoryRecord
from .prompt import PromptInputs, build_prompt
from .recovery import recover_json
from .validation import validate_response

logger = logging.getLogger(__name__)

ALLOWED_URL_SCHEMES = ("http", "https")


def validate_article_url(article_url: object) -> str:
    """Return ``article_url`` unchanged if it is a usable http(s) URL."""
    if not article_url or not isinstance(article_url, str) or not article_url.strip():
        raise InvalidInputError("Article URL is required")
    try:
        parsed = urlparse(article_url.strip())
    except ValueError as exc:
        raise InvalidInputError("Invalid URL format provided") from exc
    if parsed.scheme.lower() not in ALLOWED_URL_SCHEMES or not parsed.netloc:
        raise InvalidInputError("Invalid URL format provided")
    return article_url


class StoryPipeline:
    """Runs one article URL through every stage; safe to share across threads."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        completion_client: Optional[CompletionClient] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.settings = settings or get_settings()
        if completion_client is None and self.settings.api_key_configured:
            completion_client = CompletionClient(self.settings)
        self.completion_client = completion_client
        self.session = session

    def process(self, article_url: str) -> StoryRecord:
        settings = self.settings
        settings.require_api_key()
        url = validate_article_url(article_url)
        logger.info("Processing URL: %s", url)

        page = fetch_page(
            url,
            timeout=settings.fetch_timeout,
            user_agent=settings.user_agent,
            session=self.session,
        )
        soup = parse_document(page.html)
        metadata = extract_metadata(soup, url)
        content, metadata = extract_content(
            page.html, soup, url, metadata, min_chars=settings.min_content_chars
        )
        logger.debug(
            "Using title=%r source=%r date=%r author=%r image=%r",
            content.title,
            content.inferred_source,
            metadata.published_date,
            metadata.author,
            metadata.primary_image_url,
        )

        prompt = build_prompt(
            PromptInputs(
                article_text=content.text,
                title=content.title,
                source=content.inferred_source,
                published_date=metadata.published_date,
                author=metadata.author,
            ),
            max_chars=settings.max_article_chars,
        )
        raw = self.completion_client.complete(prompt)
        data = validate_response(recover_json(raw))
        return assemble_story(
            data, content=content, metadata=metadata, original_url=article_url
        )

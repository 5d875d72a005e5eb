"""Thin wrapper around the OpenAI Responses API for article analysis."""

from __future__ import annotations

import logging
from typing import Optional

from openai import OpenAI, OpenAIError

from .config import Settings
from .errors import CompletionServiceError, EmptyCompletionError
from .prompt import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


def build_client(api_key: Optional[str] = None, *, timeout: float = 60.0) -> OpenAI:
    """Create an OpenAI client; retries are disabled so one failure ends the request."""
    return OpenAI(api_key=api_key, timeout=timeout, max_retries=0)


def first_text_segment(response: object) -> str | None:
    """Return the first non-empty ``output_text`` part of a Responses API result."""
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for part in getattr(item, "content", None) or []:
            if getattr(part, "type", None) != "output_text":
                continue
            text = getattr(part, "text", None)
            if isinstance(text, str) and text:
                return text
    return None


def _empty_completion_error(response: object) -> EmptyCompletionError:
    status = getattr(response, "status", None)
    if status == "incomplete":
        details = getattr(response, "incomplete_details", None)
        reason = getattr(details, "reason", None) if details else None
        logger.error("Completion incomplete (reason=%s)", reason)
        hint = ""
        if reason == "max_output_tokens":
            hint = " Increase MAX_TOKENS or try a shorter article."
        return EmptyCompletionError(
            f"The analysis service returned an incomplete response (reason={reason}).{hint}"
        )
    err = getattr(response, "error", None)
    if err:
        logger.error("Completion response error: %s", err)
    return EmptyCompletionError(
        "Received an unexpected or empty response from the analysis service."
    )


class CompletionClient:
    """Sends one prompt and returns the raw text; never retries."""

    def __init__(self, settings: Settings, client: Optional[OpenAI] = None) -> None:
        self.settings = settings
        self.client = client or build_client(
            settings.require_api_key(), timeout=settings.completion_timeout
        )

    def complete(self, prompt: str) -> str:
        settings = self.settings
        logger.info(
            "Sending prompt to %s (~%d chars)", settings.completion_model, len(prompt)
        )
        try:
            response = self.client.responses.create(
                model=settings.completion_model,
                input=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=settings.temperature,
                max_output_tokens=settings.max_tokens,
            )
        except OpenAIError as exc:
            logger.error("Completion request failed: %s", exc)
            raise CompletionServiceError(
                f"The analysis service request failed: {exc}"
            ) from exc

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.info(
                "Completion usage: input_tokens=%s output_tokens=%s",
                getattr(usage, "input_tokens", None),
                getattr(usage, "output_tokens", None),
            )

        text = first_text_segment(response)
        if text is None:
            raise _empty_completion_error(response)
        return text

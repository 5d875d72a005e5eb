"""Error taxonomy for the story pipeline.

Every fatal stage failure is a ``StoryError`` carrying the HTTP status and the
message shown to callers. Diagnostics that must stay server-side (raw model
output, parser positions) live on the exception as attributes and are logged,
never put into the message.
"""

from __future__ import annotations


class StoryError(Exception):
    """Base class for failures that abort a single story request."""

    status_code: int = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInputError(StoryError):
    status_code = 400


class ConfigError(StoryError):
    status_code = 500


class FetchError(StoryError):
    """Non-2xx response or transport failure while downloading the article."""

    def __init__(
        self, message: str, *, status: int | None = None, reason: str = ""
    ) -> None:
        # 403/404 pass through so callers can tell "blocked" from "missing".
        code = status if status in (403, 404) else 500
        super().__init__(message, status_code=code)
        self.status = status
        self.reason = reason

    @classmethod
    def from_status(cls, status: int, reason: str = "") -> "FetchError":
        label = f"{status} {reason}".strip()
        if status == 403:
            hint = (
                "Access denied by the source site. "
                "It may block automated access or require a subscription."
            )
        elif status == 404:
            hint = "Article not found. Please check the URL."
        else:
            hint = "The source site returned an error."
        return cls(
            f"Failed to fetch article: {label}. {hint}", status=status, reason=reason
        )


class FetchTimeoutError(StoryError, TimeoutError):
    status_code = 504

    def __init__(self, url: str, timeout: float) -> None:
        super().__init__("Failed to fetch article: The request timed out.")
        self.url = url
        self.timeout = timeout


class InsufficientContentError(StoryError):
    status_code = 500


class CompletionServiceError(StoryError):
    status_code = 500


class EmptyCompletionError(CompletionServiceError):
    pass


class RecoveryError(StoryError):
    """The completion text could not be turned into a JSON object."""

    def __init__(
        self,
        message: str,
        *,
        raw: str,
        extracted: str | None = None,
        repaired: str | None = None,
    ) -> None:
        super().__init__(message)
        self.raw = raw
        self.extracted = extracted
        self.repaired = repaired


class NoDelimitersError(RecoveryError):
    pass


class ParseError(RecoveryError):
    """Repaired text still failed to parse; ``parser_message`` keeps the position info."""

    def __init__(
        self,
        message: str,
        *,
        raw: str,
        extracted: str,
        repaired: str,
        parser_message: str = "",
        position: int | None = None,
        lineno: int | None = None,
        colno: int | None = None,
    ) -> None:
        super().__init__(message, raw=raw, extracted=extracted, repaired=repaired)
        self.parser_message = parser_message
        self.position = position
        self.lineno = lineno
        self.colno = colno


class FieldValidationError(ValueError):
    """A supplementary field failed validation; callers null it instead of failing."""

    def __init__(self, field: str, detail: str) -> None:
        super().__init__(f"{field}: {detail}")
        self.field = field
        self.detail = detail

"""Errors raised while producing a summary with a chat model.

The compression engine never catches these. A failed summary call
propagates out of ``AutoContextMemory.get_messages()`` and the working
history is left as it was.
"""

from __future__ import annotations

from autocontext.exceptions import AutoContextError


class LLMClientError(AutoContextError):
    """Base for chat model failures seen by the summarizer."""


class LLMConfigError(LLMClientError):
    """The client cannot be built, e.g. no API key in the arguments or environment."""


class LLMAuthError(LLMClientError):
    """The provider rejected the credentials (401/403). Never retried."""

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Authentication failed: HTTP {status_code} - {body}")


class LLMRateLimitError(LLMClientError):
    """HTTP 429 after the client's retries ran out.

    Attributes:
        retry_after: Seconds the provider asked to wait, or None.
    """

    def __init__(self, message: str = "Rate limited", retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        if retry_after is not None:
            message = f"{message} (retry after {retry_after}s)"
        super().__init__(message)


class LLMResponseError(LLMClientError):
    """The stream could not be turned into summary text.

    Attributes:
        event: The offending decoded event, when there was one.
    """

    def __init__(self, message: str, event: object = None) -> None:
        self.event = event
        super().__init__(message)


def parse_retry_after(value: str | None) -> float | None:
    """Seconds from a Retry-After header, or None if absent or not a number."""
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None

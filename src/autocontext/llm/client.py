"""Built-in OpenAI-compatible streaming chat model with tenacity retry.

Provides a sync httpx client for OpenAI-compatible chat completion APIs
that yields ChatResponse chunks parsed from server-sent events.
Reads configuration from constructor arguments or environment variables.
"""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING, Any

import httpx
import tenacity

from autocontext.llm.errors import (
    LLMAuthError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
    parse_retry_after,
)
from autocontext.llm.models import ChatResponse, ChatUsage
from autocontext.models.message import MsgRole, TextBlock, ToolResultBlock, ToolUseBlock

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from autocontext.models.config import GenerateOptions
    from autocontext.models.message import Msg

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_AUTH_ERROR_STATUS_CODES = {401, 403}


def _is_retryable(exc: BaseException) -> bool:
    """Check if an exception is retryable.

    Retryable: 429, 500, 502, 503, 504, connection errors.
    Not retryable: 401, 403, 400, other client errors.
    """
    if isinstance(exc, LLMAuthError):
        return False
    if isinstance(exc, LLMRateLimitError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _RETRYABLE_STATUS_CODES
    return isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout))


def render_message_text(msg: Msg) -> str:
    """Render every block of *msg* as plain text for a text-only request."""
    parts: list[str] = []
    for block in msg.content:
        if isinstance(block, TextBlock):
            parts.append(block.text)
        elif isinstance(block, ToolUseBlock):
            args = json.dumps(block.input, ensure_ascii=False, default=str)
            parts.append(f"[tool_use {block.name} id={block.id}] {args}")
        elif isinstance(block, ToolResultBlock):
            parts.append(f"[tool_result {block.name} id={block.id}] {block.output_text}")
    return "\n".join(parts)


def to_openai_messages(messages: Sequence[Msg]) -> list[dict[str, str]]:
    """Convert messages to OpenAI chat dicts.

    Tool traffic is rendered as text so a summarization request never
    needs matching ``tool_calls``/``tool_call_id`` pairs. Tool-role
    messages are sent as user messages.
    """
    wire: list[dict[str, str]] = []
    for msg in messages:
        role = "user" if msg.role == MsgRole.TOOL else msg.role.value
        wire.append({"role": role, "content": render_message_text(msg)})
    return wire


class OpenAIChatModel:
    """Sync httpx streaming client for OpenAI-compatible chat completions.

    Implements the ChatModel protocol. Opening the stream is retried with
    exponential backoff for transient errors (429, 5xx, connection
    errors). Fails immediately on authentication errors (401, 403).
    Once chunks are flowing, errors propagate without retry.

    Usage::

        with OpenAIChatModel(api_key="sk-...") as model:
            for chunk in model.stream([Msg.from_text("user", "Hello")]):
                ...
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        default_model: str = "gpt-4o-mini",
        timeout: float = 120.0,
        max_retries: int = 3,
    ) -> None:
        """Initialize the OpenAI-compatible model.

        Args:
            api_key: API key. Falls back to AUTOCONTEXT_OPENAI_API_KEY env var.
            base_url: API base URL. Falls back to AUTOCONTEXT_OPENAI_BASE_URL
                env var, then to https://api.openai.com/v1.
            default_model: Model used when GenerateOptions.model is unset.
            timeout: Request timeout in seconds.
            max_retries: Maximum attempts for opening a stream.

        Raises:
            LLMConfigError: If no API key is provided or found in environment.
        """
        self._api_key = api_key or os.environ.get("AUTOCONTEXT_OPENAI_API_KEY", "")
        if not self._api_key:
            raise LLMConfigError(
                "No API key provided. Pass api_key= or set AUTOCONTEXT_OPENAI_API_KEY "
                "environment variable."
            )
        self._base_url = (
            base_url
            or os.environ.get("AUTOCONTEXT_OPENAI_BASE_URL", "https://api.openai.com/v1")
        ).rstrip("/")
        self._default_model = default_model
        self._timeout = timeout
        self._max_retries = max_retries
        self._client = httpx.Client(
            timeout=timeout,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
            },
        )

    @property
    def model_name(self) -> str:
        return self._default_model

    def stream(
        self,
        messages: Sequence[Msg],
        tools: Sequence[dict] | None = None,
        options: GenerateOptions | None = None,
    ) -> Iterator[ChatResponse]:
        """Stream a chat completion.

        Args:
            messages: Conversation to send.
            tools: Optional OpenAI tool definitions, forwarded verbatim.
            options: Per-call generation settings.

        Yields:
            One ChatResponse per server-sent event.

        Raises:
            LLMAuthError: On 401/403 (no retry).
            LLMRateLimitError: On 429 after all retries exhausted.
            LLMResponseError: On a malformed event.
            httpx.HTTPStatusError: On other non-retryable HTTP errors.
        """
        payload = self._build_payload(messages, tools, options)
        retryer = tenacity.Retrying(
            retry=tenacity.retry_if_exception(_is_retryable),
            wait=(
                tenacity.wait_exponential(multiplier=1, min=1, max=30)
                + tenacity.wait_random(0, 2)
            ),
            stop=tenacity.stop_after_attempt(self._max_retries),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        response = retryer(self._open_stream, payload)
        try:
            yield from self._iter_chunks(response)
        finally:
            response.close()

    def _build_payload(
        self,
        messages: Sequence[Msg],
        tools: Sequence[dict] | None,
        options: GenerateOptions | None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self._default_model,
            "messages": to_openai_messages(messages),
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        if tools:
            payload["tools"] = list(tools)
        if options is not None:
            payload.update(options.to_payload())
        return payload

    def _open_stream(self, payload: dict[str, Any]) -> httpx.Response:
        """Send the request and check the status (no retry)."""
        request = self._client.build_request(
            "POST", f"{self._base_url}/chat/completions", json=payload
        )
        response = self._client.send(request, stream=True)
        if response.status_code < 400:
            return response

        response.read()
        response.close()

        if response.status_code in _AUTH_ERROR_STATUS_CODES:
            raise LLMAuthError(response.status_code, response.text)

        if response.status_code == 429:
            raise LLMRateLimitError(
                f"Rate limited: HTTP 429 - {response.text}",
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )

        response.raise_for_status()
        return response

    def _iter_chunks(self, response: httpx.Response) -> Iterator[ChatResponse]:
        for line in response.iter_lines():
            line = line.strip()
            if not line.startswith("data:"):
                continue
            data = line[len("data:"):].strip()
            if data == "[DONE]":
                return
            try:
                event = json.loads(data)
            except json.JSONDecodeError as exc:
                raise LLMResponseError(f"Malformed stream event: {data[:200]}", data) from exc
            yield self.parse_chunk(event)

    @staticmethod
    def parse_chunk(event: dict) -> ChatResponse:
        """Convert one decoded stream event into a ChatResponse.

        Raises:
            LLMResponseError: If the event is an error payload or not a dict.
        """
        if not isinstance(event, dict):
            raise LLMResponseError(f"Unexpected stream event: {event!r}", event)
        if "error" in event:
            raise LLMResponseError(f"Provider returned an error: {event['error']}", event)

        text = ""
        for choice in event.get("choices") or []:
            delta = choice.get("delta") or {}
            content = delta.get("content")
            if content:
                text += content

        usage = None
        raw_usage = event.get("usage")
        if raw_usage:
            usage = ChatUsage(
                input_tokens=raw_usage.get("prompt_tokens", 0) or 0,
                output_tokens=raw_usage.get("completion_tokens", 0) or 0,
            )

        return ChatResponse(
            id=event.get("id", ""),
            content=(TextBlock(text=text),) if text else (),
            usage=usage,
        )

    def close(self) -> None:
        """Close the underlying httpx client."""
        self._client.close()

    def __enter__(self) -> OpenAIChatModel:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

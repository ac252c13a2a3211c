"""Async streaming client for an Ollama-compatible ``/api/chat`` endpoint."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


class InferenceUnavailableError(Exception):
    """The inference service could not be reached or refused the request."""


@dataclass
class ToolCall:
    """A function call requested by the model.

    ``raw`` is the call exactly as received, echoed back on the follow-up
    request.
    """

    name: str
    arguments: dict[str, Any]
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class ChatChunk:
    """One parsed NDJSON line of a streamed chat response."""

    content: str = ""
    status: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    done: bool = False


def _parse_tool_call(raw: dict[str, Any]) -> ToolCall | None:
    function = raw.get("function") or {}
    name = function.get("name")
    if not isinstance(name, str) or not name:
        return None
    arguments = function.get("arguments") or {}
    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments)
        except json.JSONDecodeError:
            logger.debug("Tool call %s has unparseable arguments: %r", name, arguments)
            arguments = {}
    if not isinstance(arguments, dict):
        arguments = {}
    return ToolCall(name=name, arguments=arguments, raw=raw)


def parse_chunk(line: str) -> ChatChunk | None:
    """Parse one stream line; returns None for blank or malformed lines.

    Raises InferenceUnavailableError when the service reports an error.
    """
    line = line.strip()
    if not line:
        return None
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed stream line: %r", line[:200])
        return None
    if not isinstance(data, dict):
        logger.debug("Skipping non-object stream line: %r", line[:200])
        return None

    if data.get("error"):
        raise InferenceUnavailableError(str(data["error"]))

    message = data.get("message") or {}
    tool_calls = [
        call
        for call in (_parse_tool_call(raw) for raw in message.get("tool_calls") or [])
        if call is not None
    ]
    status = data.get("status")
    return ChatChunk(
        content=message.get("content") or "",
        status=status if isinstance(status, str) and status else None,
        tool_calls=tool_calls,
        done=bool(data.get("done")),
    )


class OllamaClient:
    """Streams chat completions from one configured Ollama base URL.

    Only connecting is time-limited; a response may stream for as long as
    the model keeps generating.
    """

    def __init__(
        self,
        base_url: str,
        connect_timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(None, connect=connect_timeout),
            transport=transport,
        )

    async def stream_chat(
        self,
        model: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[ChatChunk]:
        """Yield parsed chunks of one streamed ``/api/chat`` completion.

        Raises:
            InferenceUnavailableError: connection, transport or HTTP status
                failure, or an error reported inside the stream.
        """
        payload: dict[str, Any] = {"model": model, "messages": messages, "stream": True}
        if tools:
            payload["tools"] = tools

        logger.info(
            "Requesting completion from %s (model=%s, messages=%d, tools=%d)",
            self.base_url,
            model,
            len(messages),
            len(tools or []),
        )
        try:
            async with self._client.stream("POST", "/api/chat", json=payload) as resp:
                resp.raise_for_status()
                async for line in resp.aiter_lines():
                    chunk = parse_chunk(line)
                    if chunk is not None:
                        yield chunk
        except httpx.HTTPStatusError as exc:
            msg = f"HTTP {exc.response.status_code} from {self.base_url}"
            raise InferenceUnavailableError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"Cannot reach inference service at {self.base_url}: {exc}"
            raise InferenceUnavailableError(msg) from exc

    async def aclose(self) -> None:
        await self._client.aclose()

"""Prompt assembly: persona, locale context and remembered facts."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

    from grambharat.chats.models import Message
    from grambharat.memory.models import ContextRecord, MemoryRecord

logger = logging.getLogger(__name__)


def _format_context(context: ContextRecord | None) -> str:
    if context is None:
        return ""
    lines = context.labeled_lines()
    if not lines:
        return ""
    return "\n".join(["## User Context\n", *lines])


def _format_memories(memories: Iterable[MemoryRecord]) -> str:
    """Format remembered facts for injection into the system prompt."""
    lines = [f"- {m.content}" for m in memories]
    if not lines:
        return ""
    return "\n".join(["## Remembered Facts\n", *lines])


def build_system_prompt(
    persona: str | None,
    context: ContextRecord | None,
    memories: Iterable[MemoryRecord],
) -> str:
    """Join the non-empty sections with blank lines; empty when all are empty."""
    sections = [
        (persona or "").strip(),
        _format_context(context),
        _format_memories(memories),
    ]
    return "\n\n".join(s for s in sections if s)


def strip_data_url(image: str) -> str:
    """Ollama wants bare base64, not a ``data:image/...;base64,`` URL."""
    if image.startswith("data:") and "," in image:
        return image.split(",", 1)[1]
    return image


def build_messages(
    persona: str | None,
    context: ContextRecord | None,
    memories: Iterable[MemoryRecord],
    history: Iterable[Message],
    user_content: str,
    image: str | None = None,
) -> list[dict[str, Any]]:
    """Assemble the Ollama ``messages`` list for one completion.

    Args:
        persona: Free-text persona sent by the client, if any.
        context: Saved locale context, if any.
        memories: Every remembered fact, newest first.
        history: Prior chat messages in order, excluding the new one.
        user_content: Text of the new user message.
        image: Optional attached image (data URL or bare base64).

    Returns:
        System message (when there is anything to say), then history,
        then the new user message.
    """
    messages: list[dict[str, Any]] = []

    system = build_system_prompt(persona, context, memories)
    if system:
        messages.append({"role": "system", "content": system})

    for message in history:
        role = "user" if message.role == "user" else "assistant"
        messages.append({"role": role, "content": message.content})

    user_message: dict[str, Any] = {"role": "user", "content": user_content}
    if image:
        user_message["images"] = [strip_data_url(image)]
    messages.append(user_message)

    logger.debug("Built prompt with %d messages (system=%s)", len(messages), bool(system))
    return messages

"""Streaming completion controller.

Drives one chat turn: persists the user message, streams the first
completion, runs any tool calls the model asked for, streams a second
completion with the tool results, then persists the assistant reply.
Progress is produced as an async iterator of client events::

    {"status": ...} {"token": ...} {"toolCalling": True}
    {"memorySaved": True} {"error": ...} {"done": True}
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from grambharat.chats.models import InvalidRequestError, Message
from grambharat.chats.store import ChatNotFoundError
from grambharat.llm.client import InferenceUnavailableError
from grambharat.llm.prompt import build_messages
from grambharat.tools import ToolContext, registry

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from grambharat.chats.store import ChatStore
    from grambharat.finance.profiles import ProfileStore
    from grambharat.llm.client import OllamaClient, ToolCall
    from grambharat.memory.context import ContextStore
    from grambharat.memory.store import MemoryStore
    from grambharat.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

NO_RESPONSE_REPLY = "I apologize, but I couldn't generate a response."
UNAVAILABLE_REPLY = (
    "I'm having trouble connecting to the AI model. "
    "Please make sure Ollama is running with the {model} model."
)
TURN_FAILED_ERROR = "Failed to process message"


@dataclass
class Turn:
    """A validated turn, ready to stream.

    ``regenerate_index`` is the assistant message receiving a new
    alternative, or None when the reply is appended as a new message.
    """

    chat_id: str
    model: str
    messages: list[dict[str, Any]]
    regenerate_index: int | None = None


@dataclass
class _StreamResult:
    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)


class ChatController:
    def __init__(
        self,
        chats: ChatStore,
        memories: MemoryStore,
        contexts: ContextStore,
        profiles: ProfileStore,
        client: OllamaClient,
        default_model: str,
        tools: ToolRegistry = registry,
    ) -> None:
        self.chats = chats
        self.memories = memories
        self.contexts = contexts
        self.profiles = profiles
        self.client = client
        self.default_model = default_model
        self.tools = tools
        self.tool_context = ToolContext(memory_store=memories, profile_store=profiles)

    # -- Turn setup (raises before any streaming starts) -------------------------

    async def start_message(
        self,
        chat_id: str,
        text: str,
        model: str | None = None,
        persona: str | None = None,
        image: str | None = None,
    ) -> Turn:
        """Persist the user message and build the prompt for a new reply.

        Raises:
            InvalidRequestError: *text* is empty.
            ChatNotFoundError: no such chat.
        """
        if not text or not text.strip():
            raise InvalidRequestError("Message is required")

        chat = await self.chats.append_message(chat_id, Message.text("user", text, image=image))
        messages = build_messages(
            persona,
            await self.contexts.get(),
            await self.memories.get_all(),
            chat.messages[:-1],
            text,
            image,
        )
        return Turn(chat_id=chat_id, model=model or self.default_model, messages=messages)

    async def start_regenerate(
        self,
        chat_id: str,
        text: str | None = None,
        model: str | None = None,
        persona: str | None = None,
    ) -> Turn:
        """Build the prompt for a new alternative of the latest assistant reply.

        The user message just before that reply is re-asked; *text* is only
        used when there is none.

        Raises:
            InvalidRequestError: the chat has no assistant message, or there
                is nothing to re-ask.
            ChatNotFoundError: no such chat.
        """
        chat = await self.chats.get(chat_id)
        index = chat.last_assistant_index()
        if index is None:
            raise InvalidRequestError("No assistant message to regenerate")

        history = chat.messages[:index]
        image = None
        if history and history[-1].role == "user":
            user_content = history[-1].content
            image = history[-1].image
            history = history[:-1]
        else:
            user_content = text or ""
        if not user_content.strip():
            raise InvalidRequestError("Message is required")

        messages = build_messages(
            persona,
            await self.contexts.get(),
            await self.memories.get_all(),
            history,
            user_content,
            image,
        )
        return Turn(
            chat_id=chat_id,
            model=model or self.default_model,
            messages=messages,
            regenerate_index=index,
        )

    # -- Streaming -------------------------------------------------------------

    async def run(self, turn: Turn) -> AsyncIterator[dict[str, Any]]:
        """Stream *turn* to completion. Always ends with ``{"done": True}``."""
        t0 = time.monotonic()
        logger.info(
            "Turn started: chat=%s model=%s regenerate=%s",
            turn.chat_id,
            turn.model,
            turn.regenerate_index is not None,
        )
        try:
            async for event in self._run(turn):
                yield event
        except Exception:
            logger.exception("Turn failed: chat=%s", turn.chat_id)
            yield {"error": TURN_FAILED_ERROR}
        logger.info("Turn finished: chat=%s in %.2fs", turn.chat_id, time.monotonic() - t0)
        yield {"done": True}

    async def _run(self, turn: Turn) -> AsyncIterator[dict[str, Any]]:
        try:
            first = _StreamResult()
            async for event in self._relay(turn.model, turn.messages, self._tool_schemas(), first):
                yield event

            if not first.tool_calls:
                reply = first.text or NO_RESPONSE_REPLY
            else:
                logger.info(
                    "%d tool call(s): %s",
                    len(first.tool_calls),
                    ", ".join(c.name for c in first.tool_calls),
                )
                followup = [
                    *turn.messages,
                    {
                        "role": "assistant",
                        "content": first.text,
                        "tool_calls": [c.raw for c in first.tool_calls],
                    },
                ]
                for call in first.tool_calls:
                    async for event in self._dispatch(call, followup):
                        yield event

                # No tools on the second request: one tool round per turn.
                second = _StreamResult()
                async for event in self._relay(turn.model, followup, None, second):
                    yield event
                if second.tool_calls:
                    logger.info("Ignoring tool calls in follow-up completion")
                reply = second.text or self._fallback_reply(first.tool_calls)
        except InferenceUnavailableError as exc:
            logger.warning("Inference unavailable for chat %s: %s", turn.chat_id, exc)
            reply = UNAVAILABLE_REPLY.format(model=turn.model)
            yield {"token": reply}

        await self._persist(turn, reply)

    async def _relay(
        self,
        model: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None,
        result: _StreamResult,
    ) -> AsyncIterator[dict[str, Any]]:
        """Forward one completion's statuses and tokens, collecting text and tool calls."""
        async for chunk in self.client.stream_chat(model, messages, tools):
            if chunk.status:
                yield {"status": chunk.status}
            if chunk.tool_calls:
                result.tool_calls.extend(chunk.tool_calls)
            if chunk.content:
                result.text += chunk.content
                yield {"token": chunk.content}

    async def _dispatch(
        self, call: ToolCall, followup: list[dict[str, Any]]
    ) -> AsyncIterator[dict[str, Any]]:
        """Run one tool call and append its ``tool`` message to *followup*."""
        start = self.tools.start_status(call.name, call.arguments)
        if start:
            yield {"status": start, "toolCalling": True}

        result = await self.tools.execute(call.name, call.arguments, self.tool_context)
        followup.append({"role": "tool", "content": result.to_content(), "tool_name": call.name})

        tool_def = self.tools.get(call.name)
        if not result.success or tool_def is None:
            yield {"status": f"Tool error: {result.error}"}
        else:
            yield {"status": tool_def.done_status, tool_def.done_flag: True}

    def _tool_schemas(self) -> list[dict[str, Any]]:
        names = self.profiles.list_names()
        return self.tools.get_schemas({"available_profiles": ", ".join(names) or "none"})

    def _fallback_reply(self, calls: list[ToolCall]) -> str:
        for call in calls:
            tool_def = self.tools.get(call.name)
            if tool_def is not None:
                return tool_def.fallback_reply
        return NO_RESPONSE_REPLY

    async def _persist(self, turn: Turn, reply: str) -> None:
        try:
            if turn.regenerate_index is None:
                await self.chats.append_message(turn.chat_id, Message.text("assistant", reply))
            else:
                await self.chats.add_alternative(turn.chat_id, turn.regenerate_index, reply)
        except (ChatNotFoundError, InvalidRequestError):
            logger.warning("Chat %s changed during the turn; reply not saved", turn.chat_id)
            return
        logger.info("Saved assistant reply to chat %s (%d chars)", turn.chat_id, len(reply))

"""File-backed chat store: one JSON document per chat.

Every read-modify-write of a chat runs under that chat's ``asyncio.Lock``,
so concurrent turns in one process never lose each other's writes. Separate
processes writing the same chat still race (last writer wins).
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import TYPE_CHECKING, Any

from grambharat.chats.models import Chat, InvalidRequestError, Message
from grambharat.storage import read_json, write_json

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

logger = logging.getLogger(__name__)

_CHAT_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class ChatNotFoundError(LookupError):
    """No chat with the requested id exists."""


class ChatStore:
    def __init__(self, root: Path) -> None:
        self.root = root
        self._locks: dict[str, asyncio.Lock] = {}

    def _path(self, chat_id: str) -> Path:
        if not _CHAT_ID_RE.match(chat_id):
            raise ChatNotFoundError(chat_id)
        return self.root / f"{chat_id}.json"

    def _lock(self, chat_id: str) -> asyncio.Lock:
        return self._locks.setdefault(chat_id, asyncio.Lock())

    def _load(self, chat_id: str) -> Chat:
        data = read_json(self._path(chat_id), None)
        if not isinstance(data, dict):
            raise ChatNotFoundError(chat_id)
        data.setdefault("id", chat_id)
        try:
            return Chat.from_dict(data)
        except (KeyError, TypeError, AttributeError) as exc:
            logger.warning("Unreadable chat document %s: %r", chat_id, exc)
            raise ChatNotFoundError(chat_id) from exc

    def _save(self, chat: Chat) -> None:
        write_json(self._path(chat.id), chat.to_dict())

    async def _mutate(self, chat_id: str, change: Callable[[Chat], Any]) -> Any:
        async with self._lock(chat_id):
            chat = self._load(chat_id)
            result = change(chat)
            self._save(chat)
        return result

    # -- Chats -----------------------------------------------------------------

    async def create(self) -> Chat:
        chat = Chat()
        async with self._lock(chat.id):
            self._save(chat)
        logger.info("Created chat %s", chat.id)
        return chat

    async def get(self, chat_id: str) -> Chat:
        """Load a chat. Raises ChatNotFoundError."""
        async with self._lock(chat_id):
            return self._load(chat_id)

    async def list_summaries(self) -> list[dict[str, str]]:
        """``{id, title, createdAt, updatedAt}`` per chat, newest-updated first."""
        summaries: list[dict[str, str]] = []
        if not self.root.is_dir():
            return summaries
        for path in self.root.glob("*.json"):
            try:
                summaries.append(self._load(path.stem).summary())
            except (ChatNotFoundError, KeyError, TypeError, ValueError):
                logger.warning("Skipping unreadable chat file: %s", path.name)
        summaries.sort(key=lambda s: s["updatedAt"], reverse=True)
        return summaries

    async def delete(self, chat_id: str) -> None:
        """Remove a chat. Deleting an unknown chat is a no-op."""
        try:
            path = self._path(chat_id)
        except ChatNotFoundError:
            return
        async with self._lock(chat_id):
            path.unlink(missing_ok=True)
        self._locks.pop(chat_id, None)
        logger.info("Deleted chat %s", chat_id)

    # -- Messages --------------------------------------------------------------

    async def append_message(self, chat_id: str, message: Message) -> Chat:
        """Append *message* and return the updated chat."""

        def change(chat: Chat) -> Chat:
            chat.append(message)
            return chat

        chat = await self._mutate(chat_id, change)
        logger.debug("Chat %s now has %d messages", chat_id, len(chat.messages))
        return chat

    async def add_alternative(self, chat_id: str, index: int, text: str) -> Message:
        """Append *text* as the active alternative of message *index*."""

        def change(chat: Chat) -> Message:
            message = _message_at(chat, index)
            message.add_alternative(text)
            chat.touch()
            return message

        return await self._mutate(chat_id, change)

    async def switch_alternative(self, chat_id: str, index: int, active_index: int) -> str:
        """Activate alternative *active_index* of message *index*; returns its content.

        Raises InvalidRequestError without touching the file when the message
        has no alternatives or the index is out of range.
        """

        def change(chat: Chat) -> str:
            content = _message_at(chat, index).switch(active_index)
            chat.touch()
            return content

        return await self._mutate(chat_id, change)


def _message_at(chat: Chat, index: int) -> Message:
    if not 0 <= index < len(chat.messages):
        raise InvalidRequestError(f"Invalid message index: {index}")
    return chat.messages[index]

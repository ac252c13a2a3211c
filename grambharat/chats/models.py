"""Chat and Message data models.

A message body is either ``Plain`` (a single text) or ``Branched``
(regenerated alternatives with one active). ``Message.content`` is always
derived from the body. On disk and on the wire a message keeps the flat
shape ``{role, content, timestamp, image?, alternatives?, activeIndex?}``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

DEFAULT_TITLE = "New Chat"
TITLE_LENGTH = 50


class InvalidRequestError(ValueError):
    """A client request that cannot be applied to the current state."""


def format_timestamp(moment: datetime) -> str:
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def next_timestamp(previous: str | None = None) -> str:
    """Current UTC time, forced strictly past *previous* when given."""
    now = datetime.now(UTC)
    if previous:
        last = datetime.fromisoformat(previous.replace("Z", "+00:00"))
        if now <= last:
            now = last + timedelta(milliseconds=1)
    return format_timestamp(now)


def derive_title(text: str) -> str:
    """First 50 characters of *text*, with ``...`` when truncated."""
    if len(text) > TITLE_LENGTH:
        return text[:TITLE_LENGTH] + "..."
    return text


# -- Message body --------------------------------------------------------------


@dataclass(frozen=True)
class Plain:
    text: str


@dataclass(frozen=True)
class Branched:
    alternatives: tuple[str, ...]
    active_index: int

    def __post_init__(self) -> None:
        if not 0 <= self.active_index < len(self.alternatives):
            msg = (
                f"active index {self.active_index} out of range "
                f"for {len(self.alternatives)} alternatives"
            )
            raise InvalidRequestError(msg)


MessageBody = Plain | Branched


@dataclass
class Message:
    """A single chat message."""

    role: str  # "user" or "assistant"
    body: MessageBody
    timestamp: str = ""
    image: str | None = None

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = next_timestamp()

    @classmethod
    def text(cls, role: str, content: str, image: str | None = None) -> Message:
        return cls(role=role, body=Plain(content), image=image)

    @property
    def content(self) -> str:
        if isinstance(self.body, Branched):
            return self.body.alternatives[self.body.active_index]
        return self.body.text

    @property
    def alternatives(self) -> tuple[str, ...] | None:
        return self.body.alternatives if isinstance(self.body, Branched) else None

    def add_alternative(self, text: str) -> None:
        """Append *text* as a new alternative and make it active.

        The first regeneration seeds the list with the original content.
        """
        existing = self.alternatives or (self.content,)
        alternatives = (*existing, text)
        self.body = Branched(alternatives, len(alternatives) - 1)

    def switch(self, index: int) -> str:
        """Activate alternative *index* and return its content."""
        if not isinstance(self.body, Branched):
            raise InvalidRequestError("No alternatives for this message")
        if not 0 <= index < len(self.body.alternatives):
            raise InvalidRequestError("Invalid alternative index")
        self.body = Branched(self.body.alternatives, index)
        return self.content

    # -- Serialization ---------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
        }
        if self.image:
            data["image"] = self.image
        if isinstance(self.body, Branched):
            data["alternatives"] = list(self.body.alternatives)
            data["activeIndex"] = self.body.active_index
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        """Load a stored message; ``content`` is ignored when alternatives exist."""
        alternatives = data.get("alternatives")
        if alternatives:
            index = data.get("activeIndex", len(alternatives) - 1)
            if not isinstance(index, int) or not 0 <= index < len(alternatives):
                index = len(alternatives) - 1
            body: MessageBody = Branched(tuple(alternatives), index)
        else:
            body = Plain(data.get("content", ""))
        return cls(
            role=data["role"],
            body=body,
            timestamp=data.get("timestamp", ""),
            image=data.get("image"),
        )


# -- Chat ----------------------------------------------------------------------


@dataclass
class Chat:
    """A conversation. Mutated only through ``ChatStore``."""

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    title: str = DEFAULT_TITLE
    messages: list[Message] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = next_timestamp()
        if not self.updated_at:
            self.updated_at = self.created_at

    def touch(self) -> None:
        """Advance ``updated_at``; it never repeats or goes backwards."""
        self.updated_at = next_timestamp(self.updated_at)

    def append(self, message: Message) -> None:
        if message.role == "user" and not any(m.role == "user" for m in self.messages):
            self.title = derive_title(message.content)
        self.messages.append(message)
        self.touch()

    def last_assistant_index(self) -> int | None:
        for index in range(len(self.messages) - 1, -1, -1):
            if self.messages[index].role == "assistant":
                return index
        return None

    def summary(self) -> dict[str, str]:
        return {
            "id": self.id,
            "title": self.title,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def to_dict(self) -> dict[str, Any]:
        return {**self.summary(), "messages": [m.to_dict() for m in self.messages]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Chat:
        return cls(
            id=data["id"],
            title=data.get("title") or DEFAULT_TITLE,
            messages=[Message.from_dict(m) for m in data.get("messages", [])],
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )

"""Base types for the tool-calling framework."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

if TYPE_CHECKING:
    from grambharat.finance.profiles import ProfileStore
    from grambharat.memory.store import MemoryStore


@dataclass
class ToolResult:
    """Result of a tool execution.

    Every tool returns one of these. The controller sends ``to_content()``
    back to the model as the ``tool`` message.
    """

    data: dict[str, Any] | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_content(self) -> str:
        """Serialize for the ``tool`` message content."""
        if self.error:
            return json.dumps({"error": self.error}, ensure_ascii=False)
        return json.dumps(self.data or {}, indent=2, ensure_ascii=False)


class ToolParams(BaseModel):
    """Base class for tool parameter models.

    Subclass with Field() definitions. The JSON schema sent to the model is
    generated via model_json_schema().
    """


@dataclass
class ToolContext:
    """Stores a tool handler may need, injected by the registry."""

    memory_store: MemoryStore
    profile_store: ProfileStore

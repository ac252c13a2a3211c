"""Explicit memory capture.

The model calls this when the user shares something worth remembering
across chats.
"""

from pydantic import Field

from grambharat.memory.models import MemoryCategory
from grambharat.tools.base import ToolContext, ToolParams, ToolResult
from grambharat.tools.registry import ToolKind, registry


class SaveToMemoryParams(ToolParams):
    content: str = Field(min_length=1, description="The fact to remember, in one sentence")
    category: str = Field(
        default=MemoryCategory.OTHER.value,
        description="Category: " + ", ".join(c.value for c in MemoryCategory),
    )


@registry.tool(
    ToolKind.SAVE_TO_MEMORY,
    description=(
        "Save an important fact about the user to long-term memory. Use when the "
        "user shares personal, family, farming or financial details, or says "
        "'remember this'."
    ),
    params_model=SaveToMemoryParams,
    start_status="Saving to memory...",
    done_status="✓ Saved to memory",
    done_flag="memorySaved",
    fallback_reply="I've saved that to memory.",
)
async def save_to_memory(
    content: str, tool_context: ToolContext, category: str = MemoryCategory.OTHER.value
) -> ToolResult:
    record = await tool_context.memory_store.add(content=content, category=category)
    return ToolResult(data={"success": True, "id": record.id})

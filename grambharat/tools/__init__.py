"""Tool framework. Import tool modules here to register them."""

# Import tool modules so their @registry.tool() decorators execute.
from grambharat.tools import loan_tools, memory_tools  # noqa: F401
from grambharat.tools.base import ToolContext, ToolResult
from grambharat.tools.registry import ToolKind, registry

registry.check_complete()

__all__ = ["ToolContext", "ToolKind", "ToolResult", "registry"]

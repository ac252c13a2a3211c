"""Tool registry: the closed catalog of tools the model may call."""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from grambharat.tools.base import ToolContext, ToolParams, ToolResult

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

logger = logging.getLogger(__name__)


class ToolKind(StrEnum):
    """Every tool name the model may call."""

    CHECK_LOAN_ELIGIBILITY = "check_loan_eligibility"
    SAVE_TO_MEMORY = "save_to_memory"


@dataclass
class ToolDef:
    """Internal representation of a registered tool.

    ``start_status`` is formatted with the call arguments and sent to the
    client before the handler runs; ``done_status`` goes out afterwards with
    ``done_flag`` set. ``fallback_reply`` is stored when the model says
    nothing after the tool result.
    """

    kind: ToolKind
    description: str
    handler: Callable[..., Awaitable[ToolResult]]
    params_model: type[ToolParams]
    start_status: str
    done_status: str
    done_flag: str
    fallback_reply: str

    @property
    def name(self) -> str:
        return self.kind.value


class _KeepMissing(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def _fill(template: str, values: Mapping[str, Any]) -> str:
    return template.format_map(_KeepMissing(values))


class ToolRegistry:
    """Central registry for all tools.

    Register an async handler per ``ToolKind`` with the decorator::

        @registry.tool(
            ToolKind.SAVE_TO_MEMORY,
            description="Save a fact",
            params_model=SaveParams,
            ...
        )
        async def save_to_memory(content: str, tool_context: ToolContext) -> ToolResult:
            ...
    """

    def __init__(self) -> None:
        self._tools: dict[ToolKind, ToolDef] = {}

    def tool(
        self,
        kind: ToolKind,
        *,
        description: str,
        params_model: type[ToolParams],
        start_status: str,
        done_status: str,
        done_flag: str = "toolCalling",
        fallback_reply: str,
    ) -> Callable:
        """Decorator to register an async function as the handler for *kind*."""

        def decorator(fn: Callable[..., Awaitable[ToolResult]]) -> Callable:
            if not inspect.iscoroutinefunction(fn):
                msg = f"Tool handler '{kind}' must be an async function"
                raise TypeError(msg)

            self._tools[kind] = ToolDef(
                kind=kind,
                description=description,
                handler=fn,
                params_model=params_model,
                start_status=start_status,
                done_status=done_status,
                done_flag=done_flag,
                fallback_reply=fallback_reply,
            )
            return fn

        return decorator

    def get(self, name: str) -> ToolDef | None:
        """Look up a tool by name; None for names outside ``ToolKind``."""
        try:
            return self._tools.get(ToolKind(name))
        except ValueError:
            return None

    @property
    def tool_names(self) -> list[str]:
        return [kind.value for kind in self._tools]

    def check_complete(self) -> None:
        """Raise RuntimeError unless every ``ToolKind`` has a handler."""
        missing = [kind.value for kind in ToolKind if kind not in self._tools]
        if missing:
            msg = f"No handler registered for tool(s): {', '.join(missing)}"
            raise RuntimeError(msg)

    def get_schemas(self, hints: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        """Ollama function schemas for all registered tools.

        ``{placeholder}`` fields in descriptions are filled from *hints*.
        """
        return [self._tool_schema(t, hints or {}) for t in self._tools.values()]

    def start_status(self, name: str, arguments: Mapping[str, Any]) -> str | None:
        tool_def = self.get(name)
        if tool_def is None:
            return None
        return _fill(tool_def.start_status, arguments)

    async def execute(
        self,
        name: str,
        arguments: dict[str, Any],
        tool_context: ToolContext | None = None,
    ) -> ToolResult:
        """Execute a tool by name with the given arguments.

        Unknown names and invalid arguments come back as error results; they
        are never retried. If the handler accepts a ``tool_context``
        parameter, it is injected automatically.
        """
        tool_def = self.get(name)
        if tool_def is None:
            logger.warning("Model called unknown tool '%s'", name)
            return ToolResult(error=f"Unknown tool: {name}")

        try:
            params = tool_def.params_model(**arguments)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                for err in exc.errors()
            )
            logger.warning("Tool '%s' called with invalid arguments: %s", name, problems)
            return ToolResult(error=f"Invalid arguments for {name}: {problems}")

        logger.info("Tool '%s' called with %s", name, arguments)
        t0 = time.monotonic()

        try:
            kwargs = params.model_dump()
            if tool_context is not None and _accepts_param(tool_def.handler, "tool_context"):
                kwargs["tool_context"] = tool_context

            result = await tool_def.handler(**kwargs)
            elapsed = time.monotonic() - t0
            if result.success:
                logger.info("Tool '%s' succeeded in %.2fs", name, elapsed)
            else:
                logger.warning("Tool '%s' returned error in %.2fs: %s", name, elapsed, result.error)
            return result
        except Exception:
            elapsed = time.monotonic() - t0
            logger.exception("Tool '%s' failed in %.2fs", name, elapsed)
            return ToolResult(error=f"Tool '{name}' failed. Check logs for details.")

    @staticmethod
    def _tool_schema(tool_def: ToolDef, hints: Mapping[str, Any]) -> dict[str, Any]:
        """Build a single Ollama function schema dict."""
        return {
            "type": "function",
            "function": {
                "name": tool_def.name,
                "description": _fill(tool_def.description, hints),
                "parameters": tool_def.params_model.model_json_schema(),
            },
        }


def _accepts_param(fn: Callable[..., Any], param_name: str) -> bool:
    """Check whether a callable accepts a given parameter name."""
    return param_name in inspect.signature(fn).parameters


# Global registry. Tool modules register themselves on import.
registry = ToolRegistry()

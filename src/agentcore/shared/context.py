"""Context of the tool call currently being executed."""

from contextvars import ContextVar, Token
from dataclasses import dataclass


@dataclass(frozen=True)
class ToolCallContext:
    """Identifies the tool call a tool implementation is running for."""

    call_id: str
    tool_name: str


# Context variable holding the active tool call (None outside tool execution)
_tool_call_context: ContextVar[ToolCallContext | None] = ContextVar(
    "tool_call_context", default=None
)


def set_tool_call_context(ctx: ToolCallContext) -> Token[ToolCallContext | None]:
    """Set the tool call context for the running task."""
    return _tool_call_context.set(ctx)


def get_tool_call_context() -> ToolCallContext:
    """Get the tool call context for the running task.

    Raises:
        RuntimeError: If called outside of a tool execution.
    """
    ctx = _tool_call_context.get()
    if ctx is None:
        raise RuntimeError("No tool call context available outside of tool execution.")
    return ctx


def get_optional_tool_call_context() -> ToolCallContext | None:
    """Get the tool call context if available, None otherwise."""
    return _tool_call_context.get()


def reset_tool_call_context(token: Token[ToolCallContext | None]) -> None:
    """Restore the context that was active before ``set_tool_call_context``."""
    _tool_call_context.reset(token)


def clear_tool_call_context() -> None:
    """Clear the tool call context."""
    _tool_call_context.set(None)

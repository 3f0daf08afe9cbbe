"""Tools the model can call."""

from agentcore.domain.tools.base import FunctionTool, Tool

__all__ = ["FunctionTool", "Tool"]

"""Tool registry and built-in tools."""

from synapsebot.tools.builtin import register_builtin_tools
from synapsebot.tools.registry import ToolDescriptor, ToolOutcome, ToolRegistry

__all__ = ["ToolDescriptor", "ToolOutcome", "ToolRegistry", "register_builtin_tools"]

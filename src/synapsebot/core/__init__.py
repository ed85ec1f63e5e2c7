"""Conversation core: turns, history, admission gate and the tool-call loop."""

from synapsebot.core.gate import ProcessingGate
from synapsebot.core.history import HistoryStore
from synapsebot.core.types import ModelResponse, Role, Text, ToolCall, ToolResult, Turn, Unknown

__all__ = [
    "HistoryStore",
    "ModelResponse",
    "ProcessingGate",
    "Role",
    "Text",
    "ToolCall",
    "ToolResult",
    "Turn",
    "Unknown",
]

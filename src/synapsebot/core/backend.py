"""Collaborator interfaces consumed by the orchestration loop."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from synapsebot.core.types import ModelResponse, ToolCall, ToolResult, Turn


class ChatSession(Protocol):
    """One conversation with the generative backend, bound to one connection.

    Both methods raise `BackendError` when the remote call fails.
    """

    async def send_text(self, text: str) -> ModelResponse: ...

    async def send_tool_result(self, call: ToolCall, result: ToolResult) -> ModelResponse: ...


class ChatBackend(Protocol):
    def start_chat(self, history: Sequence[Turn]) -> ChatSession: ...


class Transport(Protocol):
    """Outbound side of the chat platform."""

    async def send_message(self, chat_id: int, text: str) -> int | None: ...

    async def update_message(self, chat_id: int, message_id: int, text: str) -> None: ...

    async def send_file_with_progress(self, chat_id: int, path: Path) -> None: ...

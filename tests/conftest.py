from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest

from synapsebot.core.gate import ProcessingGate
from synapsebot.core.history import HistoryStore
from synapsebot.core.orchestrator import Orchestrator
from synapsebot.core.types import ModelResponse, ToolCall, ToolResult, Turn
from synapsebot.tools.registry import ToolRegistry


class FakeTransport:
    def __init__(self) -> None:
        self.sent: list[tuple[int, str]] = []
        self.updates: list[tuple[int, int, str]] = []
        self.files: list[tuple[int, Path]] = []
        self._next_id = 100

    async def send_message(self, chat_id: int, text: str) -> int:
        self._next_id += 1
        self.sent.append((chat_id, text))
        return self._next_id

    async def update_message(self, chat_id: int, message_id: int, text: str) -> None:
        self.updates.append((chat_id, message_id, text))

    async def send_file_with_progress(self, chat_id: int, path: Path) -> None:
        self.files.append((chat_id, path))


class ScriptedSession:
    def __init__(
        self, script: list[ModelResponse | Exception], history: Sequence[Turn], default: ModelResponse
    ) -> None:
        self._script = script
        self._default = default
        self.history = tuple(history)
        self.texts: list[str] = []
        self.tool_results: list[tuple[ToolCall, ToolResult]] = []

    async def send_text(self, text: str) -> ModelResponse:
        self.texts.append(text)
        return self._next()

    async def send_tool_result(self, call: ToolCall, result: ToolResult) -> ModelResponse:
        self.tool_results.append((call, result))
        return self._next()

    def _next(self) -> ModelResponse:
        if not self._script:
            return self._default
        item = self._script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class ScriptedBackend:
    """Replays responses in order across every session it opens."""

    def __init__(self, *script: ModelResponse | Exception, default: ModelResponse | None = None) -> None:
        self.script = list(script)
        self.default = default or ModelResponse()
        self.sessions: list[ScriptedSession] = []

    def start_chat(self, history: Sequence[Turn]) -> ScriptedSession:
        session = ScriptedSession(self.script, history, self.default)
        self.sessions.append(session)
        return session


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def history() -> HistoryStore:
    return HistoryStore()


@pytest.fixture
def gate() -> ProcessingGate:
    return ProcessingGate()


@pytest.fixture
def make_orchestrator(history: HistoryStore, gate: ProcessingGate, transport: FakeTransport):
    def _make(backend: ScriptedBackend, registry: ToolRegistry | None = None, **kwargs: object) -> Orchestrator:
        return Orchestrator(
            history=history,
            gate=gate,
            registry=registry or ToolRegistry(),
            backend=backend,
            transport=transport,
            **kwargs,  # type: ignore[arg-type]
        )

    return _make

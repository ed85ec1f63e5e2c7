"""Tool-call resolution loop for one user turn."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from synapsebot.channels.utils import TELEGRAM_MESSAGE_LIMIT, split_message
from synapsebot.core.backend import ChatBackend, ChatSession, Transport
from synapsebot.core.gate import ProcessingGate
from synapsebot.core.history import HistoryStore
from synapsebot.core.types import ModelResponse, Text, ToolCall, ToolResult, Turn, Unknown
from synapsebot.errors import BackendError, EmptyHistoryError, ToolError, ToolNotFoundError
from synapsebot.logging_utils import conversation_scope
from synapsebot.tools.registry import ToolRegistry

DEFAULT_MAX_TOOL_DEPTH = 10

BUSY_MESSAGE = "Please wait, processing previous request..."
PROCESSING_MESSAGE = "⏳Processing your request..."
GENERIC_FAILURE_MESSAGE = "An error occurred, please try again"
BACKEND_FAILURE_MESSAGE = "something went wrong!, please try again after sometime."
TOO_MANY_TOOL_CALLS_MESSAGE = "Too many tool calls, stopping here."


@dataclass
class _TurnState:
    conversation_id: int
    session: ChatSession
    status_message_id: int | None
    stopped: bool = False


class Orchestrator:
    """Drives one user turn: model calls, tool calls and delivery, until a final answer."""

    def __init__(
        self,
        *,
        history: HistoryStore,
        gate: ProcessingGate,
        registry: ToolRegistry,
        backend: ChatBackend,
        transport: Transport,
        max_tool_depth: int = DEFAULT_MAX_TOOL_DEPTH,
        message_limit: int = TELEGRAM_MESSAGE_LIMIT,
        message_length: Callable[[str], int] = len,
    ) -> None:
        self._history = history
        self._gate = gate
        self._registry = registry
        self._backend = backend
        self._transport = transport
        self._max_tool_depth = max_tool_depth
        self._message_limit = message_limit
        self._message_length = message_length
        self._background: set[asyncio.Task[None]] = set()

    async def handle_message(self, conversation_id: int, text: str, status_message_id: int | None) -> None:
        """Run one turn behind the processing gate. Never raises."""
        with conversation_scope(conversation_id):
            async with self._gate.hold(conversation_id) as acquired:
                if not acquired:
                    await self._post(conversation_id, status_message_id, BUSY_MESSAGE)
                    return
                try:
                    await self._post(conversation_id, status_message_id, PROCESSING_MESSAGE)
                    await self.run(conversation_id, text, status_message_id)
                except Exception:
                    logger.exception("orchestrator.turn.error")
                    await self._post(conversation_id, status_message_id, GENERIC_FAILURE_MESSAGE)

    async def run(self, conversation_id: int, text: str, status_message_id: int | None = None) -> None:
        user_turn = Turn.user(text)
        self._history.append(conversation_id, user_turn)
        context = self._context(conversation_id, user_turn)

        state = _TurnState(
            conversation_id=conversation_id,
            session=self._backend.start_chat(context),
            status_message_id=status_message_id,
        )
        try:
            response = await state.session.send_text(text)
            await self._handle_response(state, response, depth=0)
        except BackendError as exc:
            logger.error("orchestrator.backend.error error={}", exc)
            await self._reply(state, BACKEND_FAILURE_MESSAGE)

    async def drain(self) -> None:
        """Wait for pending file deliveries."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _context(self, conversation_id: int, user_turn: Turn) -> tuple[Turn, ...]:
        try:
            turns = self._history.snapshot(conversation_id)
        except EmptyHistoryError:
            logger.info("orchestrator.history.empty")
            return ()
        # The new message is sent on its own; keep it out of the context.
        if turns and turns[-1] == user_turn:
            turns = turns[:-1]
        return turns

    async def _handle_response(self, state: _TurnState, response: ModelResponse, *, depth: int) -> None:
        for candidate in response.candidates:
            for part in candidate.parts:
                if state.stopped:
                    return
                match part:
                    case Text(text=raw):
                        text = raw.strip()
                        if text:
                            self._history.append(state.conversation_id, Turn.model(part))
                            await self._reply(state, text)
                    case ToolCall():
                        await self._handle_tool_call(state, part, depth=depth)
                    case ToolResult() | Unknown():
                        logger.info("orchestrator.part.ignored kind={}", type(part).__name__)

    async def _handle_tool_call(self, state: _TurnState, call: ToolCall, *, depth: int) -> None:
        if depth >= self._max_tool_depth:
            logger.warning("orchestrator.tool.depth_exceeded name={} depth={}", call.name, depth)
            state.stopped = True
            await self._reply(state, TOO_MANY_TOOL_CALLS_MESSAGE)
            return

        self._history.append(state.conversation_id, Turn.model(call))
        try:
            if not self._registry.has(call.name):
                raise ToolNotFoundError(call.name)
            await self._status(state, f"Executing {call.name}")
            outcome = await self._registry.execute(call.name, call.arguments)
        except ToolError as exc:
            logger.warning("orchestrator.tool.error name={} error={}", call.name, exc)
            result = ToolResult.failure(call.name, str(exc))
            self._history.append(state.conversation_id, Turn.tool(result))
            await self._status(state, str(exc), required=True)
            response = await state.session.send_tool_result(call, result)
            await self._handle_response(state, response, depth=depth + 1)
            return

        logger.info("orchestrator.tool.ok name={}", call.name)
        await self._status(state, f"{call.name} executed successfully")
        result = ToolResult(call.name, {"result": outcome.content})
        self._history.append(state.conversation_id, Turn.tool(result))
        if outcome.artifact is not None:
            self._deliver_file(state.conversation_id, outcome.artifact)

        response = await state.session.send_tool_result(call, result)
        if response.has_content():
            await self._handle_response(state, response, depth=depth + 1)

    async def _reply(self, state: _TurnState, text: str) -> None:
        """Deliver model text; the first chunk takes over the status message."""
        for chunk in split_message(text, self._message_limit, measure=self._message_length):
            if state.status_message_id is not None:
                message_id, state.status_message_id = state.status_message_id, None
                await self._post(state.conversation_id, message_id, chunk)
            else:
                await self._post(state.conversation_id, None, chunk)

    async def _status(self, state: _TurnState, text: str, *, required: bool = False) -> None:
        if state.status_message_id is not None:
            await self._post(state.conversation_id, state.status_message_id, text)
        elif required:
            await self._post(state.conversation_id, None, text)

    async def _post(self, conversation_id: int, message_id: int | None, text: str) -> None:
        try:
            if message_id is None:
                await self._transport.send_message(conversation_id, text)
            else:
                await self._transport.update_message(conversation_id, message_id, text)
        except Exception:
            logger.exception("orchestrator.transport.error message_id={}", message_id)

    def _deliver_file(self, conversation_id: int, path: Path) -> None:
        task = asyncio.create_task(self._send_file(conversation_id, path))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _send_file(self, conversation_id: int, path: Path) -> None:
        with conversation_scope(conversation_id):
            try:
                await self._transport.send_file_with_progress(conversation_id, path)
            except Exception:
                logger.exception("orchestrator.file.error path={}", path)

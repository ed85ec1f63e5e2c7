"""Republic integration: the generative backend behind the chat loop."""

from __future__ import annotations

import asyncio
import json
import uuid
from collections.abc import Sequence
from typing import Any, TypeAlias

from loguru import logger
from republic import LLM, Tool

from synapsebot.config.settings import Settings
from synapsebot.core.types import Candidate, ModelResponse, Role, Text, ToolCall, ToolResult, Turn, Unknown
from synapsebot.errors import BackendError

Message: TypeAlias = dict[str, Any]


def build_llm(settings: Settings) -> LLM:
    """Build Republic LLM client configured for the gateway."""

    return LLM(
        settings.require_model(),
        api_key=settings.api_key,
        api_base=settings.api_base,
    )


def history_to_messages(turns: Sequence[Turn]) -> list[Message]:
    """Convert stored turns into chat-completion messages.

    Tool calls are only emitted together with their result. Calls or results
    whose partner was evicted from the bounded history are dropped.
    """
    messages: list[Message] = []
    pending: ToolCall | None = None
    for turn in turns:
        if turn.role is Role.TOOL:
            for part in turn.parts:
                if not isinstance(part, ToolResult) or pending is None or pending.name != part.name:
                    continue
                call_id = pending.call_id or _new_call_id()
                messages.append(_assistant_call(pending, call_id))
                messages.append(_tool_message(call_id, part))
                pending = None
            continue

        pending = None
        texts = [part.text for part in turn.parts if isinstance(part, Text)]
        calls = [part for part in turn.parts if isinstance(part, ToolCall)]
        if texts:
            role = "user" if turn.role is Role.USER else "assistant"
            messages.append({"role": role, "content": "\n".join(texts)})
        if calls:
            pending = calls[-1]
    return messages


def parse_response(response: Any) -> ModelResponse:
    """Read an OpenAI-shaped completion into candidates of parts."""
    candidates: list[Candidate] = []
    for choice in getattr(response, "choices", None) or ():
        message = getattr(choice, "message", None)
        if message is None:
            continue
        parts: list[Text | ToolCall | Unknown] = []
        content = getattr(message, "content", None)
        if isinstance(content, str):
            parts.append(Text(content))
        elif content is not None:
            parts.append(Unknown(content))
        for idx, tool_call in enumerate(getattr(message, "tool_calls", None) or ()):
            function = getattr(tool_call, "function", None)
            if function is None:
                parts.append(Unknown(tool_call))
                continue
            parts.append(
                ToolCall(
                    name=getattr(function, "name", "") or "",
                    arguments=_parse_arguments(getattr(function, "arguments", None)),
                    call_id=getattr(tool_call, "id", None) or f"call_{idx}",
                )
            )
        candidates.append(Candidate(tuple(parts)))
    return ModelResponse(tuple(candidates))


class RepublicChatSession:
    """Stateful chat over one message list; each send appends and calls the model."""

    def __init__(
        self,
        llm: LLM,
        *,
        tools: list[Tool],
        system_prompt: str,
        max_tokens: int,
        history: Sequence[Turn],
    ) -> None:
        self._llm = llm
        self._tools = tools
        self._max_tokens = max_tokens
        self._messages: list[Message] = []
        if system_prompt:
            self._messages.append({"role": "system", "content": system_prompt})
        self._messages.extend(history_to_messages(history))

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    async def send_text(self, text: str) -> ModelResponse:
        self._messages.append({"role": "user", "content": text})
        return await self._complete()

    async def send_tool_result(self, call: ToolCall, result: ToolResult) -> ModelResponse:
        call_id = call.call_id or _new_call_id()
        self._messages.append(_assistant_call(call, call_id))
        self._messages.append(_tool_message(call_id, result))
        return await self._complete()

    async def _complete(self) -> ModelResponse:
        try:
            raw = await asyncio.to_thread(
                self._llm.chat.raw,
                messages=list(self._messages),
                tools=self._tools,
                max_tokens=self._max_tokens,
            )
        except Exception as exc:
            logger.exception("backend.call.error")
            raise BackendError(f"model_call_error: {exc!s}") from exc

        if not getattr(raw, "choices", None) and (error := getattr(raw, "error", None)) is not None:
            raise BackendError(f"model_call_error: {error!s}")

        response = parse_response(raw)
        # Tool calls are recorded when their result is sent back.
        for candidate in response.candidates[:1]:
            text = "".join(part.text for part in candidate.parts if isinstance(part, Text))
            if text.strip():
                self._messages.append({"role": "assistant", "content": text})
        return response


class RepublicBackend:
    """Factory of chat sessions sharing one LLM client and one tool set."""

    def __init__(self, llm: LLM, *, tools: list[Tool], system_prompt: str, max_tokens: int) -> None:
        self._llm = llm
        self._tools = tools
        self._system_prompt = system_prompt
        self._max_tokens = max_tokens

    def start_chat(self, history: Sequence[Turn]) -> RepublicChatSession:
        return RepublicChatSession(
            self._llm,
            tools=self._tools,
            system_prompt=self._system_prompt,
            max_tokens=self._max_tokens,
            history=history,
        )


def _new_call_id() -> str:
    return f"call_{uuid.uuid4().hex[:12]}"


def _assistant_call(call: ToolCall, call_id: str) -> Message:
    return {
        "role": "assistant",
        "content": None,
        "tool_calls": [
            {
                "id": call_id,
                "type": "function",
                "function": {"name": call.name, "arguments": json.dumps(call.arguments, ensure_ascii=False)},
            }
        ],
    }


def _tool_message(call_id: str, result: ToolResult) -> Message:
    return {
        "role": "tool",
        "tool_call_id": call_id,
        "content": json.dumps(result.response(), ensure_ascii=False),
    }


def _parse_arguments(raw: object) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("backend.tool_call.bad_arguments raw={}", raw[:200])
        return {}
    return parsed if isinstance(parsed, dict) else {}

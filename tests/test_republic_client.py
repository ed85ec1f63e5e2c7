from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from synapsebot.core.types import Text, ToolCall, ToolResult, Turn, Unknown
from synapsebot.errors import BackendError
from synapsebot.integrations.republic_client import RepublicChatSession, history_to_messages, parse_response


def _completion(content: str | None = None, tool_calls: list[object] | None = None) -> SimpleNamespace:
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _tool_call(name: str, arguments: str, call_id: str = "call_1") -> SimpleNamespace:
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


class FakeLLM:
    def __init__(self, *responses: object) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, object]] = []
        self.chat = SimpleNamespace(raw=self._raw)

    def _raw(self, **kwargs: object) -> object:
        self.calls.append(kwargs)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def test_history_pairs_calls_with_results() -> None:
    call = ToolCall("echo", {"value": "x"}, call_id="abc")
    turns = [
        Turn.user("hi"),
        Turn.model(call),
        Turn.tool(ToolResult("echo", {"result": "x"})),
        Turn.model(Text("done")),
    ]

    messages = history_to_messages(turns)

    assert [message["role"] for message in messages] == ["user", "assistant", "tool", "assistant"]
    assert messages[1]["tool_calls"][0]["id"] == "abc"
    assert messages[2] == {"role": "tool", "tool_call_id": "abc", "content": json.dumps({"result": "x"})}


def test_history_drops_orphans() -> None:
    turns = [
        Turn.tool(ToolResult("echo", {"result": "lost call"})),
        Turn.user("hi"),
        Turn.model(ToolCall("echo")),
    ]

    assert history_to_messages(turns) == [{"role": "user", "content": "hi"}]


def test_parse_response_reads_text_and_tool_calls() -> None:
    raw = _completion("thinking", [_tool_call("read_file", '{"file_name": "a.txt"}'), _tool_call("x", "{bad")])

    response = parse_response(raw)

    (candidate,) = response.candidates
    assert candidate.parts == (
        Text("thinking"),
        ToolCall("read_file", {"file_name": "a.txt"}),
        ToolCall("x", {}),
    )
    assert candidate.parts[1].call_id == "call_1"


def test_parse_response_marks_unknown_parts() -> None:
    response = parse_response(_completion([{"type": "image"}]))
    assert isinstance(response.candidates[0].parts[0], Unknown)
    assert not response.has_content()


@pytest.mark.asyncio
async def test_session_sends_tool_result_after_call() -> None:
    llm = FakeLLM(_completion(None, [_tool_call("echo", "{}", "c1")]), _completion("final"))
    session = RepublicChatSession(llm, tools=[], system_prompt="sys", max_tokens=64, history=[])

    first = await session.send_text("hello")
    call = first.candidates[0].parts[0]
    second = await session.send_tool_result(call, ToolResult("echo", {"result": "ok"}))

    assert second.candidates[0].parts == (Text("final"),)
    roles = [message["role"] for message in session.messages]
    assert roles == ["system", "user", "assistant", "tool", "assistant"]
    assert llm.calls[1]["max_tokens"] == 64
    assert session.messages[3]["tool_call_id"] == "c1"


@pytest.mark.asyncio
async def test_session_wraps_backend_failures() -> None:
    session = RepublicChatSession(FakeLLM(RuntimeError("quota")), tools=[], system_prompt="", max_tokens=8, history=[])
    with pytest.raises(BackendError, match="quota"):
        await session.send_text("hello")

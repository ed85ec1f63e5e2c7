"""Conversation data model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeAlias


class Role(StrEnum):
    USER = "user"
    MODEL = "model"
    TOOL = "tool"


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class ToolCall:
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    call_id: str | None = field(default=None, compare=False)


@dataclass(frozen=True)
class ToolResult:
    """Result of one tool call; exactly one of `payload` and `error` is meaningful."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @classmethod
    def failure(cls, name: str, message: str) -> ToolResult:
        return cls(name=name, error=message)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def response(self) -> dict[str, Any]:
        """Body sent back to the backend as the function response."""
        if self.error is not None:
            return {"error": self.error}
        return dict(self.payload)


@dataclass(frozen=True)
class Unknown:
    """Part kind the gateway does not understand; logged and skipped."""

    raw: Any = None


Part: TypeAlias = Text | ToolCall | ToolResult | Unknown


@dataclass(frozen=True)
class Turn:
    """One message exchange unit in a conversation."""

    role: Role
    parts: tuple[Part, ...]

    def __post_init__(self) -> None:
        if self.role is Role.TOOL and not all(isinstance(part, ToolResult) for part in self.parts):
            raise ValueError("tool turns may only contain ToolResult parts")

    @classmethod
    def user(cls, text: str) -> Turn:
        return cls(Role.USER, (Text(text),))

    @classmethod
    def model(cls, *parts: Text | ToolCall) -> Turn:
        return cls(Role.MODEL, parts)

    @classmethod
    def tool(cls, *results: ToolResult) -> Turn:
        return cls(Role.TOOL, results)


@dataclass(frozen=True)
class Candidate:
    parts: tuple[Part, ...] = ()


@dataclass(frozen=True)
class ModelResponse:
    """One backend response: zero or more candidates, each an ordered list of parts."""

    candidates: tuple[Candidate, ...] = ()

    @classmethod
    def of(cls, *parts: Part) -> ModelResponse:
        return cls((Candidate(parts),))

    def has_content(self) -> bool:
        """True when any candidate carries non-blank text or a tool call."""
        for candidate in self.candidates:
            for part in candidate.parts:
                match part:
                    case Text(text=text):
                        if text.strip():
                            return True
                    case ToolCall():
                        return True
                    case ToolResult() | Unknown():
                        continue
        return False

"""Unified tool registry."""

from __future__ import annotations

import asyncio
import inspect
import json
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeAlias

from loguru import logger
from pydantic import BaseModel, ValidationError
from republic import Tool, tool_from_model

from synapsebot.errors import ToolExecutionError, ToolNotFoundError

ToolHandler: TypeAlias = "Callable[[Any], ToolOutcome | str | Awaitable[ToolOutcome | str]]"


def _shorten_text(text: str, width: int = 30, placeholder: str = "...") -> str:
    if len(text) <= width:
        return text
    available = width - len(placeholder)
    if available <= 0:
        return placeholder
    return text[:available] + placeholder


@dataclass(frozen=True)
class ToolOutcome:
    """Tool output plus an optional file the transport should deliver."""

    content: str
    artifact: Path | None = None


@dataclass(frozen=True)
class ToolDescriptor:
    """Tool metadata and runtime handle."""

    name: str
    short_description: str
    model: type[BaseModel]
    handler: ToolHandler


class ToolRegistry:
    """Name to tool mapping. Holds no per-call state."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}

    def register(
        self, *, name: str, short_description: str, model: type[BaseModel]
    ) -> Callable[[ToolHandler], ToolHandler]:
        def decorator(handler: ToolHandler) -> ToolHandler:
            if name in self._tools:
                raise ValueError(f"Duplicate tool name: {name}")
            self._tools[name] = ToolDescriptor(
                name=name,
                short_description=short_description,
                model=model,
                handler=handler,
            )
            return handler

        return decorator

    def has(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    def descriptors(self) -> list[ToolDescriptor]:
        return sorted(self._tools.values(), key=lambda item: item.name)

    def model_tools(self) -> list[Tool]:
        """Tool declarations advertised to the backend."""
        return [
            tool_from_model(
                descriptor.model,
                descriptor.handler,
                name=descriptor.name,
                description=descriptor.short_description,
            )
            for descriptor in self.descriptors()
        ]

    async def execute(self, name: str, arguments: Mapping[str, Any]) -> ToolOutcome:
        descriptor = self.get(name)
        if descriptor is None:
            raise ToolNotFoundError(name)

        try:
            params = descriptor.model.model_validate(dict(arguments))
        except ValidationError as exc:
            raise ToolExecutionError(f"invalid arguments for {name}: {_validation_summary(exc)}") from exc

        self._log_tool_call(name, arguments)
        start = time.monotonic()
        try:
            if inspect.iscoroutinefunction(descriptor.handler):
                result = await descriptor.handler(params)
            else:
                result = await asyncio.to_thread(descriptor.handler, params)
                if inspect.isawaitable(result):
                    result = await result
        except ToolExecutionError:
            logger.warning("tool.call.failed name={}", name)
            raise
        except Exception as exc:
            logger.exception("tool.call.error name={}", name)
            raise ToolExecutionError(str(exc) or exc.__class__.__name__) from exc
        finally:
            duration = time.monotonic() - start
            logger.info("tool.call.end name={} duration={:.3f}ms", name, duration * 1000)

        if isinstance(result, ToolOutcome):
            return result
        return ToolOutcome(content=str(result))

    def _log_tool_call(self, name: str, arguments: Mapping[str, Any]) -> None:
        params: list[str] = []
        for key, value in arguments.items():
            try:
                rendered = json.dumps(value, ensure_ascii=False)
            except TypeError:
                rendered = repr(value)
            params.append(f"{key}={_shorten_text(rendered)}")
        logger.info("tool.call.start name={} {{ {} }}", name, ", ".join(params))


def _validation_summary(exc: ValidationError) -> str:
    rows = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "-"
        rows.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(rows)

"""Runtime logging helpers."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

import loguru
from loguru import logger

_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<7} | {name}:{function}:{line} | {extra[conversation]} | {message}"
)
_current_conversation: ContextVar[str] = ContextVar("synapse_conversation", default="-")
_CONFIGURED = False


def current_conversation() -> str:
    return _current_conversation.get()


@contextmanager
def conversation_scope(conversation_id: int | str) -> Iterator[None]:
    """Tag every log record emitted inside the block with one conversation id."""
    token = _current_conversation.set(str(conversation_id))
    try:
        yield
    finally:
        _current_conversation.reset(token)


def configure_logging(level: str = "INFO") -> None:
    """Configure process-level logging once."""

    def inject_context(record: loguru.Record) -> None:
        record["extra"]["conversation"] = current_conversation()

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger.remove()
    logger.configure(patcher=inject_context)
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=_LOG_FORMAT,
        backtrace=False,
        diagnose=False,
    )
    _CONFIGURED = True

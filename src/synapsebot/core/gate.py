"""Per-conversation admission control."""

from __future__ import annotations

import threading
import time
from collections.abc import AsyncIterator, Callable, Hashable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from loguru import logger

DEFAULT_TIMEOUT_SECONDS = 120.0


@dataclass
class ProcessingState:
    timeout: float
    busy: bool = False
    started_at: float = 0.0
    evicted: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


class ProcessingGate:
    """Non-blocking Idle/Busy state machine keyed by conversation id.

    A second turn for a busy conversation is rejected instead of queued.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout = timeout
        self._clock = clock
        self._states: dict[Hashable, ProcessingState] = {}

    def _state(self, conversation_id: Hashable) -> ProcessingState:
        state = self._states.get(conversation_id)
        if state is None:
            logger.debug("gate.state.create conversation={}", conversation_id)
            state = self._states.setdefault(conversation_id, ProcessingState(timeout=self.timeout))
        return state

    def try_acquire(self, conversation_id: Hashable) -> bool:
        while True:
            state = self._state(conversation_id)
            with state.lock:
                if state.evicted:
                    # Lost a race with the janitor; retry on a fresh entry.
                    continue
                if state.busy:
                    logger.info("gate.busy conversation={}", conversation_id)
                    return False
                state.busy = True
                state.started_at = self._clock()
                logger.debug("gate.acquire conversation={}", conversation_id)
                return True

    def release(self, conversation_id: Hashable) -> None:
        state = self._states.get(conversation_id)
        if state is None:
            return
        with state.lock:
            if state.busy:
                logger.debug("gate.release conversation={}", conversation_id)
            state.busy = False

    def is_busy(self, conversation_id: Hashable) -> bool:
        state = self._states.get(conversation_id)
        if state is None:
            return False
        with state.lock:
            return state.busy

    def started_at(self, conversation_id: Hashable) -> float | None:
        state = self._states.get(conversation_id)
        if state is None:
            return None
        with state.lock:
            return state.started_at

    @asynccontextmanager
    async def hold(self, conversation_id: Hashable) -> AsyncIterator[bool]:
        """Yield whether the gate was acquired; release on every exit path when it was."""
        acquired = self.try_acquire(conversation_id)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(conversation_id)

    def reap(self) -> int:
        """Drop idle entries older than twice their timeout. Busy entries are kept."""
        now = self._clock()
        removed = 0
        for conversation_id, state in list(self._states.items()):
            with state.lock:
                if state.busy or now - state.started_at <= state.timeout * 2:
                    continue
                state.evicted = True
                if self._states.get(conversation_id) is state:
                    del self._states[conversation_id]
                removed += 1
        if removed:
            logger.info("gate.reap removed={} remaining={}", removed, len(self._states))
        return removed

    def __len__(self) -> int:
        return len(self._states)

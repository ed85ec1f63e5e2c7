"""Bounded per-conversation history."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Hashable

from synapsebot.core.types import Turn
from synapsebot.errors import EmptyHistoryError

DEFAULT_HISTORY_SIZE = 15


class ConversationHistory:
    """Ordered turns of one conversation, oldest evicted first."""

    def __init__(self, conversation_id: Hashable, max_turns: int = DEFAULT_HISTORY_SIZE) -> None:
        self.conversation_id = conversation_id
        self._lock = threading.Lock()
        self._turns: deque[Turn] = deque(maxlen=max_turns)

    def append(self, turn: Turn) -> None:
        with self._lock:
            self._turns.append(turn)

    def snapshot(self) -> tuple[Turn, ...]:
        with self._lock:
            if not self._turns:
                raise EmptyHistoryError(f"no turns for conversation {self.conversation_id}")
            return tuple(self._turns)

    def __len__(self) -> int:
        with self._lock:
            return len(self._turns)


class HistoryStore:
    """Process-lifetime store of conversation histories.

    Entries are created on first touch and never removed, so memory grows
    with the number of distinct conversations times `max_turns`.
    """

    def __init__(self, max_turns: int = DEFAULT_HISTORY_SIZE) -> None:
        self.max_turns = max_turns
        self._histories: dict[Hashable, ConversationHistory] = {}

    def get(self, conversation_id: Hashable) -> ConversationHistory:
        existing = self._histories.get(conversation_id)
        if existing is not None:
            return existing
        # setdefault is atomic, so racing creators end up sharing one entry.
        return self._histories.setdefault(conversation_id, ConversationHistory(conversation_id, self.max_turns))

    def append(self, conversation_id: Hashable, turn: Turn) -> None:
        self.get(conversation_id).append(turn)

    def snapshot(self, conversation_id: Hashable) -> tuple[Turn, ...]:
        return self.get(conversation_id).snapshot()

    def conversations(self) -> list[Hashable]:
        return list(self._histories)

    def __len__(self) -> int:
        return len(self._histories)

"""Bounded in-memory conversation history."""

from collections import deque
from dataclasses import dataclass

HISTORY_CAPACITY = 10


@dataclass(frozen=True)
class ConversationTurn:
    user_message: str
    assistant_reply: str


class ConversationHistory:
    """Fixed-capacity FIFO of completed turns.

    Appending past capacity evicts the oldest turn. Nothing is persisted;
    the history lives as long as the session that owns it.
    """

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError("history capacity must be at least 1")
        self.capacity = capacity
        self._turns: deque[ConversationTurn] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self):
        return iter(self._turns)

    @property
    def turns(self) -> list[ConversationTurn]:
        return list(self._turns)

    def append(self, turn: ConversationTurn) -> None:
        self._turns.append(turn)

    def clear(self) -> None:
        self._turns.clear()

    def to_message_sequence(self) -> list[dict]:
        """Expand retained turns oldest-first into alternating user/assistant messages."""
        messages: list[dict] = []
        for turn in self._turns:
            messages.append({"role": "user", "content": turn.user_message})
            messages.append({"role": "assistant", "content": turn.assistant_reply})
        return messages

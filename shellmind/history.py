"""Bounded in-memory conversation history."""

from collections import deque
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Deque, Dict, Iterator, Tuple


class Role(str, Enum):
    """Author of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


DIALOGUE_ROLES = (Role.USER, Role.ASSISTANT)


@dataclass(frozen=True)
class Turn:
    """Represents a single conversation turn."""

    role: Role
    text: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert turn to dictionary format."""
        data = asdict(self)
        data["role"] = self.role.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Turn":
        """Create turn from dictionary format."""
        return cls(role=Role(data["role"]), text=data["text"])


class ConversationHistory:
    """Ordered log of turns capped at ``max_turns``.

    Appending past the cap evicts the oldest turns first, so the log always
    holds the most recent ``max_turns`` turns in chronological order.
    """

    def __init__(self, max_turns: int = 8):
        if max_turns < 0:
            raise ValueError(f"max_turns must be >= 0, got {max_turns}")
        self.max_turns = max_turns
        self._turns: Deque[Turn] = deque(maxlen=max_turns)

    def append(self, turn: Turn) -> None:
        """Add a turn at the tail, evicting from the head past the cap.

        Only user and assistant turns belong here; the system prompt is added
        per request by the request builder.
        """
        if turn.role not in DIALOGUE_ROLES:
            raise ValueError(f"History only holds dialogue turns, got {turn.role.value}")
        self._turns.append(turn)

    def snapshot(self) -> Tuple[Turn, ...]:
        """Return the current turns; mutating the result has no effect here."""
        return tuple(self._turns)

    def clear(self) -> None:
        """Forget every turn."""
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self.snapshot())

    def __repr__(self):
        return f"ConversationHistory(max_turns={self.max_turns}, turns={len(self)})"

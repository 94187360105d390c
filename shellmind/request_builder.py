"""Assembly of provider-agnostic model requests."""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from .errors import InvalidInputError
from .history import ConversationHistory, Role, Turn


@dataclass(frozen=True)
class GenerationParameters:
    """Sampling and prompt settings applied to every request of a session."""

    model_name: str
    temperature: float = 0.2
    system_prompt: Optional[str] = None

    def __post_init__(self):
        if not 0.0 <= self.temperature <= 1.0:
            raise ValueError(
                f"temperature must be between 0.0 and 1.0, got {self.temperature}"
            )
        if not self.model_name or not self.model_name.strip():
            raise ValueError("model_name must not be empty")


@dataclass(frozen=True)
class Request:
    """A single request to the model, built fresh for every call."""

    model: str
    turns: Tuple[Turn, ...]
    params: GenerationParameters = field(repr=False)

    @property
    def system_turn(self) -> Optional[Turn]:
        """The injected system prompt turn, if any."""
        if self.turns and self.turns[0].role == Role.SYSTEM:
            return self.turns[0]
        return None

    @property
    def dialogue(self) -> Tuple[Turn, ...]:
        """Turns excluding the system prompt."""
        return self.turns[1:] if self.system_turn else self.turns


class RequestBuilder:
    """Builds requests from history, the new user text and parameters."""

    def build(
        self,
        history: ConversationHistory,
        user_text: str,
        params: GenerationParameters,
    ) -> Request:
        """Return a request of ``[system] + history + [user]`` turns.

        The system prompt is injected here rather than stored in history, so
        the history cap can never evict it.
        """
        if user_text is None or not user_text.strip():
            raise InvalidInputError("Input is empty. Type a request to continue.")

        turns = []
        if params.system_prompt:
            turns.append(Turn(Role.SYSTEM, params.system_prompt))
        turns.extend(history.snapshot())
        turns.append(Turn(Role.USER, user_text))

        return Request(model=params.model_name, turns=tuple(turns), params=params)

"""Base transport interface and shared Gemini wire helpers."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Union,
)

from ..config import ShellmindConfig
from ..errors import FatalTransportError, TransientTransportError, TransportError
from ..history import Role
from ..request_builder import Request

WIRE_ROLES = {Role.USER: "user", Role.ASSISTANT: "model"}


@dataclass(frozen=True)
class ResponseFragment:
    """A chunk of streamed text; ``final`` marks the end of the answer."""

    text: str
    final: bool = False


@dataclass
class PayloadReply:
    """A complete decoded response body from a request/response transport."""

    payload: Any


class StreamReply:
    """Fragments of an answer as they arrive over an open channel.

    Iterate it once. ``aclose`` releases the channel and is safe to call more
    than once, including before iteration starts.
    """

    def __init__(
        self,
        fragments: AsyncIterator[ResponseFragment],
        close: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self._fragments = fragments
        self._close = close
        self.closed = False

    def __aiter__(self) -> AsyncIterator[ResponseFragment]:
        return self._fragments.__aiter__()

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        aclose = getattr(self._fragments, "aclose", None)
        if aclose is not None:
            await aclose()
        if self._close is not None:
            await self._close()


TransportReply = Union[PayloadReply, StreamReply]


class Transport(ABC):
    """Abstract base class for the ways of talking to the model."""

    def __init__(self, config: ShellmindConfig):
        self.config = config

    @property
    def timeout(self) -> float:
        """Per-attempt budget in seconds."""
        return self.config.request_timeout_ms / 1000.0

    @abstractmethod
    async def send(self, request: Request) -> TransportReply:
        """Send a request and return the raw reply.

        Args:
            request: The fully built request

        Returns:
            A PayloadReply or StreamReply for the response aggregator

        Raises:
            TransientTransportError: the attempt may succeed if retried
            FatalTransportError: the request was rejected
        """
        pass

    def validate_configuration(self) -> bool:
        """Validate that the transport is properly configured."""
        api_key = self.config.api_key
        return api_key is not None and len(api_key.strip()) > 0

    def _format_contents(self, request: Request) -> List[Dict[str, Any]]:
        """Convert dialogue turns to Gemini ``contents`` entries, in order."""
        return [
            {"role": WIRE_ROLES[turn.role], "parts": [{"text": turn.text}]}
            for turn in request.dialogue
        ]

    def _format_system_instruction(self, request: Request) -> Optional[Dict[str, Any]]:
        system_turn = request.system_turn
        if system_turn is None:
            return None
        return {"parts": [{"text": system_turn.text}]}

    def _format_generation_config(self, request: Request) -> Dict[str, Any]:
        return {"temperature": request.params.temperature}

    def _format_body(self, request: Request) -> Dict[str, Any]:
        """Build the JSON body shared by both wire protocols."""
        body: Dict[str, Any] = {
            "contents": self._format_contents(request),
            "generationConfig": self._format_generation_config(request),
        }
        system_instruction = self._format_system_instruction(request)
        if system_instruction:
            body["systemInstruction"] = system_instruction
        return body


def model_resource_name(model: str) -> str:
    """Return the ``models/...`` resource name for a model id."""
    return model if model.startswith("models/") else f"models/{model}"


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given as delta-seconds or an HTTP date."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def _parse_retry_delay(delay: Any) -> Optional[float]:
    """Parse a protobuf duration string such as ``"30s"`` or ``"1.5s"``."""
    if not isinstance(delay, str) or not delay.endswith("s"):
        return None
    try:
        return max(0.0, float(delay[:-1]))
    except ValueError:
        return None


def extract_error_details(body: Any) -> Dict[str, Any]:
    """Pull the message and retry delay out of a Google error body.

    Google APIs report failures as ``{"error": {"code", "message", "status",
    "details"}}``. Anything else yields an empty dict.
    """
    if isinstance(body, (str, bytes)):
        try:
            body = json.loads(body)
        except (TypeError, ValueError):
            return {}
    if not isinstance(body, Mapping):
        return {}
    error = body.get("error")
    if not isinstance(error, Mapping):
        return {}

    details: Dict[str, Any] = {
        "code": error.get("code"),
        "message": error.get("message"),
        "status": error.get("status"),
    }
    for detail in error.get("details") or []:
        if isinstance(detail, Mapping) and "retryDelay" in detail:
            details["retry_delay"] = _parse_retry_delay(detail["retryDelay"])
    return details


def classify_status(
    status: int,
    body: Any = None,
    headers: Optional[Mapping[str, str]] = None,
    reason: Optional[str] = None,
) -> TransportError:
    """Map a failed HTTP status to the transport error taxonomy.

    429 and 5xx are transient; every other failure status is fatal.
    """
    details = extract_error_details(body)
    message = details.get("message") or reason or "request failed"
    text = f"API request failed with status {status}: {message}"

    if status == 429:
        retry_after = parse_retry_after((headers or {}).get("Retry-After"))
        if retry_after is None:
            retry_after = details.get("retry_delay")
        return TransientTransportError(text, status=status, retry_after=retry_after)
    if status >= 500:
        return TransientTransportError(text, status=status)
    return FatalTransportError(text, status=status)

"""Assistant session driving one request/response cycle at a time."""

import asyncio
import dataclasses
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from .aggregator import Answer, ResponseAggregator
from .config import ApiType, ShellmindConfig
from .errors import RequestCancelledError, TransientTransportError
from .history import ConversationHistory, Role, Turn
from .request_builder import GenerationParameters, Request, RequestBuilder
from .transports import HttpTransport, StreamingTransport, Transport

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Where the session is in the current request/response cycle."""

    IDLE = "idle"
    BUILDING = "building"
    AWAITING_TRANSPORT = "awaiting_transport"
    AGGREGATING = "aggregating"
    FAILED = "failed"


class AssistantSession:
    """Owns the conversation and drives requests through a transport.

    The transport variant is fixed for the lifetime of the session. Retries
    for transient failures happen here, never inside a transport.
    """

    def __init__(
        self,
        config: ShellmindConfig,
        transport: Transport,
        history: Optional[ConversationHistory] = None,
        builder: Optional[RequestBuilder] = None,
        aggregator: Optional[ResponseAggregator] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.transport = transport
        self.history = (
            history
            if history is not None
            else ConversationHistory(config.context_window_size)
        )
        self.builder = builder or RequestBuilder()
        self.aggregator = aggregator or ResponseAggregator()
        self.params: GenerationParameters = config.generation_parameters()
        self._sleep = sleep
        self._state = SessionState.IDLE
        self._inflight: Optional[asyncio.Future] = None

    @classmethod
    def from_config(cls, config: ShellmindConfig) -> "AssistantSession":
        """Create a session with the transport selected by ``api_type``."""
        return cls(config, cls._get_transport(config))

    @staticmethod
    def _get_transport(config: ShellmindConfig) -> Transport:
        """Get the appropriate transport based on configuration."""
        if config.api_type == ApiType.HTTP:
            return HttpTransport(config)
        elif config.api_type == ApiType.STREAMING:
            return StreamingTransport(config)
        else:
            raise ValueError(f"Unknown API type: {config.api_type}")

    @property
    def state(self) -> SessionState:
        return self._state

    def _set_state(self, state: SessionState) -> None:
        if state != self._state:
            logger.debug("Session state %s -> %s", self._state.value, state.value)
        self._state = state

    async def handle_input(self, user_text: str) -> Answer:
        """Send the user's text to the model and return its answer.

        A clean answer is recorded in history together with the user turn.
        Partial answers and every error leave history untouched.

        Raises:
            InvalidInputError: the text is empty
            TransientTransportError: retries were exhausted
            FatalTransportError: the request was rejected
            MalformedResponseError: the response could not be parsed
            RequestCancelledError: the request was cancelled
        """
        if self._state != SessionState.IDLE:
            raise RuntimeError("A request is already in progress for this session")

        self._set_state(SessionState.BUILDING)
        try:
            request = self.builder.build(self.history, user_text, self.params)

            self._inflight = asyncio.ensure_future(self._exchange(request))
            try:
                answer = await self._inflight
            except asyncio.CancelledError:
                logger.info("Request cancelled")
                raise RequestCancelledError("Request cancelled") from None

            if answer.finished_cleanly:
                self.history.append(Turn(Role.USER, user_text))
                self.history.append(Turn(Role.ASSISTANT, answer.text))
            return answer

        except Exception:
            self._set_state(SessionState.FAILED)
            raise
        finally:
            self._inflight = None
            self._set_state(SessionState.IDLE)

    async def _exchange(self, request: Request) -> Answer:
        """Run attempts until one succeeds or the retry budget is spent."""
        attempts = self.config.max_retries + 1

        for attempt in range(1, attempts + 1):
            self._set_state(SessionState.AWAITING_TRANSPORT)
            logger.debug(
                "Attempt %d/%d using %s",
                attempt,
                attempts,
                type(self.transport).__name__,
            )
            try:
                reply = await self.transport.send(request)
                self._set_state(SessionState.AGGREGATING)
                answer = await self.aggregator.aggregate(reply)
            except TransientTransportError as e:
                if attempt >= attempts:
                    raise
                delay = self._backoff_delay(attempt, e.retry_after)
                logger.info(
                    "Attempt %d/%d failed (%s); retrying in %.2fs",
                    attempt,
                    attempts,
                    e,
                    delay,
                )
                await self._sleep(delay)
                continue

            if (
                answer.finished_cleanly
                or not self.config.retry_partial_streams
                or attempt >= attempts
            ):
                return answer

            delay = self._backoff_delay(attempt)
            logger.info(
                "Attempt %d/%d returned a partial answer; retrying in %.2fs",
                attempt,
                attempts,
                delay,
            )
            await self._sleep(delay)

        # max_retries >= 0 guarantees at least one attempt above
        raise AssertionError("unreachable")

    def _backoff_delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """Exponential delay in seconds, never shorter than a server hint."""
        delay = self.config.retry_backoff_ms * (2 ** (attempt - 1)) / 1000.0
        delay = min(delay, self.config.retry_backoff_max_ms / 1000.0)
        if retry_after is not None:
            delay = max(delay, retry_after)
        return delay

    def cancel(self) -> bool:
        """Cancel the in-flight request, closing its connection.

        Returns True if there was a request to cancel.
        """
        if self._inflight is None or self._inflight.done():
            return False
        return self._inflight.cancel()

    def reset(self) -> None:
        """Start the conversation over."""
        self.history.clear()

    def reconfigure(self, **changes) -> GenerationParameters:
        """Replace generation parameters between requests.

        Accepts ``model_name``, ``temperature`` and ``system_prompt``.
        """
        if self._state != SessionState.IDLE:
            raise RuntimeError("Cannot reconfigure while a request is in progress")
        self.params = dataclasses.replace(self.params, **changes)
        logger.debug("Generation parameters now %s", self.params)
        return self.params

    def get_session_info(self) -> dict:
        """Get information about the current session."""
        return {
            "api_type": self.config.api_type.value,
            "model": self.params.model_name,
            "temperature": self.params.temperature,
            "turns": len(self.history),
            "max_turns": self.history.max_turns,
        }

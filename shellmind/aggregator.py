"""Normalization of transport replies into a single answer."""

import logging
from dataclasses import dataclass
from typing import Any, List

from .errors import MalformedResponseError, TransientTransportError
from .transports.base import PayloadReply, StreamReply, TransportReply

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Answer:
    """The model's reply, whichever transport produced it.

    ``finished_cleanly`` is False when a stream was cut off and ``text`` only
    holds what arrived before the disconnect.
    """

    text: str
    finished_cleanly: bool = True


class ResponseAggregator:
    """Turns a PayloadReply or StreamReply into an Answer."""

    async def aggregate(self, reply: TransportReply) -> Answer:
        if isinstance(reply, StreamReply):
            return await self.collect(reply)
        if isinstance(reply, PayloadReply):
            return self.parse_payload(reply.payload)
        raise TypeError(f"Unsupported reply type: {type(reply).__name__}")

    def parse_payload(self, payload: Any) -> Answer:
        """Concatenate the text parts of the first candidate."""
        if not isinstance(payload, dict):
            raise MalformedResponseError("Response payload is not a JSON object")

        candidates = payload.get("candidates")
        if not candidates:
            block_reason = (payload.get("promptFeedback") or {}).get("blockReason")
            if block_reason:
                raise MalformedResponseError(
                    f"No candidates in response (prompt blocked: {block_reason})"
                )
            raise MalformedResponseError("No candidates in response")

        candidate = candidates[0]
        content = candidate.get("content") if isinstance(candidate, dict) else None
        if not isinstance(content, dict):
            raise MalformedResponseError("First candidate has no content")

        parts = content.get("parts")
        if not isinstance(parts, list):
            raise MalformedResponseError("Candidate content has no parts")

        texts = [
            part["text"]
            for part in parts
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        ]
        if not texts:
            raise MalformedResponseError("Candidate content has no text parts")

        return Answer(text="".join(texts), finished_cleanly=True)

    async def collect(self, reply: StreamReply) -> Answer:
        """Concatenate streamed fragments in arrival order.

        A disconnect after some text arrived gives a partial answer rather
        than an error; with nothing received the error propagates.
        """
        texts: List[str] = []
        finished = False
        try:
            async for fragment in reply:
                texts.append(fragment.text)
                if fragment.final:
                    finished = True
                    break
        except TransientTransportError as e:
            if not "".join(texts):
                raise
            logger.warning("Stream interrupted, keeping partial answer: %s", e)
        finally:
            await reply.aclose()

        if not finished:
            logger.debug("Stream ended without a completion marker")
        return Answer(text="".join(texts), finished_cleanly=finished)

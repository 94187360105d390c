"""Streaming transport over the Gemini bidirectional websocket channel."""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, List

import aiohttp
from aiohttp import WSMsgType

from ..errors import (
    FatalTransportError,
    MalformedResponseError,
    TransientTransportError,
    TransportError,
)
from ..request_builder import Request
from .base import (
    ResponseFragment,
    StreamReply,
    Transport,
    classify_status,
    model_resource_name,
)

logger = logging.getLogger(__name__)

# Close codes the server uses for invalid arguments and rejected credentials
FATAL_CLOSE_CODES = (1007, 1008)

_CLOSED_TYPES = (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED)


class StreamingTransport(Transport):
    """Opens a channel per request and yields the answer as it arrives.

    Opening the channel sends a ``setup`` message and waits for
    ``setupComplete``. The request itself is a single ``clientContent``
    message; the answer arrives as ``serverContent`` messages ending with
    ``turnComplete``.
    """

    async def send(self, request: Request) -> StreamReply:
        """Open the channel, send the request and return the fragment stream."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        session = aiohttp.ClientSession()

        try:
            ws = await self._open(session, request, deadline)
        except BaseException:
            await session.close()
            raise

        fragments = self._receive(ws, deadline)

        async def close() -> None:
            await ws.close()
            await session.close()

        return StreamReply(fragments, close=close)

    def _setup_message(self, request: Request) -> Dict[str, Any]:
        generation_config = self._format_generation_config(request)
        generation_config["responseModalities"] = ["TEXT"]
        setup: Dict[str, Any] = {
            "model": model_resource_name(request.model),
            "generationConfig": generation_config,
        }
        system_instruction = self._format_system_instruction(request)
        if system_instruction:
            setup["systemInstruction"] = system_instruction
        return {"setup": setup}

    def _request_message(self, request: Request) -> Dict[str, Any]:
        return {
            "clientContent": {
                "turns": self._format_contents(request),
                "turnComplete": True,
            }
        }

    async def _open(
        self, session: aiohttp.ClientSession, request: Request, deadline: float
    ) -> aiohttp.ClientWebSocketResponse:
        endpoint = self.config.get_streaming_endpoint()
        logger.debug("Opening stream to %s (timeout %.1fs)", endpoint, self.timeout)

        try:
            ws = await asyncio.wait_for(
                session.ws_connect(endpoint, params={"key": self.config.api_key or ""}),
                timeout=self._remaining(deadline),
            )
        except aiohttp.WSServerHandshakeError as e:
            error = classify_status(e.status, None, e.headers, reason=e.message)
            logger.warning("Stream handshake rejected: %s", error)
            raise error from e
        except asyncio.TimeoutError as e:
            raise TransientTransportError(
                f"Timed out opening stream after {self.timeout:.1f}s"
            ) from e
        except aiohttp.ClientError as e:
            logger.warning("Stream connection error: %s", e)
            raise TransientTransportError(f"Connection error: {e}") from e

        try:
            await ws.send_json(self._setup_message(request))
            while True:
                message = await self._next_message(ws, deadline, [])
                if "setupComplete" in message:
                    break
            await ws.send_json(self._request_message(request))
        except (ConnectionError, aiohttp.ClientError) as e:
            await ws.close()
            raise TransientTransportError(f"Stream closed while sending: {e}") from e
        except BaseException:
            await ws.close()
            raise

        logger.debug("Stream open, request sent (%d turns)", len(request.dialogue))
        return ws

    async def _receive(
        self, ws: aiohttp.ClientWebSocketResponse, deadline: float
    ) -> AsyncIterator[ResponseFragment]:
        received: List[str] = []
        try:
            while True:
                message = await self._next_message(ws, deadline, received)
                content = message.get("serverContent")
                if not isinstance(content, dict):
                    continue

                model_turn = content.get("modelTurn") or {}
                for part in model_turn.get("parts") or []:
                    text = part.get("text") if isinstance(part, dict) else None
                    if text:
                        received.append(text)
                        yield ResponseFragment(text)

                if content.get("turnComplete"):
                    yield ResponseFragment("", final=True)
                    return
        finally:
            await ws.close()

    async def _next_message(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        deadline: float,
        received: List[str],
    ) -> Dict[str, Any]:
        """Wait for the next decoded message, raising on close or error."""
        partial_text = "".join(received)
        remaining = self._remaining(deadline)
        if remaining <= 0:
            raise self._timed_out(partial_text)

        try:
            msg = await ws.receive(timeout=remaining)
        except asyncio.TimeoutError as e:
            raise self._timed_out(partial_text) from e

        if msg.type in (WSMsgType.TEXT, WSMsgType.BINARY):
            message = self._decode(msg.data)
            if "error" in message:
                raise self._server_error(message, partial_text)
            return message

        if msg.type in _CLOSED_TYPES:
            code = ws.close_code if ws.close_code is not None else msg.data
            raise self._closed_error(code, msg.extra, partial_text)

        # WSMsgType.ERROR
        raise TransientTransportError(
            f"Stream error: {ws.exception()}", partial_text=partial_text
        )

    def _decode(self, data: Any) -> Dict[str, Any]:
        try:
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            message = json.loads(data)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedResponseError(f"Stream message is not valid JSON: {e}") from e
        if not isinstance(message, dict):
            raise MalformedResponseError("Stream message is not a JSON object")
        return message

    def _server_error(self, message: Dict[str, Any], partial_text: str) -> TransportError:
        error = message.get("error") or {}
        code = error.get("code") if isinstance(error, dict) else None
        result = classify_status(code if isinstance(code, int) else 500, message)
        if isinstance(result, TransientTransportError):
            result.partial_text = partial_text
        logger.warning("Stream reported an error: %s", result)
        return result

    def _closed_error(self, code: Any, reason: Any, partial_text: str) -> TransportError:
        detail = f"Stream closed before the answer completed (code {code}"
        detail += f": {reason})" if reason else ")"
        if code in FATAL_CLOSE_CODES:
            logger.warning("%s", detail)
            return FatalTransportError(detail)
        logger.warning("%s after %d characters", detail, len(partial_text))
        return TransientTransportError(detail, partial_text=partial_text)

    def _timed_out(self, partial_text: str) -> TransientTransportError:
        logger.warning("Stream timed out after %.1fs", self.timeout)
        return TransientTransportError(
            f"Stream timed out after {self.timeout:.1f}s", partial_text=partial_text
        )

    @staticmethod
    def _remaining(deadline: float) -> float:
        return deadline - asyncio.get_running_loop().time()

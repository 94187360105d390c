"""Test doubles shared by the Shellmind test suite."""

import asyncio
import json
from typing import Any, Dict, List, Optional, Sequence

from aiohttp import web
from aiohttp.test_utils import TestServer

from shellmind.config import ShellmindConfig
from shellmind.errors import TransientTransportError
from shellmind.transports.base import (
    PayloadReply,
    ResponseFragment,
    StreamReply,
    Transport,
)


def make_config(**overrides) -> ShellmindConfig:
    """Config with fast retries and a short timeout."""
    values = dict(
        api_key="test-key-123",
        model_name="gemini-1.5-flash",
        temperature=0.2,
        context_window_size=8,
        max_retries=3,
        retry_backoff_ms=0,
        request_timeout_ms=2000,
    )
    values.update(overrides)
    return ShellmindConfig(**values)


def candidate_payload(*texts: str) -> Dict[str, Any]:
    """A generateContent response body whose first candidate holds ``texts``."""
    return {
        "candidates": [
            {
                "content": {"role": "model", "parts": [{"text": t} for t in texts]},
                "finishReason": "STOP",
            }
        ]
    }


def fragment_stream(
    texts: Sequence[str],
    final: bool = True,
    error: Optional[BaseException] = None,
    close=None,
) -> StreamReply:
    """A StreamReply yielding ``texts``, then a final marker or ``error``."""

    async def fragments():
        for text in texts:
            yield ResponseFragment(text)
        if error is not None:
            raise error
        if final:
            yield ResponseFragment("", final=True)

    return StreamReply(fragments(), close=close)


def disconnected_stream(texts: Sequence[str]) -> StreamReply:
    """A stream cut off after ``texts`` without a completion marker."""
    partial = "".join(texts)
    return fragment_stream(
        texts,
        error=TransientTransportError(
            "Stream closed before the answer completed", partial_text=partial
        ),
    )


class FakeTransport(Transport):
    """Replays scripted outcomes: replies to return or exceptions to raise."""

    def __init__(self, config: ShellmindConfig, outcomes: Sequence[Any]):
        super().__init__(config)
        self.outcomes = list(outcomes)
        self.requests = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def send(self, request):
        self.requests.append(request)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, str):
            return PayloadReply(candidate_payload(outcome))
        return outcome


class BlockingTransport(Transport):
    """Never answers; records whether it was cancelled."""

    def __init__(self, config: ShellmindConfig):
        super().__init__(config)
        self.started = asyncio.Event()
        self.cancelled = False

    async def send(self, request):
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise


class GeminiStub:
    """Local aiohttp server that imitates the Gemini HTTP and websocket APIs.

    HTTP responses are queued with ``queue_response``; websocket exchanges
    with ``queue_stream``, a list of actions run after the request message
    arrives: ``("send", obj)``, ``("send_bytes", obj)``, ``("sleep", secs)``
    or ``("close", code)``.
    """

    def __init__(self):
        self.responses: List[Dict[str, Any]] = []
        self.requests: List[Dict[str, Any]] = []
        self.streams: List[List[Any]] = []
        self.stream_messages: List[Dict[str, Any]] = []
        self.stream_queries: List[Dict[str, str]] = []
        self.server: Optional[TestServer] = None

        self.app = web.Application()
        self.app.router.add_post("/v1beta/models/{model}", self._generate)
        self.app.router.add_get("/ws", self._stream)
        self.app.router.add_get("/ws-denied", self._denied)
        self.app.router.add_get("/ws-unavailable", self._unavailable)

    async def start(self) -> "GeminiStub":
        self.server = TestServer(self.app)
        await self.server.start_server()
        return self

    async def close(self) -> None:
        if self.server is not None:
            await self.server.close()

    @property
    def base_url(self) -> str:
        return str(self.server.make_url("")).rstrip("/")

    @property
    def ws_url(self) -> str:
        return self.base_url.replace("http://", "ws://") + "/ws"

    def url(self, path: str) -> str:
        return self.base_url.replace("http://", "ws://") + path

    def queue_response(
        self,
        status: int = 200,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        delay: float = 0.0,
        raw: Optional[str] = None,
    ) -> None:
        self.responses.append(
            {"status": status, "body": body, "headers": headers, "delay": delay, "raw": raw}
        )

    def queue_stream(self, actions: List[Any]) -> None:
        self.streams.append(actions)

    async def _generate(self, request: web.Request) -> web.Response:
        self.requests.append(
            {
                "path": request.path,
                "headers": dict(request.headers),
                "body": await request.json(),
            }
        )
        response = self.responses.pop(0)
        if response["delay"]:
            await asyncio.sleep(response["delay"])
        if response["raw"] is not None:
            return web.Response(
                text=response["raw"], status=response["status"], headers=response["headers"]
            )
        return web.json_response(
            response["body"], status=response["status"], headers=response["headers"]
        )

    async def _stream(self, request: web.Request) -> web.WebSocketResponse:
        self.stream_queries.append(dict(request.query))
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        actions = self.streams.pop(0)

        try:
            self.stream_messages.append(await ws.receive_json())
            await ws.send_json({"setupComplete": {}})
            self.stream_messages.append(await ws.receive_json())

            for action, value in actions:
                if action == "send":
                    await ws.send_json(value)
                elif action == "send_bytes":
                    await ws.send_bytes(json.dumps(value).encode("utf-8"))
                elif action == "sleep":
                    await asyncio.sleep(value)
                elif action == "close":
                    await ws.close(code=value)
                    return ws
        except ConnectionResetError:
            # The client gave up (timeout or cancellation)
            return ws

        await ws.close()
        return ws

    async def _denied(self, request: web.Request) -> web.Response:
        return web.json_response(
            {"error": {"code": 403, "message": "API key not valid"}}, status=403
        )

    async def _unavailable(self, request: web.Request) -> web.Response:
        return web.json_response(
            {"error": {"code": 503, "message": "overloaded"}}, status=503
        )

"""Request/response transport over the Gemini REST API."""

import asyncio
import json
import logging
from typing import Dict

import aiohttp

from ..errors import MalformedResponseError, TransientTransportError
from ..request_builder import Request
from .base import PayloadReply, Transport, classify_status, model_resource_name

logger = logging.getLogger(__name__)


class HttpTransport(Transport):
    """Sends each request as one blocking ``generateContent`` call."""

    def endpoint_url(self, request: Request) -> str:
        base_url = self.config.api_base_url.rstrip("/")
        return f"{base_url}/v1beta/{model_resource_name(request.model)}:generateContent"

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-goog-api-key": self.config.api_key or "",
        }

    async def send(self, request: Request) -> PayloadReply:
        """Post the request and return the decoded JSON payload."""
        url = self.endpoint_url(request)
        body = self._format_body(request)
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        logger.debug(
            "POST %s (%d turns, timeout %.1fs)", url, len(body["contents"]), self.timeout
        )

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    url, json=body, headers=self._headers()
                ) as response:
                    if not 200 <= response.status < 300:
                        error_body = await response.text()
                        error = classify_status(
                            response.status,
                            error_body,
                            response.headers,
                            reason=response.reason,
                        )
                        logger.warning("%s", error)
                        raise error

                    try:
                        payload = await response.json(content_type=None)
                    except (json.JSONDecodeError, UnicodeDecodeError) as e:
                        raise MalformedResponseError(
                            f"Response body is not valid JSON: {e}"
                        ) from e

        except asyncio.TimeoutError as e:
            logger.warning("Request timed out after %.1fs", self.timeout)
            raise TransientTransportError(
                f"Request timed out after {self.timeout:.1f}s"
            ) from e
        except aiohttp.ClientError as e:
            logger.warning("Connection error: %s", e)
            raise TransientTransportError(f"Connection error: {e}") from e

        return PayloadReply(payload)

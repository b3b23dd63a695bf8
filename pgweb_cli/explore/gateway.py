"""Uniform dispatch of backend calls.

Every call carries the session id header and is bounded by a single timeout.
Failures never raise: they resolve to an ``{"error": message}`` mapping that the
rest of the client treats like any other backend error.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from pgweb_cli.shared.config import DEFAULT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

SESSION_HEADER = "session-id"
GENERIC_FAILURE = "request failed"


def timeout_message(timeout: float) -> str:
    seconds = int(timeout) if float(timeout).is_integer() else timeout
    return f"Query timeout after {seconds}s"


class RequestGateway:
    """Async HTTP gateway to the pgweb API."""

    def __init__(
        self,
        base_url: str,
        session_id: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.base_url = base_url.rstrip("/")
        self.session_id = session_id
        self.timeout = float(timeout)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> RequestGateway:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            # The overall bound is enforced in call(); httpx's own timeout is disabled.
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(None),
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def call(self, method: str, path: str, params: Mapping[str, Any] | None = None) -> Any:
        """Send one request and return the decoded body or an ``{"error": ...}`` mapping."""
        method = method.upper()
        logger.debug("%s %s", method, path)
        try:
            response = await asyncio.wait_for(self._send(method, path, params), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning("timeout: %s %s exceeded %ss", method, path, self.timeout)
            return {"error": timeout_message(self.timeout)}
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("transport: %s %s failed: %s", method, path, exc)
            return {"error": GENERIC_FAILURE}

        if response.is_error:
            return self._failure_body(method, path, response)
        return self._decode(response)

    async def _send(self, method: str, path: str, params: Mapping[str, Any] | None) -> httpx.Response:
        client = self._get_client()
        cleaned = {key: value for key, value in (params or {}).items() if value is not None}
        headers = {SESSION_HEADER: self.session_id}
        if method == "GET":
            return await client.request(method, path, params=cleaned, headers=headers)
        return await client.request(method, path, data=cleaned, headers=headers)

    def _failure_body(self, method: str, path: str, response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = None
        if isinstance(body, dict) and "error" in body:
            logger.warning("backend: %s %s returned %s: %s", method, path, response.status_code, body["error"])
            return body
        logger.warning("transport: %s %s returned HTTP %s", method, path, response.status_code)
        return {"error": GENERIC_FAILURE}

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            # Exports (format=csv/xml) come back as plain text.
            return response.text

"""HTTP poster for webhook and analytics targets.

One ``httpx.AsyncClient`` is shared by every HTTP target so keep-alive
connections are reused across calls.  Responses are only inspected for
their status; bodies are discarded.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from detection_relay.core.error_sink import TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class HttpPoster:
    """Fire-and-forget POST helper over a persistent connection pool.

    Parameters
    ----------
    timeout_seconds:
        Per-request timeout applied by httpx.
    client:
        Pre-built client (tests inject one with ``httpx.MockTransport``).
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout_seconds
        self._client = client

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_keepalive_connections=10),
            )
        return self._client

    async def post_json(self, url: str, payload: Any) -> int:
        """POST *payload* as ``application/json``; return the status code."""
        return await self._post(url, json=payload)

    async def post_form(self, url: str, body: str) -> int:
        """POST an already URL-encoded form *body*; return the status code."""
        return await self._post(
            url,
            content=body.encode("utf-8"),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

    async def _post(self, url: str, **kwargs: Any) -> int:
        client = self._ensure_client()
        try:
            response = await client.post(url, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"POST {url} failed: {exc}") from exc
        if response.status_code >= 400:
            raise TransportError(f"POST {url} returned HTTP {response.status_code}")
        logger.debug("POST %s -> %d", url, response.status_code)
        return response.status_code

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

"""Bulk-store client — batched ``create`` actions over the ``_bulk`` endpoint.

The request body is newline-delimited JSON: one action line
``{"create":{"_index":...,"_id":...}}`` followed by the document body,
for every pending document.  Duplicate-id conflicts (409) are expected
when a document is re-sent and count as success.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import httpx

from detection_relay.core.error_sink import StoreBulkError

if TYPE_CHECKING:
    from detection_relay.core.bulk_queue import PendingDocument

logger = logging.getLogger(__name__)

_CONFLICT = 409


def build_bulk_body(documents: Sequence[PendingDocument]) -> str:
    """Serialize *documents* as an NDJSON bulk body (trailing newline included)."""
    lines: list[str] = []
    for doc in documents:
        action = {"create": {"_index": doc.index, "_id": doc.doc_id}}
        lines.append(json.dumps(action, separators=(",", ":")))
        lines.append(json.dumps(doc.body, separators=(",", ":")))
    return "\n".join(lines) + "\n"


def _failed_items(result: dict[str, Any]) -> list[dict[str, Any]]:
    failures: list[dict[str, Any]] = []
    for item in result.get("items", []):
        for outcome in item.values():
            if "error" in outcome and outcome.get("status") != _CONFLICT:
                failures.append(outcome)
    return failures


class BulkStoreClient:
    """Submits batches to a bulk-indexed document store.

    Parameters
    ----------
    node:
        Base URL of the store node, e.g. ``http://192.168.1.10:9200``.
    timeout_seconds:
        Per-request timeout applied by httpx.
    client:
        Pre-built client (tests inject one with ``httpx.MockTransport``).
    """

    def __init__(
        self,
        node: str,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._node = node.rstrip("/")
        self._timeout = timeout_seconds
        self._client = client

    @property
    def node(self) -> str:
        return self._node

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def bulk(self, documents: Sequence[PendingDocument]) -> int:
        """Upload *documents* in one request; return how many were sent.

        Raises
        ------
        StoreBulkError
            On transport failure, an HTTP error status, or item-level
            errors other than duplicate-id conflicts.
        """
        if not documents:
            return 0
        client = self._ensure_client()
        url = f"{self._node}/_bulk"
        try:
            response = await client.post(
                url,
                content=build_bulk_body(documents).encode("utf-8"),
                headers={"Content-Type": "application/x-ndjson"},
            )
        except httpx.HTTPError as exc:
            raise StoreBulkError(f"bulk upload to {url} failed: {exc}") from exc

        if response.status_code >= 400:
            raise StoreBulkError(
                f"bulk upload to {url} returned HTTP {response.status_code}"
            )

        try:
            result = response.json()
        except ValueError:
            result = {}
        if result.get("errors"):
            failures = _failed_items(result)
            if failures:
                first = failures[0].get("error")
                raise StoreBulkError(
                    f"{len(failures)}/{len(documents)} bulk items failed; first: {first}"
                )

        logger.debug("Bulk upload of %d documents accepted.", len(documents))
        return len(documents)

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

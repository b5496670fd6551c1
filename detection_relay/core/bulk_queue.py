"""BulkQueue — bounded, order-preserving buffer in front of the document store.

Documents destined for the bulk-indexed store are buffered here and
shipped in batches with a single-flight discipline:

* at most ``capacity`` documents are held; admitting one more evicts the
  oldest-inserted document first (strict arrival order, no dedup);
* at most one upload request is outstanding at any instant;
* when an upload completes, successfully or not, anything enqueued in
  the meantime is shipped immediately as the next batch; otherwise the
  queue goes idle.

A failed batch is reported to the ErrorSink and never retried.  Under
sustained overload the oldest undelivered documents are dropped instead
of growing memory or blocking producers.

All state transitions happen on the event loop thread between awaits,
so ``upload_in_flight`` needs no lock: only ``enqueue`` can start a cycle
and only the cycle itself can end one.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from detection_relay.core.error_sink import ErrorSink, StoreBulkError

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 12


@dataclass(frozen=True)
class PendingDocument:
    """One store-bound document, owned by the queue until drained or evicted."""

    doc_id: str
    index: str
    body: dict[str, Any]

    @property
    def key(self) -> tuple[str, str]:
        return self.index, self.doc_id


class BulkUploader(Protocol):
    """Anything able to submit a batch of documents in one request."""

    async def bulk(self, documents: Sequence[PendingDocument]) -> int:
        ...


class BulkQueue:
    """Bounded FIFO of pending documents with single-flight uploads.

    Parameters
    ----------
    uploader:
        Submits batches; normally a ``BulkStoreClient``.
    error_sink:
        Receives a ``StoreBulkError`` for every failed batch.
    capacity:
        Maximum number of pending documents (must be at least 1).
    """

    def __init__(
        self,
        uploader: BulkUploader,
        error_sink: ErrorSink,
        *,
        capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._uploader = uploader
        self._error_sink = error_sink
        self._capacity = capacity
        self._pending: deque[PendingDocument] = deque()
        self._upload_in_flight = False
        self._upload_task: asyncio.Task[None] | None = None

        self._evicted = 0
        self._uploaded = 0
        self._failed_batches = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def upload_in_flight(self) -> bool:
        return self._upload_in_flight

    @property
    def pending_keys(self) -> list[tuple[str, str]]:
        """Keys of pending documents, oldest first."""
        return [doc.key for doc in self._pending]

    @property
    def stats(self) -> dict[str, int]:
        return {
            "pending": len(self._pending),
            "uploaded": self._uploaded,
            "evicted": self._evicted,
            "failed_batches": self._failed_batches,
        }

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def enqueue(self, doc_id: str, index: str, body: dict[str, Any]) -> None:
        """Admit a document, evicting the oldest if at capacity.

        Must be called from the event loop thread.  Starts an upload
        cycle if none is in flight; that cycle ships the documents pending
        at this call as its first batch.
        """
        while len(self._pending) >= self._capacity:
            dropped = self._pending.popleft()
            self._evicted += 1
            logger.debug("BulkQueue full: evicted %s/%s", dropped.index, dropped.doc_id)

        self._pending.append(PendingDocument(doc_id, index, body))

        if not self._upload_in_flight:
            self._upload_in_flight = True
            self._upload_task = asyncio.get_running_loop().create_task(
                self._upload_cycle(self._take_batch()), name="bulk-upload"
            )

    # ------------------------------------------------------------------
    # Upload cycle
    # ------------------------------------------------------------------

    def _take_batch(self) -> list[PendingDocument]:
        batch = list(self._pending)
        self._pending.clear()
        return batch

    async def _upload_cycle(self, batch: list[PendingDocument]) -> None:
        try:
            while batch:
                try:
                    await self._uploader.bulk(batch)
                except Exception as exc:  # noqa: BLE001
                    self._failed_batches += 1
                    error = exc
                    if not isinstance(exc, StoreBulkError):
                        error = StoreBulkError(f"bulk upload failed: {exc}")
                        error.__cause__ = exc
                    self._error_sink.report(error)
                else:
                    self._uploaded += len(batch)
                batch = self._take_batch()
        finally:
            self._upload_in_flight = False
            self._upload_task = None

    async def wait_idle(self) -> None:
        """Wait until the queue is empty and no upload is in flight."""
        while self._upload_task is not None:
            await asyncio.wait({self._upload_task})

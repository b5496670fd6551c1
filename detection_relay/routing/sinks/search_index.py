"""Search-index sink — hands store documents to the BulkQueue."""

from __future__ import annotations

from typing import TYPE_CHECKING

from detection_relay.core.bulk_queue import BulkQueue
from detection_relay.models.records import RelayPayload
from detection_relay.models.targets import SearchIndexTarget

if TYPE_CHECKING:
    from detection_relay.core.context import RelayContext


class SearchIndexSink:
    """Flattens each payload into a store document and enqueues it.

    The document id, index name and ISO-8601 timestamp come from the
    payload itself, so records and both digest kinds share this sink.
    """

    def __init__(self, target: SearchIndexTarget, context: RelayContext) -> None:
        if context.bulk_queue is None:
            raise ValueError("search_index target configured without a store node")
        self._target = target
        self._queue: BulkQueue = context.bulk_queue
        self._options = context.options

    @property
    def sink_name(self) -> str:
        return self._target.label

    def accept(self, payload: RelayPayload) -> None:
        doc_id, index, doc = payload.to_document(self._options)
        self._queue.enqueue(doc_id, index, doc)

"""Analytics sink — maps each record to a page-view hit.

The collector receives a URL-encoded form body::

    v=1&tid=<tid>&cid=<transmitterId>/<transmitterIdType>&t=pageview&dp=<page>

Values are percent-encoded; the page path keeps its ``/`` separators.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import quote

from detection_relay.models.records import DetectionRecord, RelayPayload
from detection_relay.models.targets import AnalyticsTarget

if TYPE_CHECKING:
    from detection_relay.core.context import RelayContext

PROTOCOL_VERSION = "1"
HIT_TYPE = "pageview"


def build_pageview_body(target: AnalyticsTarget, record: DetectionRecord) -> str:
    """Return the form-encoded page-view body for *record*.

    >>> record = DetectionRecord(
    ...     transmitter_id="aa:bb:cc:dd:ee:ff", transmitter_id_type=2,
    ...     timestamp=0, rssi=-70,
    ... )
    >>> build_pageview_body(AnalyticsTarget(tid="UA-X"), record)
    'v=1&tid=UA-X&cid=aa%3Abb%3Acc%3Add%3Aee%3Aff%2F2&t=pageview&dp=/default-page'
    """
    fields = [
        ("v", quote(PROTOCOL_VERSION, safe="")),
        ("tid", quote(target.tid, safe="")),
        ("cid", quote(record.client_id, safe="")),
        ("t", HIT_TYPE),
        ("dp", quote(target.page, safe="/")),
    ]
    return "&".join(f"{key}={value}" for key, value in fields)


class AnalyticsSink:
    """Posts one page-view hit per record to a web-analytics collector."""

    def __init__(self, target: AnalyticsTarget, context: RelayContext) -> None:
        self._target = target
        self._context = context

    @property
    def sink_name(self) -> str:
        return self._target.label

    def accept(self, payload: RelayPayload) -> None:
        if not isinstance(payload, DetectionRecord):
            raise TypeError(f"{self.sink_name} only forwards detection records")
        body = build_pageview_body(self._target, payload)
        self._context.spawn(
            self._context.http.post_form(self._target.url, body),
            label=self.sink_name,
        )

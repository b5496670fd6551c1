"""Sink protocol and factory for detection relay routing.

Every configured target becomes one sink.  All sinks implement the
``BaseSink`` protocol: a ``sink_name`` property and an
``accept(payload)`` method.  ``accept`` never blocks; network work is
handed to the event loop and only its failures are observed.

Adding a protocol means adding a target variant, a sink class, and an
entry in ``SINK_TYPE_MAP``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from detection_relay.models.records import RelayPayload
from detection_relay.models.targets import (
    AnalyticsTarget,
    SearchIndexTarget,
    UdpTarget,
    WebhookTarget,
)

if TYPE_CHECKING:
    from detection_relay.core.context import RelayContext


@runtime_checkable
class BaseSink(Protocol):
    """Protocol that every delivery sink implements.

    Attributes
    ----------
    sink_name : str
        Human-readable identifier, e.g. ``"udp://192.168.1.255:50001"``.
    """

    @property
    def sink_name(self) -> str:
        ...

    def accept(self, payload: RelayPayload) -> None:
        """Start delivery of *payload*.

        Implementations may raise for immediate failures; the dispatcher
        reports them and continues with the next sink.
        """
        ...


from detection_relay.routing.sinks.analytics import AnalyticsSink  # noqa: E402
from detection_relay.routing.sinks.search_index import SearchIndexSink  # noqa: E402
from detection_relay.routing.sinks.udp import UdpSink  # noqa: E402
from detection_relay.routing.sinks.webhook import WebhookSink  # noqa: E402

# Registry for sink construction by target variant
SINK_TYPE_MAP: dict[type, type] = {
    UdpTarget: UdpSink,
    WebhookTarget: WebhookSink,
    AnalyticsTarget: AnalyticsSink,
    SearchIndexTarget: SearchIndexSink,
}


def build_sink(target: object, context: RelayContext) -> BaseSink:
    """Instantiate the sink class registered for *target*'s variant."""
    try:
        sink_cls = SINK_TYPE_MAP[type(target)]
    except KeyError:
        raise TypeError(f"no sink registered for {type(target).__name__}") from None
    return sink_cls(target, context)

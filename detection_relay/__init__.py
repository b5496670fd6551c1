"""Detection relay: forwards radio-detection records to heterogeneous sinks.

Records accepted by the filter are fanned out to UDP (broadcast or
unicast, with cached DNS resolution), JSON webhooks, a web-analytics
collector, and a bulk-indexed document store fed through a bounded,
single-flight batching queue.  Digests from an external aggregator are
routed to webhook and store targets the same way.
"""

__version__ = "0.1.0"
__description__ = "Relay for radio-detection records to UDP, HTTP and bulk-store targets"

from detection_relay.routing.dispatcher import DispatchRouter

__all__ = ["DispatchRouter", "__version__"]

"""Transport adapters — UDP sender, HTTP poster and bulk-store client.

Adapters are stateless apart from their sockets and connection pools.
They raise ``TransportError`` / ``StoreBulkError``; callers route those
to the ErrorSink and never retry.
"""

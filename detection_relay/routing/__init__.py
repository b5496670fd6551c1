"""Detection relay routing — dispatches records to all configured sinks.

Sinks are per-target delivery objects: UDP datagrams, JSON webhooks,
analytics page-view hits, and the bulk-indexed store.  The
DispatchRouter fans out each accepted record to every sink; one sink's
failure or latency never affects another.
"""

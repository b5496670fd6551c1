"""RelayContext — the process-lifetime resources behind the dispatcher.

Sockets, HTTP clients, the DNS cache, the bulk queue and the set of
in-flight delivery tasks are gathered here and constructed once at
startup.  The ``DispatchRouter`` owns exactly one context.

Fire-and-forget deliveries are spawned through ``spawn``: the task is
tracked until it finishes and its outcome is only observed for error
reporting.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

import httpx

from detection_relay.config import RelayConfig
from detection_relay.core.bulk_queue import BulkQueue
from detection_relay.core.error_sink import ErrorSink, RelayError, TransportError
from detection_relay.core.registry import Resolver, TargetRegistry
from detection_relay.models.records import RecordOptions
from detection_relay.models.targets import UdpTarget
from detection_relay.transport.bulk import BulkStoreClient
from detection_relay.transport.http import HttpPoster
from detection_relay.transport.udp import UdpSender

logger = logging.getLogger(__name__)


class RelayContext:
    """Shared resources for one relay process.

    Parameters
    ----------
    error_sink:
        Terminal handler for every failure.
    registry:
        DNS cache for UDP targets.
    udp:
        Datagram sender shared by all UDP targets.
    http:
        POST helper shared by webhook and analytics targets.
    bulk_queue, bulk_client:
        Store-bound buffer and its uploader; both ``None`` when no store
        node is configured.
    options:
        Record encoding options applied by UDP and store sinks.
    """

    def __init__(
        self,
        *,
        error_sink: ErrorSink,
        registry: TargetRegistry,
        udp: UdpSender,
        http: HttpPoster,
        bulk_queue: BulkQueue | None = None,
        bulk_client: BulkStoreClient | None = None,
        options: RecordOptions | None = None,
    ) -> None:
        self.error_sink = error_sink
        self.registry = registry
        self.udp = udp
        self.http = http
        self.bulk_queue = bulk_queue
        self.bulk_client = bulk_client
        self.options = options or RecordOptions()
        self._tasks: set[asyncio.Task[Any]] = set()

    @classmethod
    def from_config(
        cls,
        config: RelayConfig,
        *,
        resolver: Resolver | None = None,
        signal: Callable[[BaseException], None] | None = None,
        http_client: httpx.AsyncClient | None = None,
        store_client: httpx.AsyncClient | None = None,
    ) -> RelayContext:
        """Construct every resource the configuration calls for."""
        error_sink = ErrorSink(debug=config.debug, signal=signal)
        registry = TargetRegistry(
            [t for t in config.targets if isinstance(t, UdpTarget)],
            error_sink,
            resolver=resolver,
            invalid_refresh_seconds=config.dns_invalid_refresh_seconds,
            standard_refresh_seconds=config.dns_standard_refresh_seconds,
        )
        bulk_client: BulkStoreClient | None = None
        bulk_queue: BulkQueue | None = None
        if config.store_node is not None:
            bulk_client = BulkStoreClient(
                config.store_node,
                timeout_seconds=config.http_timeout_seconds,
                client=store_client,
            )
            bulk_queue = BulkQueue(
                bulk_client, error_sink, capacity=config.queue_capacity
            )
        return cls(
            error_sink=error_sink,
            registry=registry,
            udp=UdpSender(error_sink, broadcast=config.udp_broadcast),
            http=HttpPoster(
                timeout_seconds=config.http_timeout_seconds, client=http_client
            ),
            bulk_queue=bulk_queue,
            bulk_client=bulk_client,
            options=config.record_options,
        )

    # ------------------------------------------------------------------
    # Fire-and-forget tasks
    # ------------------------------------------------------------------

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def spawn(
        self, coro: Coroutine[Any, Any, Any], *, label: str = "delivery"
    ) -> asyncio.Task[Any]:
        """Schedule *coro* without awaiting it; failures go to the ErrorSink."""
        task = asyncio.get_running_loop().create_task(coro, name=label)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        if not isinstance(exc, RelayError):
            wrapped = TransportError(f"{task.get_name()} failed: {exc}")
            wrapped.__cause__ = exc
            exc = wrapped
        self.error_sink.report(exc)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self.registry.targets:
            await self.udp.open()
        self.registry.start()
        logger.info(
            "RelayContext started (udp_targets=%d, store=%s).",
            len(self.registry.targets),
            self.bulk_client.node if self.bulk_client else "disabled",
        )

    async def wait_idle(self) -> None:
        """Wait for in-flight deliveries and the bulk queue to settle."""
        while self._tasks:
            await asyncio.wait(set(self._tasks))
        if self.bulk_queue is not None:
            await self.bulk_queue.wait_idle()

    async def close(self) -> None:
        await self.registry.stop()
        await self.wait_idle()
        self.udp.close()
        await self.http.aclose()
        if self.bulk_client is not None:
            await self.bulk_client.aclose()
        logger.info("RelayContext closed (errors=%d).", self.error_sink.total)

"""Adversarial tests — sustained store overload and a failing store.

The bulk queue must stay bounded, keep a single request in flight, and
never let store failures reach the dispatch path.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from detection_relay.config import RelayConfig
from detection_relay.models.targets import SearchIndexTarget, WebhookTarget
from detection_relay.routing.dispatcher import DispatchRouter


class _SlowStore:
    """MockTransport handler that holds every bulk request until released."""

    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.active = 0
        self.max_active = 0
        self.batch_sizes: list[int] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.batch_sizes.append(len(request.content.decode().splitlines()) // 2)
        try:
            await self.release.wait()
            return httpx.Response(200, json={"errors": False, "items": []})
        finally:
            self.active -= 1


def _router(store_handler, **kwargs) -> DispatchRouter:
    config = RelayConfig(
        targets=[SearchIndexTarget(), WebhookTarget(host="hook.test")],
        store_node="http://store.test:9200",
        **kwargs,
    )
    return DispatchRouter.from_config(
        config,
        http_client=httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(204))
        ),
        store_client=httpx.AsyncClient(transport=httpx.MockTransport(store_handler)),
    )


class TestQueueOverload:
    @pytest.mark.asyncio
    async def test_flood_while_store_stalls(self, make_record):
        store = _SlowStore()
        router = _router(store, queue_capacity=12)
        queue = router.context.bulk_queue

        async with router:
            router.on_record(make_record(timestamp=0))
            await asyncio.sleep(0.01)
            for ts in range(1, 1001):
                router.on_record(make_record(timestamp=ts))
                assert len(queue) <= 12
            store.release.set()

        assert store.max_active == 1
        assert store.batch_sizes == [1, 12]
        assert queue.stats["evicted"] == 1000 - 12
        assert queue.stats["uploaded"] == 13

    @pytest.mark.asyncio
    async def test_store_outage_never_reaches_dispatch(self, make_record):
        def _down(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        router = _router(_down)
        async with router:
            for ts in range(50):
                assert router.on_record(make_record(timestamp=ts)) is True
                await asyncio.sleep(0)

        stats = router.context.bulk_queue.stats
        assert stats["uploaded"] == 0
        assert stats["failed_batches"] >= 1
        assert router.context.error_sink.counts["StoreBulkError"] == stats["failed_batches"]

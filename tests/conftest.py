"""Shared test fixtures for the detection relay."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Sequence
from typing import Any

import httpx
import pytest

from detection_relay.core.bulk_queue import BulkQueue, PendingDocument
from detection_relay.core.context import RelayContext
from detection_relay.core.error_sink import ErrorSink, ResolutionError
from detection_relay.core.registry import TargetRegistry
from detection_relay.models.records import DetectionRecord, RecordOptions
from detection_relay.models.targets import UdpTarget
from detection_relay.transport.http import HttpPoster


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeResolver:
    """Async resolver answering from a table; exceptions in the table are raised."""

    def __init__(self, answers: dict[str, str | Exception] | None = None) -> None:
        self.answers: dict[str, str | Exception] = dict(answers or {})
        self.calls: list[str] = []

    async def __call__(self, host: str) -> str:
        self.calls.append(host)
        await asyncio.sleep(0)
        answer = self.answers.get(host, ResolutionError(f"NXDOMAIN {host}"))
        if isinstance(answer, Exception):
            raise answer
        return answer


class FakeUdpSender:
    """Records datagrams instead of sending them."""

    def __init__(self, *, fail: Exception | None = None) -> None:
        self.sent: list[tuple[bytes, str, int]] = []
        self.fail = fail
        self.is_open = False

    async def open(self) -> None:
        self.is_open = True

    def send(self, payload: bytes, address: str, port: int) -> None:
        if self.fail is not None:
            raise self.fail
        self.sent.append((payload, address, port))

    def close(self) -> None:
        self.is_open = False


class RecordingUploader:
    """BulkUploader double that records batches and can be gated or fail."""

    def __init__(self, *, fail: Exception | None = None, gated: bool = False) -> None:
        self.batches: list[list[str]] = []
        self.fail = fail
        self.gate: asyncio.Event | None = asyncio.Event() if gated else None
        self.concurrent = 0
        self.max_concurrent = 0

    async def bulk(self, documents: Sequence[PendingDocument]) -> int:
        self.concurrent += 1
        self.max_concurrent = max(self.max_concurrent, self.concurrent)
        try:
            self.batches.append([doc.doc_id for doc in documents])
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            if self.fail is not None:
                raise self.fail
            return len(documents)
        finally:
            self.concurrent -= 1


class RecordingDigester:
    def __init__(self) -> None:
        self.records: list[DetectionRecord] = []

    def handle_record(self, record: DetectionRecord) -> None:
        self.records.append(record)


class HttpRecorder:
    """``httpx.MockTransport`` handler capturing every request.

    ``statuses`` maps a URL path to the status code to answer with;
    everything else gets 200.  ``/_bulk`` answers with an empty bulk result.
    """

    def __init__(self, statuses: dict[str, int] | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self.statuses = dict(statuses or {})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status = self.statuses.get(request.url.path, 200)
        if request.url.path.endswith("/_bulk"):
            return httpx.Response(status, json={"errors": False, "items": []})
        return httpx.Response(status)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def bodies(self, path: str) -> list[bytes]:
        return [r.content for r in self.requests if r.url.path == path]

    def json_bodies(self, path: str) -> list[Any]:
        return [json.loads(body) for body in self.bodies(path)]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def error_sink() -> ErrorSink:
    """Provide a fresh ErrorSink with debug output enabled."""
    return ErrorSink(debug=True)


@pytest.fixture
def http_recorder() -> HttpRecorder:
    return HttpRecorder()


@pytest.fixture
def fake_udp() -> FakeUdpSender:
    return FakeUdpSender()


@pytest.fixture
def make_record() -> Callable[..., DetectionRecord]:
    """Factory fixture: build a DetectionRecord with sensible defaults."""

    def _factory(
        transmitter_id: str = "aa:bb:cc:dd:ee:ff",
        transmitter_id_type: int = 2,
        **overrides: Any,
    ) -> DetectionRecord:
        defaults: dict[str, Any] = {
            "transmitter_id": transmitter_id,
            "transmitter_id_type": transmitter_id_type,
            "timestamp": 1_600_000_000_000,
            "rssi": -70,
        }
        defaults.update(overrides)
        return DetectionRecord(**defaults)

    return _factory


@pytest.fixture
def record(make_record: Callable[..., DetectionRecord]) -> DetectionRecord:
    """Convenience: a ready-made DetectionRecord with test defaults."""
    return make_record()


@pytest.fixture
def make_context(
    error_sink: ErrorSink, http_recorder: HttpRecorder, fake_udp: FakeUdpSender
) -> Callable[..., RelayContext]:
    """Factory fixture: a RelayContext wired to in-memory doubles."""

    def _factory(
        *,
        udp_targets: Sequence[UdpTarget] = (),
        resolver: FakeResolver | None = None,
        uploader: RecordingUploader | None = None,
        capacity: int = 12,
        options: RecordOptions | None = None,
    ) -> RelayContext:
        registry = TargetRegistry(
            list(udp_targets), error_sink, resolver=resolver or FakeResolver()
        )
        bulk_queue = None
        if uploader is not None:
            bulk_queue = BulkQueue(uploader, error_sink, capacity=capacity)
        return RelayContext(
            error_sink=error_sink,
            registry=registry,
            udp=fake_udp,  # type: ignore[arg-type]
            http=HttpPoster(client=http_recorder.client()),
            bulk_queue=bulk_queue,
            options=options,
        )

    return _factory


@pytest.fixture
def make_resolver() -> Callable[..., FakeResolver]:
    """Factory fixture: FakeResolver from a host -> address/exception table."""
    return FakeResolver


@pytest.fixture
def make_uploader() -> Callable[..., RecordingUploader]:
    """Factory fixture: RecordingUploader (``fail=`` exception, ``gated=`` bool)."""
    return RecordingUploader


@pytest.fixture
def make_udp() -> Callable[..., FakeUdpSender]:
    return FakeUdpSender


@pytest.fixture
def digester() -> RecordingDigester:
    return RecordingDigester()

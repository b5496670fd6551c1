"""DispatchRouter — fans accepted records out to every configured target.

Each record passes through the filter predicate once.  A rejected record
has no side effects at all.  An accepted record is offered to every
record sink independently and, when digest targets exist, to the external
digester.  Sink failures are reported to the ErrorSink and never prevent
delivery to the remaining sinks.

The dispatch path is synchronous and never suspends: records are handled
strictly in arrival order, while the network work each sink starts
completes later, in no particular order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, Protocol

import httpx

from detection_relay.config import RelayConfig
from detection_relay.core.context import RelayContext
from detection_relay.core.error_sink import RelayError, TransportError
from detection_relay.core.registry import Resolver
from detection_relay.models.filters import RecordFilter, RecordPredicate
from detection_relay.models.records import (
    DetectionRecord,
    PeriodicDigest,
    ProximityDigest,
    RelayPayload,
)
from detection_relay.routing.sinks import BaseSink, build_sink

logger = logging.getLogger(__name__)


class Digester(Protocol):
    """External aggregation collaborator fed with every accepted record."""

    def handle_record(self, record: DetectionRecord) -> None:
        ...


class DispatchRouter:
    """Routes records and digests to all configured sinks.

    Usage
    -----
    >>> router = DispatchRouter.from_config(config)  # doctest: +SKIP
    >>> async with router:                            # doctest: +SKIP
    ...     router.on_record(record)
    """

    def __init__(
        self,
        context: RelayContext,
        *,
        targets: Iterable[Any] = (),
        proximity_targets: Iterable[Any] = (),
        digest_targets: Iterable[Any] = (),
        record_filter: RecordPredicate | None = None,
        digester: Digester | None = None,
    ) -> None:
        self._context = context
        self._filter: RecordPredicate = record_filter or RecordFilter()
        self._digester = digester
        self._record_sinks: list[BaseSink] = [build_sink(t, context) for t in targets]
        self._proximity_sinks: list[BaseSink] = [
            build_sink(t, context) for t in proximity_targets
        ]
        self._digest_sinks: list[BaseSink] = [
            build_sink(t, context) for t in digest_targets
        ]
        if self.uses_digester and digester is None:
            logger.warning("Digest targets configured but no digester supplied.")

    @classmethod
    def from_config(
        cls,
        config: RelayConfig,
        *,
        record_filter: RecordPredicate | None = None,
        digester: Digester | None = None,
        resolver: Resolver | None = None,
        signal: Callable[[BaseException], None] | None = None,
        http_client: httpx.AsyncClient | None = None,
        store_client: httpx.AsyncClient | None = None,
    ) -> DispatchRouter:
        """Build the context and sinks described by *config*."""
        context = RelayContext.from_config(
            config,
            resolver=resolver,
            signal=signal,
            http_client=http_client,
            store_client=store_client,
        )
        return cls(
            context,
            targets=config.targets,
            proximity_targets=config.proximity_targets,
            digest_targets=config.digest_targets,
            record_filter=record_filter or RecordFilter(config.filter_parameters),
            digester=digester,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def context(self) -> RelayContext:
        return self._context

    @property
    def record_sinks(self) -> list[BaseSink]:
        """Return a copy of the record sink list."""
        return list(self._record_sinks)

    @property
    def uses_digester(self) -> bool:
        return bool(self._proximity_sinks or self._digest_sinks)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def on_record(self, record: DetectionRecord) -> bool:
        """Dispatch one record.  Returns ``False`` if the filter rejected it.

        A filter that raises counts as a rejection and is reported.
        Must be called from the event loop thread.
        """
        try:
            passing = self._filter.is_passing(record)
        except Exception as exc:  # noqa: BLE001
            self._report(exc, "record filter")
            return False
        if not passing:
            return False

        self._fan_out(self._record_sinks, record)

        if self.uses_digester and self._digester is not None:
            try:
                self._digester.handle_record(record)
            except Exception as exc:  # noqa: BLE001
                self._report(exc, "digester")
        return True

    def handle_proximity(self, digest: ProximityDigest) -> None:
        """Forward a proximity digest produced by the digester."""
        self._fan_out(self._proximity_sinks, digest)

    def handle_digest(self, digest: PeriodicDigest) -> None:
        """Forward a periodic digest produced by the digester."""
        self._fan_out(self._digest_sinks, digest)

    def _fan_out(self, sinks: list[BaseSink], payload: RelayPayload) -> None:
        for sink in sinks:
            try:
                sink.accept(payload)
            except Exception as exc:  # noqa: BLE001
                self._report(exc, sink.sink_name)

    def _report(self, exc: Exception, where: str) -> None:
        if not isinstance(exc, RelayError):
            wrapped = TransportError(f"{where}: {exc}")
            wrapped.__cause__ = exc
            exc = wrapped
        self._context.error_sink.report(exc)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        await self._context.start()
        logger.info(
            "DispatchRouter started: %d record sinks, %d proximity, %d digest.",
            len(self._record_sinks),
            len(self._proximity_sinks),
            len(self._digest_sinks),
        )

    async def close(self) -> None:
        await self._context.close()

    async def __aenter__(self) -> DispatchRouter:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

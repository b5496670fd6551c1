"""TargetRegistry — cached DNS resolution for UDP targets.

UDP targets may name a host rather than an address.  The registry keeps
one ``ResolvedAddress`` per target and refreshes all of them on a single
repeating timer.  The refresh interval adapts: while any target is
invalid the registry re-resolves every ``invalid_refresh_seconds`` so a
transient DNS failure recovers quickly; once everything resolves it
backs off to ``standard_refresh_seconds``.

The registry is the only writer of resolved addresses.  Each value is an
immutable ``ResolvedAddress`` swapped in whole, so readers never observe
a half-updated entry.  A reader may act on a stale address for the window
between a DNS change and the next successful pass.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from detection_relay.core.error_sink import ErrorSink, ResolutionError
from detection_relay.models.targets import UdpTarget

logger = logging.getLogger(__name__)

INVALID_REFRESH_SECONDS = 2.0
STANDARD_REFRESH_SECONDS = 60.0

Resolver = Callable[[str], Awaitable[str]]


@dataclass(frozen=True)
class ResolvedAddress:
    """Last known address for a UDP target."""

    address: str | None = None
    is_valid: bool = False


async def resolve_ipv4(host: str) -> str:
    """Resolve *host* to its first IPv4 address using the event loop."""
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(
            host, None, family=socket.AF_INET, type=socket.SOCK_DGRAM
        )
    except OSError as exc:
        raise ResolutionError(f"DNS lookup failed for {host!r}: {exc}") from exc
    if not infos:
        raise ResolutionError(f"DNS lookup for {host!r} returned no addresses")
    return str(infos[0][4][0])


def _is_ip_literal(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


class TargetRegistry:
    """Holds UDP targets and keeps their resolved addresses fresh.

    Parameters
    ----------
    targets:
        The UDP targets to track.  Non-UDP descriptors are ignored.
    error_sink:
        Receives a ``ResolutionError`` for every failed lookup.
    resolver:
        Coroutine function mapping a hostname to an address.  Defaults to
        ``resolve_ipv4``.
    invalid_refresh_seconds, standard_refresh_seconds:
        Short and long refresh intervals.
    """

    def __init__(
        self,
        targets: Sequence[UdpTarget],
        error_sink: ErrorSink,
        *,
        resolver: Resolver | None = None,
        invalid_refresh_seconds: float = INVALID_REFRESH_SECONDS,
        standard_refresh_seconds: float = STANDARD_REFRESH_SECONDS,
    ) -> None:
        self._targets: list[UdpTarget] = [
            t for t in targets if isinstance(t, UdpTarget)
        ]
        self._error_sink = error_sink
        self._resolver = resolver or resolve_ipv4
        self._invalid_refresh = invalid_refresh_seconds
        self._standard_refresh = standard_refresh_seconds
        self._addresses: dict[UdpTarget, ResolvedAddress] = {}
        self._task: asyncio.Task[None] | None = None

        # IP literals need no lookup and are usable immediately.
        for target in self._targets:
            if _is_ip_literal(target.host):
                self._addresses[target] = ResolvedAddress(target.host, True)
            else:
                self._addresses[target] = ResolvedAddress()

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    @property
    def targets(self) -> list[UdpTarget]:
        return list(self._targets)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def lookup(self, target: UdpTarget) -> ResolvedAddress:
        """Return the latest stored address for *target*."""
        return self._addresses.get(target, ResolvedAddress())

    def has_invalid(self) -> bool:
        return any(not entry.is_valid for entry in self._addresses.values())

    def next_delay(self) -> float:
        """Short interval while any target is invalid, long otherwise."""
        if self.has_invalid():
            return self._invalid_refresh
        return self._standard_refresh

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve_all(self) -> None:
        """Resolve every hostname-based target concurrently.

        A failed lookup invalidates only its own target.
        """
        pending = [
            self._resolve_one(target)
            for target in self._targets
            if not _is_ip_literal(target.host)
        ]
        if pending:
            await asyncio.gather(*pending)

    async def _resolve_one(self, target: UdpTarget) -> None:
        try:
            address = await self._resolver(target.host)
        except Exception as exc:  # noqa: BLE001
            error = (
                exc
                if isinstance(exc, ResolutionError)
                else ResolutionError(f"DNS lookup failed for {target.host!r}: {exc}")
            )
            self._addresses[target] = ResolvedAddress(
                self._addresses[target].address, False
            )
            self._error_sink.report(error)
            return

        previous = self._addresses[target]
        self._addresses[target] = ResolvedAddress(address, True)
        if previous.address != address:
            logger.info("Resolved %s -> %s", target.label, address)

    # ------------------------------------------------------------------
    # Timer loop
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin the refresh loop on the running event loop."""
        if self.is_running or not self._targets:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._refresh_loop(), name="target-registry-refresh"
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _refresh_loop(self) -> None:
        while True:
            await self.resolve_all()
            delay = self.next_delay()
            logger.debug("Next DNS refresh in %.1fs", delay)
            await asyncio.sleep(delay)

"""Connectionless datagram sender shared by every UDP target."""

from __future__ import annotations

import asyncio
import logging

from detection_relay.core.error_sink import ErrorSink, TransportError

logger = logging.getLogger(__name__)


class _SenderProtocol(asyncio.DatagramProtocol):
    """Forwards asynchronous socket errors to the ErrorSink."""

    def __init__(self, error_sink: ErrorSink) -> None:
        self._error_sink = error_sink

    def error_received(self, exc: Exception) -> None:
        self._error_sink.report(TransportError(f"UDP socket error: {exc}"))


class UdpSender:
    """Best-effort datagram sender.

    Broadcast capability is fixed when the socket opens.  ``send`` never
    blocks: the datagram is handed to the event loop's transport and any
    later socket error arrives through ``error_received``.
    """

    def __init__(self, error_sink: ErrorSink, *, broadcast: bool = True) -> None:
        self._error_sink = error_sink
        self._broadcast = broadcast
        self._transport: asyncio.DatagramTransport | None = None

    @property
    def is_open(self) -> bool:
        return self._transport is not None

    async def open(self) -> None:
        if self._transport is not None:
            return
        loop = asyncio.get_running_loop()
        transport, _ = await loop.create_datagram_endpoint(
            lambda: _SenderProtocol(self._error_sink),
            local_addr=("0.0.0.0", 0),
            allow_broadcast=self._broadcast,
        )
        self._transport = transport
        logger.info("UdpSender: socket open (broadcast=%s).", self._broadcast)

    def send(self, payload: bytes, address: str, port: int) -> None:
        """Send *payload* to ``address:port``.

        Raises
        ------
        TransportError
            If the socket is not open or the send fails immediately.
        """
        if self._transport is None:
            raise TransportError("UDP socket is not open")
        try:
            self._transport.sendto(payload, (address, port))
        except OSError as exc:
            raise TransportError(f"UDP send to {address}:{port} failed: {exc}") from exc

    def close(self) -> None:
        if self._transport is not None:
            self._transport.close()
            self._transport = None
            logger.info("UdpSender: socket closed.")

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"UdpSender(broadcast={self._broadcast}, state={state})"

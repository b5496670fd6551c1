"""UDP sink — sends the hex-encoded record as one datagram."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from detection_relay.models.records import DetectionRecord, RelayPayload
from detection_relay.models.targets import UdpTarget

if TYPE_CHECKING:
    from detection_relay.core.context import RelayContext

logger = logging.getLogger(__name__)


class UdpSink:
    """Sends records to a UDP target while its address is valid.

    Nothing is sent for a target whose last resolution failed; delivery
    resumes once the registry resolves it again.
    """

    def __init__(self, target: UdpTarget, context: RelayContext) -> None:
        self._target = target
        self._context = context

    @property
    def sink_name(self) -> str:
        return self._target.label

    def accept(self, payload: RelayPayload) -> None:
        if not isinstance(payload, DetectionRecord):
            raise TypeError(f"{self.sink_name} only forwards detection records")
        resolved = self._context.registry.lookup(self._target)
        if not resolved.is_valid or resolved.address is None:
            logger.debug("UdpSink: %s has no valid address; skipped.", self.sink_name)
            return
        datagram = bytes.fromhex(payload.encode_as_hex(self._context.options))
        self._context.udp.send(datagram, resolved.address, self._target.port)

"""Detection records and digests — the payloads the relay forwards.

A ``DetectionRecord`` is the normalized radio-detection event handed to
the relay by the capture pipeline.  Digests are aggregated summaries
produced by the external digester from one or more records.  All models
are frozen; wire names are camelCase so downstream consumers see the
same field names the capture pipeline emits.

Each payload knows how to present itself to the bulk-indexed store:
its deterministic document id, the index it belongs to, and the document
body with the timestamp stamped as ISO-8601.
"""

from __future__ import annotations

import struct
from datetime import datetime, timedelta, timezone
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

RADDEC_INDEX = "raddec"
PROXIMITY_INDEX = "diract-proximity"
DIGEST_INDEX = "diract-digest"

_FRAME_MARKER = 0x10
_FLAG_TIMESTAMP = 0x01
_FLAG_PACKETS = 0x02


def iso_timestamp(milliseconds: int) -> str:
    """Render a millisecond epoch timestamp as ISO-8601 UTC with a ``Z`` suffix."""
    seconds, millis = divmod(milliseconds, 1000)
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(
        milliseconds=millis
    )
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RecordOptions(BaseModel):
    """Controls which optional fields are carried when a record is encoded."""

    model_config = ConfigDict(frozen=True)

    include_timestamp: bool = True
    include_packets: bool = False


class DetectionRecord(BaseModel):
    """An observed transmitter, as decoded by the capture pipeline."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    index_name: ClassVar[str] = RADDEC_INDEX

    transmitter_id: str
    transmitter_id_type: int
    timestamp: int  # ms since epoch
    rssi: int
    receiver_id: str | None = None
    receiver_id_type: int | None = None
    packets: list[str] = []

    @property
    def document_id(self) -> str:
        """Stable store id: ``<timestamp>-<transmitterId>-<transmitterIdType>``."""
        return f"{self.timestamp}-{self.transmitter_id}-{self.transmitter_id_type}"

    @property
    def client_id(self) -> str:
        """Identity string used by the analytics collector."""
        return f"{self.transmitter_id}/{self.transmitter_id_type}"

    def to_json(self) -> dict[str, Any]:
        """Full JSON representation with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_flattened(self, options: RecordOptions) -> dict[str, Any]:
        """Flat storage representation honouring *options*."""
        exclude: set[str] = set()
        if not options.include_timestamp:
            exclude.add("timestamp")
        if not options.include_packets:
            exclude.add("packets")
        return self.model_dump(
            mode="json", by_alias=True, exclude_none=True, exclude=exclude
        )

    def to_document(self, options: RecordOptions) -> tuple[str, str, dict[str, Any]]:
        doc = self.to_flattened(options)
        doc["timestamp"] = iso_timestamp(self.timestamp)
        return self.document_id, self.index_name, doc

    def encode_as_hex(self, options: RecordOptions) -> str:
        """Encode as a compact binary frame, returned as a hex string.

        Frame layout (big-endian)::

            marker(1) length(2) flags(1) idType(1) idLen(1) id(idLen) rssi(1)
            [timestamp(6)] [packetCount(1) {packetLen(1) packet}*]
        """
        flags = 0
        if options.include_timestamp:
            flags |= _FLAG_TIMESTAMP
        if options.include_packets and self.packets:
            flags |= _FLAG_PACKETS

        identifier = _identifier_bytes(self.transmitter_id)
        body = bytearray()
        body += struct.pack(
            ">BBB", flags, self.transmitter_id_type & 0xFF, len(identifier)
        )
        body += identifier
        body += struct.pack(">b", max(-128, min(127, self.rssi)))
        if flags & _FLAG_TIMESTAMP:
            body += self.timestamp.to_bytes(6, "big")
        if flags & _FLAG_PACKETS:
            packets = [bytes.fromhex(p)[:255] for p in self.packets[:255]]
            body += struct.pack(">B", len(packets))
            for packet in packets:
                body += struct.pack(">B", len(packet)) + packet

        frame = struct.pack(">BH", _FRAME_MARKER, len(body) + 3) + bytes(body)
        return frame.hex()


def _identifier_bytes(transmitter_id: str) -> bytes:
    compact = transmitter_id.replace(":", "")
    try:
        return bytes.fromhex(compact)
    except ValueError:
        return transmitter_id.encode("utf-8")


class _DigestBase(BaseModel):
    """Fields shared by the digester's proximity and periodic summaries."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    index_name: ClassVar[str]

    instance_id: str
    timestamp: int  # ms since epoch

    @property
    def document_id(self) -> str:
        return f"{self.timestamp}-{self.instance_id}"

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_document(self, options: RecordOptions) -> tuple[str, str, dict[str, Any]]:
        doc = self.to_json()
        doc["timestamp"] = iso_timestamp(self.timestamp)
        return self.document_id, self.index_name, doc


class ProximityDigest(_DigestBase):
    """Proximity summary emitted by the digester."""

    index_name: ClassVar[str] = PROXIMITY_INDEX


class PeriodicDigest(_DigestBase):
    """Periodic summary emitted by the digester."""

    index_name: ClassVar[str] = DIGEST_INDEX


RelayPayload = DetectionRecord | ProximityDigest | PeriodicDigest

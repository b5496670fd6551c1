"""Detection relay data models — all Pydantic v2, all frozen (immutable)."""

from detection_relay.models.filters import FilterParameters, RecordFilter, RecordPredicate
from detection_relay.models.records import (
    DIGEST_INDEX,
    PROXIMITY_INDEX,
    RADDEC_INDEX,
    DetectionRecord,
    PeriodicDigest,
    ProximityDigest,
    RecordOptions,
    RelayPayload,
    iso_timestamp,
)
from detection_relay.models.targets import (
    AnalyticsTarget,
    DigestTarget,
    SearchIndexTarget,
    Target,
    TargetProtocol,
    UdpTarget,
    WebhookTarget,
)

__all__ = [
    # records
    "DetectionRecord",
    "ProximityDigest",
    "PeriodicDigest",
    "RecordOptions",
    "RelayPayload",
    "iso_timestamp",
    "RADDEC_INDEX",
    "PROXIMITY_INDEX",
    "DIGEST_INDEX",
    # targets
    "TargetProtocol",
    "Target",
    "DigestTarget",
    "UdpTarget",
    "WebhookTarget",
    "AnalyticsTarget",
    "SearchIndexTarget",
    # filters
    "FilterParameters",
    "RecordFilter",
    "RecordPredicate",
]

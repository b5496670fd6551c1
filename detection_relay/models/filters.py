"""Record filter parameters and the default pass/fail predicate."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from detection_relay.models.records import DetectionRecord


@runtime_checkable
class RecordPredicate(Protocol):
    """Anything that can decide whether a record is forwarded."""

    def is_passing(self, record: DetectionRecord) -> bool:
        ...


class FilterParameters(BaseModel):
    """Bounds a record must satisfy to be forwarded.

    ``None`` disables a bound.  An empty ``accepted_transmitter_id_types``
    accepts every id type.
    """

    model_config = ConfigDict(frozen=True)

    min_rssi: int | None = -90
    max_rssi: int | None = None
    accepted_transmitter_id_types: frozenset[int] = frozenset()


class RecordFilter:
    """Default predicate built from ``FilterParameters``."""

    def __init__(self, parameters: FilterParameters | None = None) -> None:
        self._parameters = parameters or FilterParameters()

    @property
    def parameters(self) -> FilterParameters:
        return self._parameters

    def is_passing(self, record: DetectionRecord) -> bool:
        p = self._parameters
        if p.min_rssi is not None and record.rssi < p.min_rssi:
            return False
        if p.max_rssi is not None and record.rssi > p.max_rssi:
            return False
        if (
            p.accepted_transmitter_id_types
            and record.transmitter_id_type not in p.accepted_transmitter_id_types
        ):
            return False
        return True

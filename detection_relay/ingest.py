"""JSON-lines record source.

The capture pipeline is external; the CLI accepts its output as one JSON
object per line (camelCase or snake_case keys).  Malformed lines are
logged and skipped so a single bad line never stops the relay.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import AsyncIterator, Iterable, Iterator
from typing import TextIO

from pydantic import ValidationError

from detection_relay.models.records import DetectionRecord

logger = logging.getLogger(__name__)


def parse_record(line: str) -> DetectionRecord | None:
    """Parse one line; return ``None`` for blank or malformed input."""
    text = line.strip()
    if not text:
        return None
    try:
        return DetectionRecord.model_validate_json(text)
    except ValidationError as exc:
        logger.warning("Skipping malformed record: %s", exc.errors()[0]["msg"])
        return None


def iter_records(lines: Iterable[str]) -> Iterator[DetectionRecord]:
    for line in lines:
        record = parse_record(line)
        if record is not None:
            yield record


async def aiter_records(stream: TextIO | None = None) -> AsyncIterator[DetectionRecord]:
    """Yield records from *stream* (stdin by default) without blocking the loop."""
    stream = stream or sys.stdin
    while True:
        line = await asyncio.to_thread(stream.readline)
        if not line:
            return
        record = parse_record(line)
        if record is not None:
            yield record

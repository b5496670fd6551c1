"""Error taxonomy and the terminal ErrorSink.

Every failure in the relay ends here.  Nothing is re-raised to the
dispatch path: resolution, transport and bulk-store failures are
non-fatal and only ever produce an external signal plus a log line.

Taxonomy
--------
``ResolutionError``
    DNS lookup for a UDP target failed.  The target is marked invalid
    and retried on the next refresh pass.
``TransportError``
    A datagram send or HTTP POST failed.  The payload is not retried.
``StoreBulkError``
    A bulk upload to the document store failed.  Queue processing
    continues with whatever was enqueued since.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Callable

logger = logging.getLogger(__name__)


class RelayError(RuntimeError):
    """Base class for every failure the relay reports."""


class ResolutionError(RelayError):
    """Raised when a UDP target's hostname cannot be resolved."""


class TransportError(RelayError):
    """Raised when a datagram or HTTP delivery fails."""


class StoreBulkError(RelayError):
    """Raised when a bulk upload to the document store fails."""


class ErrorSink:
    """Single entry point for all failure notifications.

    Parameters
    ----------
    debug:
        When ``True``, each report is logged with its traceback.
    signal:
        Optional external indicator (LED, metrics hook, ...) invoked with
        the failure.  A signal that raises is logged and ignored.
    """

    def __init__(
        self,
        *,
        debug: bool = False,
        signal: Callable[[BaseException], None] | None = None,
    ) -> None:
        self._debug = debug
        self._signal = signal
        self._counts: Counter[str] = Counter()

    @property
    def debug(self) -> bool:
        return self._debug

    @property
    def counts(self) -> dict[str, int]:
        """Failures reported so far, keyed by exception class name."""
        return dict(self._counts)

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def report(self, error: BaseException) -> None:
        """Record *error*.  Never raises."""
        kind = type(error).__name__
        self._counts[kind] += 1

        if self._signal is not None:
            try:
                self._signal(error)
            except Exception:  # noqa: BLE001
                logger.exception("ErrorSink: external signal failed.")

        if self._debug:
            logger.warning("%s: %s", kind, error, exc_info=error)
        else:
            logger.warning("%s: %s", kind, error)

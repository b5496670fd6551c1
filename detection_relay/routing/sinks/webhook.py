"""Webhook sink — POSTs each payload as JSON."""

from __future__ import annotations

from typing import TYPE_CHECKING

from detection_relay.models.records import RelayPayload
from detection_relay.models.targets import WebhookTarget

if TYPE_CHECKING:
    from detection_relay.core.context import RelayContext


class WebhookSink:
    """Forwards records and digests to a JSON webhook.

    Parameters
    ----------
    target:
        Fully defaulted webhook descriptor (path defaults to ``/raddecs``).
    context:
        Provides the shared ``HttpPoster`` and the task spawner.
    """

    def __init__(self, target: WebhookTarget, context: RelayContext) -> None:
        self._target = target
        self._context = context

    @property
    def sink_name(self) -> str:
        return self._target.label

    def accept(self, payload: RelayPayload) -> None:
        self._context.spawn(
            self._context.http.post_json(self._target.url, payload.to_json()),
            label=self.sink_name,
        )

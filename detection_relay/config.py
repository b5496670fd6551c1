"""Relay configuration — env-driven, with optional TOML file.

Centralized config using pydantic-settings.  Every field can be set from
``DETECTION_RELAY_*`` environment variables (complex fields as JSON), a
``.env`` file, or a TOML file passed to ``load_config``.  Explicit values
from the file take precedence over the environment.

Examples
--------
Override via environment::

    export DETECTION_RELAY_DEBUG=true
    export DETECTION_RELAY_STORE_NODE=http://192.168.1.10:9200
    export DETECTION_RELAY_TARGETS='[{"protocol": "udp", "host": "192.168.1.255", "port": 50001}]'

Or via TOML::

    store_node = "http://192.168.1.10:9200"

    [[targets]]
    protocol = "udp"
    host = "192.168.1.255"
    port = 50001

    [[targets]]
    protocol = "search_index"
"""

from __future__ import annotations

import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from detection_relay.models.filters import FilterParameters
from detection_relay.models.records import RecordOptions
from detection_relay.models.targets import (
    DigestTarget,
    SearchIndexTarget,
    Target,
    UdpTarget,
)


def _default_targets() -> list[Any]:
    return [UdpTarget(host="192.168.1.255", port=50001)]


class RelayConfig(BaseSettings):
    """Runtime configuration consumed by the dispatch core."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DETECTION_RELAY_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Targets
    targets: list[Target] = Field(default_factory=_default_targets)
    proximity_targets: list[DigestTarget] = []
    digest_targets: list[DigestTarget] = []
    store_node: str | None = None  # e.g. "http://192.168.1.10:9200"

    # Record handling
    udp_broadcast: bool = True
    include_timestamp: bool = True
    include_packets: bool = False
    filter_parameters: FilterParameters = FilterParameters()

    # Resource bounds
    queue_capacity: int = Field(default=12, ge=1)
    dns_invalid_refresh_seconds: float = Field(default=2.0, gt=0)
    dns_standard_refresh_seconds: float = Field(default=60.0, gt=0)
    http_timeout_seconds: float = Field(default=10.0, gt=0)

    @model_validator(mode="after")
    def _store_node_required(self) -> RelayConfig:
        if self.uses_store and self.store_node is None:
            raise ValueError("a search_index target requires store_node to be set")
        return self

    @property
    def record_options(self) -> RecordOptions:
        return RecordOptions(
            include_timestamp=self.include_timestamp,
            include_packets=self.include_packets,
        )

    @property
    def uses_store(self) -> bool:
        """Whether any target list forwards to the bulk-indexed store."""
        return any(
            isinstance(t, SearchIndexTarget)
            for t in (*self.targets, *self.proximity_targets, *self.digest_targets)
        )

    @property
    def uses_digester(self) -> bool:
        return bool(self.proximity_targets or self.digest_targets)


def load_config(path: Path | None = None, **overrides: Any) -> RelayConfig:
    """Build a ``RelayConfig`` from an optional TOML file plus overrides."""
    data: dict[str, Any] = {}
    if path is not None:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    data.update(overrides)
    return RelayConfig(**data)


@lru_cache(maxsize=1)
def get_config() -> RelayConfig:
    """Process-wide configuration from the environment, built on first use."""
    return RelayConfig()

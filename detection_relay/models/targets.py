"""Target descriptors — where and how payloads are forwarded.

Each target is a frozen Pydantic model tagged by its ``protocol`` field.
Defaults are resolved once during validation, so every descriptor the
relay sees is complete and immutable.  Resolved UDP addresses are not
stored here: ``TargetRegistry`` owns them.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_WEBHOOK_PATH = "/raddecs"
DEFAULT_ANALYTICS_HOST = "www.google-analytics.com"
DEFAULT_ANALYTICS_PATH = "/collect"
DEFAULT_ANALYTICS_PAGE = "/default-page"


class TargetProtocol(str, Enum):
    """The closed set of supported delivery protocols."""

    UDP = "udp"
    WEBHOOK = "webhook"
    ANALYTICS = "analytics"
    SEARCH_INDEX = "search_index"


class _HttpTarget(BaseModel):
    """Shared fields for targets reached over HTTP(S)."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int = Field(default=80, ge=1, le=65535)
    path: str
    use_https: bool = False

    @model_validator(mode="before")
    @classmethod
    def _default_port(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("port") is None:
            use_https = data.get("use_https", cls.model_fields["use_https"].default)
            data = {**data, "port": 443 if use_https else 80}
        return data

    @property
    def url(self) -> str:
        scheme = "https" if self.use_https else "http"
        return f"{scheme}://{self.host}:{self.port}{self.path}"


class UdpTarget(BaseModel):
    """Datagram target addressed by hostname or IP literal."""

    model_config = ConfigDict(frozen=True)

    protocol: Literal["udp"] = "udp"
    host: str
    port: int = Field(ge=1, le=65535)

    @property
    def label(self) -> str:
        return f"udp://{self.host}:{self.port}"


class WebhookTarget(_HttpTarget):
    """JSON webhook receiving one POST per payload."""

    protocol: Literal["webhook"] = "webhook"
    path: str = DEFAULT_WEBHOOK_PATH

    @property
    def label(self) -> str:
        return f"webhook:{self.url}"


class AnalyticsTarget(_HttpTarget):
    """Web-analytics collector receiving one page-view hit per record."""

    protocol: Literal["analytics"] = "analytics"
    host: str = DEFAULT_ANALYTICS_HOST
    path: str = DEFAULT_ANALYTICS_PATH
    use_https: bool = True
    tid: str
    page: str = DEFAULT_ANALYTICS_PAGE

    @property
    def label(self) -> str:
        return f"analytics:{self.tid}@{self.host}"


class SearchIndexTarget(BaseModel):
    """Marks participation in the bulk-indexed store (node is global config)."""

    model_config = ConfigDict(frozen=True)

    protocol: Literal["search_index"] = "search_index"

    @property
    def label(self) -> str:
        return "search_index"


Target = Annotated[
    Union[UdpTarget, WebhookTarget, AnalyticsTarget, SearchIndexTarget],
    Field(discriminator="protocol"),
]

# Digests are only ever forwarded as JSON or store documents.
DigestTarget = Annotated[
    Union[WebhookTarget, SearchIndexTarget],
    Field(discriminator="protocol"),
]

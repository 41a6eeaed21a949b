"""Layer configuration for pyarcsync.

A layer is configured by the task host.  The models below are immutable for
the duration of one pipeline run; mutable token state lives separately in
:mod:`pyarcsync.credentials`.
"""

from __future__ import annotations

import json
import os
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pyproj import CRS
from pyproj.exceptions import CRSError

from pyarcsync._constants import (
    DEFAULT_CORRELATION_FIELD,
    DEFAULT_PAGE_SIZE,
    DEFAULT_QUERY,
    DEFAULT_SOURCE_CRS,
    DEFAULT_TARGET_WKID,
    DEFAULT_TOKEN_EXPIRATION_MIN,
    PULL_GUARD_WINDOW,
    PUSH_GUARD_WINDOW,
)
from pyarcsync.models.feature import GeometryKind


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class AuthSettings(BaseModel):
    """Portal credentials shared by both sync directions.

    Parameters
    ----------
    portal_url : str or None
        ArcGIS Portal / ArcGIS Online root used to issue tokens.  When
        unset, tokens are requested from the feature server itself.
    username : str or None
        Portal account name.
    password : str or None
        Portal account password.
    token_expiration : int
        Requested token lifetime in minutes.
    guard_window : float
        Minimum remaining validity (seconds) before a cached token is
        refreshed.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    portal_url: str | None = None
    username: str | None = None
    password: str | None = None
    token_expiration: int = Field(default=DEFAULT_TOKEN_EXPIRATION_MIN, gt=0)
    guard_window: float = Field(default=PUSH_GUARD_WINDOW.total_seconds(), ge=0)

    @field_validator("portal_url", "username", "password", mode="before")
    @classmethod
    def _strip_blank(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    @property
    def guard(self) -> timedelta:
        return timedelta(seconds=self.guard_window)


class IncomingConfig(AuthSettings):
    """Pull direction: read features from a remote layer."""

    url: str | None = Field(default=None, description="ArcGIS FeatureServer layer URL")
    query: str = Field(default=DEFAULT_QUERY, description="Where clause applied to the layer query")
    params: dict[str, str | int | float] = Field(default_factory=dict, description="Extra query parameters")
    timezone: str | None = Field(default=None, description="IANA zone used to format date fields")
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0)
    guard_window: float = Field(default=PULL_GUARD_WINDOW.total_seconds(), ge=0)

    @field_validator("url", "timezone", mode="before")
    @classmethod
    def _strip_blank_fields(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("query", mode="before")
    @classmethod
    def _default_query(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_QUERY
        return value


class OutgoingConfig(AuthSettings):
    """Push direction: create or update features on remote layers."""

    point_url: str | None = Field(default=None, description="Destination layer for Point features")
    linestring_url: str | None = Field(default=None, description="Destination layer for LineString features")
    polygon_url: str | None = Field(default=None, description="Destination layer for Polygon features")
    preserve_history: bool = Field(
        default=False,
        description="Always insert new rows instead of updating existing ones",
    )
    correlation_field: str = DEFAULT_CORRELATION_FIELD
    source_crs: str = DEFAULT_SOURCE_CRS
    target_wkid: int = DEFAULT_TARGET_WKID

    @field_validator("point_url", "linestring_url", "polygon_url", mode="before")
    @classmethod
    def _strip_blank_urls(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("source_crs")
    @classmethod
    def _known_crs(cls, value: str) -> str:
        try:
            CRS.from_user_input(value)
        except CRSError as exc:
            raise ValueError(f"unknown coordinate reference system {value!r}") from exc
        return value

    def url_for(self, kind: GeometryKind) -> str | None:
        return {
            GeometryKind.POINT: self.point_url,
            GeometryKind.LINESTRING: self.linestring_url,
            GeometryKind.POLYGON: self.polygon_url,
        }[kind]

    @property
    def has_destination(self) -> bool:
        return any((self.point_url, self.linestring_url, self.polygon_url))


class LayerConfig(BaseModel):
    """Per-layer settings supplied by the task host.

    Parameters
    ----------
    layer_id : str
        Host identifier of the layer; used in feature identifiers and to
        scope cached credentials.
    incoming : IncomingConfig
        Pull settings.
    outgoing : OutgoingConfig
        Push settings.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    layer_id: str
    incoming: IncomingConfig = Field(default_factory=IncomingConfig)
    outgoing: OutgoingConfig = Field(default_factory=OutgoingConfig)

    @field_validator("layer_id", mode="before")
    @classmethod
    def _layer_id_non_empty(cls, value: Any) -> str:
        layer_id = str(value).strip()
        if not layer_id:
            raise ValueError("layer_id must be non-empty")
        return layer_id

    @classmethod
    def from_env(cls, **overrides: Any) -> LayerConfig:
        """Create configuration from ``ARCGIS_*`` environment variables.

        Explicit keyword arguments override environment values.  Portal
        credentials apply to both directions.
        """
        env = os.environ

        shared: dict[str, Any] = {}
        for env_key, field_name in {
            "ARCGIS_PORTAL": "portal_url",
            "ARCGIS_USERNAME": "username",
            "ARCGIS_PASSWORD": "password",
        }.items():
            val = env.get(env_key)
            if val is not None:
                shared[field_name] = val

        incoming: dict[str, Any] = dict(shared)
        for env_key, field_name in {
            "ARCGIS_URL": "url",
            "ARCGIS_QUERY": "query",
            "ARCGIS_TIMEZONE": "timezone",
        }.items():
            val = env.get(env_key)
            if val is not None:
                incoming[field_name] = val

        params_env = env.get("ARCGIS_PARAMS")
        if params_env:
            incoming["params"] = json.loads(params_env)

        outgoing: dict[str, Any] = dict(shared)
        for env_key, field_name in {
            "ARCGIS_POINT_URL": "point_url",
            "ARCGIS_LINESTRING_URL": "linestring_url",
            "ARCGIS_POLYGON_URL": "polygon_url",
        }.items():
            val = env.get(env_key)
            if val is not None:
                outgoing[field_name] = val
        outgoing["preserve_history"] = _env_bool(env.get("ARCGIS_PRESERVE_HISTORY"), False)

        incoming.update(overrides.pop("incoming", None) or {})
        outgoing.update(overrides.pop("outgoing", None) or {})

        config_kwargs: dict[str, Any] = {
            "layer_id": env.get("ARCGIS_LAYER_ID", "0"),
            "incoming": IncomingConfig(**incoming),
            "outgoing": OutgoingConfig(**outgoing),
        }
        config_kwargs.update(overrides)
        return cls(**config_kwargs)


def config_schema(direction: str) -> dict[str, Any]:
    """JSON schema of the settings for one direction.

    Consumed by the host to validate user-facing configuration only.
    """
    if direction == "incoming":
        return IncomingConfig.model_json_schema()
    if direction == "outgoing":
        return OutgoingConfig.model_json_schema()
    raise ValueError(f"direction must be 'incoming' or 'outgoing', got {direction!r}")

"""GeoJSON feature models produced by the pull direction."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class GeometryKind(StrEnum):
    """Closed set of single-part geometry kinds the remote layers accept."""

    POINT = "Point"
    LINESTRING = "LineString"
    POLYGON = "Polygon"


class Geometry(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    type: str
    coordinates: Any = None


class Feature(BaseModel):
    """A normalized single-part feature.

    ``id`` has the form ``layer-<layerId>-<remoteId>[-<partIndex>]`` and
    ``properties`` is always ``{"metadata": <remote attributes>}``.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["Feature"] = "Feature"
    id: str
    properties: dict[str, Any] = Field(default_factory=dict)
    geometry: Geometry | None = None


class FeatureCollection(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: list[Feature] = Field(default_factory=list)

    def to_geojson(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

"""Geometry normalization.

Pull direction: split multi-part GeoJSON features into single-part features
with traceable identifiers.  Push direction: convert single-part GeoJSON
geometries to Esri JSON and reproject them point by point.
"""

from __future__ import annotations

import copy
import functools
import math
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

from pyproj import Transformer

from pyarcsync._constants import DATETIME_FORMAT, MS_THRESHOLD, MULTI_PREFIX
from pyarcsync.exceptions import ArcSyncUnsupportedGeometryError
from pyarcsync.models.feature import Feature, GeometryKind

Reprojector = Callable[[Sequence[float]], list[float]]
"""Pure per-point transform ``[x, y] -> [x, y]``."""


# ---------------------------------------------------------------------------
# Pull direction
# ---------------------------------------------------------------------------


def feature_id(layer_id: str, remote_id: Any, part: int | None = None) -> str:
    """Build ``layer-<layerId>-<remoteId>[-<part>]``."""
    base = f"layer-{layer_id}-{remote_id}"
    return base if part is None else f"{base}-{part}"


def _remote_id(raw: Mapping[str, Any]) -> Any:
    remote_id = raw.get("id")
    if remote_id is None:
        props = raw.get("properties") or {}
        remote_id = props.get("OBJECTID", props.get("objectid"))
    if remote_id is None:
        raise ValueError("feature has no id")
    return remote_id


def normalize_feature(raw: Mapping[str, Any], layer_id: str) -> list[Feature]:
    """Convert one remote feature into one or more single-part features.

    ``Multi*`` geometries yield one feature per coordinate group, suffixed
    with the zero-based part index.  Attributes are wrapped under
    ``metadata`` and shared by every part.  *raw* is not modified.
    """
    remote_id = _remote_id(raw)
    attributes = copy.deepcopy(dict(raw.get("properties") or {}))
    geometry = raw.get("geometry")

    gtype = geometry.get("type") if isinstance(geometry, Mapping) else None
    if not isinstance(gtype, str) or not gtype.startswith(MULTI_PREFIX):
        return [
            Feature(
                id=feature_id(layer_id, remote_id),
                properties={"metadata": attributes},
                geometry=copy.deepcopy(dict(geometry)) if isinstance(geometry, Mapping) else None,
            )
        ]

    single_type = gtype[len(MULTI_PREFIX) :]
    parts = geometry.get("coordinates") or []
    return [
        Feature(
            id=feature_id(layer_id, remote_id, index),
            properties={"metadata": copy.deepcopy(attributes)},
            geometry={"type": single_type, "coordinates": copy.deepcopy(part)},
        )
        for index, part in enumerate(parts)
    ]


def date_fields(schema: Mapping[str, Any]) -> frozenset[str]:
    """Names of properties a JSON schema marks as ``format: date-time``."""
    properties = schema.get("properties") or {}
    return frozenset(
        name
        for name, spec in properties.items()
        if isinstance(spec, Mapping) and spec.get("format") == "date-time"
    )


def parse_datetime_value(value: Any) -> datetime | None:
    """Parse epoch seconds, epoch milliseconds or ISO-8601 text into UTC."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text)
            except ValueError:
                return None
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    if isinstance(value, (int, float)):
        try:
            ts = float(value)
        except OverflowError:
            return None
        if not math.isfinite(ts):
            return None
        if abs(ts) >= MS_THRESHOLD:
            ts /= 1000.0
        try:
            return datetime.fromtimestamp(ts, tz=UTC)
        except (ValueError, OverflowError, OSError):
            return None
    return None


def format_datetime_fields(
    properties: Mapping[str, Any],
    fields: frozenset[str],
    timezone: str,
) -> dict[str, Any]:
    """Reformat *fields* as ``YYYY-MM-DD HH:MM <zone>`` in *timezone*.

    Values that are missing or cannot be parsed are left untouched.
    """
    zone = ZoneInfo(timezone)
    formatted = dict(properties)
    for name in fields:
        if name not in formatted:
            continue
        parsed = parse_datetime_value(formatted[name])
        if parsed is None:
            continue
        formatted[name] = parsed.astimezone(zone).strftime(DATETIME_FORMAT)
    return formatted


# ---------------------------------------------------------------------------
# Push direction
# ---------------------------------------------------------------------------


def geometry_kind(geometry: Mapping[str, Any]) -> GeometryKind:
    """Map a GeoJSON geometry onto the closed set of supported kinds."""
    gtype = geometry.get("type")
    try:
        return GeometryKind(gtype)
    except ValueError:
        raise ArcSyncUnsupportedGeometryError(gtype) from None


def _identity(point: Sequence[float]) -> list[float]:
    return [point[0], point[1]]


@functools.lru_cache(maxsize=32)
def _transformer(source: str, target: str) -> Transformer:
    return Transformer.from_crs(source, target, always_xy=True)


def pyproj_reprojector(source: str, target: str) -> Reprojector:
    """Build a point reprojector backed by a cached :class:`pyproj.Transformer`."""
    if source == target:
        return _identity
    transformer = _transformer(source, target)

    def _reproject(point: Sequence[float]) -> list[float]:
        x, y = transformer.transform(point[0], point[1])
        return [x, y]

    return _reproject


def _point(coordinates: Any, reproject: Reprojector) -> dict[str, Any]:
    x, y = reproject(coordinates)
    return {"x": x, "y": y}


def _linestring(coordinates: Any, reproject: Reprojector) -> dict[str, Any]:
    return {"paths": [[reproject(p) for p in coordinates]]}


def _polygon(coordinates: Any, reproject: Reprojector) -> dict[str, Any]:
    return {"rings": [[reproject(p) for p in ring] for ring in coordinates]}


_TO_ESRI: dict[GeometryKind, Callable[[Any, Reprojector], dict[str, Any]]] = {
    GeometryKind.POINT: _point,
    GeometryKind.LINESTRING: _linestring,
    GeometryKind.POLYGON: _polygon,
}


def project(
    geometry: Mapping[str, Any],
    source_crs: str,
    target_wkid: int,
    reprojector: Reprojector | None = None,
) -> dict[str, Any]:
    """Convert a GeoJSON geometry to reprojected Esri JSON.

    Point order and ring/path nesting are preserved exactly; rings are not
    closed and points are not deduplicated.

    Raises
    ------
    ArcSyncUnsupportedGeometryError
        The geometry is not a Point, LineString or Polygon.
    """
    kind = geometry_kind(geometry)
    reproject = reprojector or pyproj_reprojector(source_crs, f"EPSG:{target_wkid}")
    esri = _TO_ESRI[kind](geometry.get("coordinates"), reproject)
    esri["spatialReference"] = {"wkid": target_wkid}
    return esri

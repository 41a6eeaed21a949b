"""Data models for pyarcsync."""

from pyarcsync.models.feature import Feature, FeatureCollection, Geometry, GeometryKind
from pyarcsync.models.push import PushProperties, PushRecord, RecordOutcome, RecordStatus
from pyarcsync.models.token import AuthFailure, AuthResponse, AuthSuccess

__all__ = [
    "AuthFailure",
    "AuthResponse",
    "AuthSuccess",
    "Feature",
    "FeatureCollection",
    "Geometry",
    "GeometryKind",
    "PushProperties",
    "PushRecord",
    "RecordOutcome",
    "RecordStatus",
]

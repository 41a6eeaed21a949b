"""Custom exception hierarchy for pyarcsync."""

from __future__ import annotations

from typing import Any


class ArcSyncError(Exception):
    """Base exception for all pyarcsync errors."""


class ArcSyncConfigError(ArcSyncError):
    """Invalid or missing configuration (URL, credentials)."""


class ArcSyncAuthenticationError(ArcSyncError):
    """Token issuance failed or returned no usable token."""

    def __init__(self, message: str, *, reason: str = "") -> None:
        self.reason = reason
        super().__init__(message)


class ArcSyncTransportError(ArcSyncError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class ArcSyncRemoteError(ArcSyncTransportError):
    """The feature service answered 200 but embedded an error payload.

    Raised both for a top-level ``error`` object and for a failed
    per-feature edit result (``success: false``).  Callers treat it
    exactly like a transport failure.
    """

    def __init__(
        self,
        message: str,
        *,
        code: int | str | None = None,
        details: Any = None,
        url: str = "",
    ) -> None:
        self.code = code
        self.details = details
        super().__init__(message, status_code=200, url=url)


class ArcSyncUnsupportedGeometryError(ArcSyncError):
    """Geometry type outside Point, LineString and Polygon."""

    def __init__(self, geometry_type: str | None) -> None:
        self.geometry_type = geometry_type
        super().__init__(f"Unsupported geometry type: {geometry_type!r}")

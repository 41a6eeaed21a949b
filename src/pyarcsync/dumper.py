"""Remote read capability.

The pull pipeline only depends on :class:`FeatureDumper`; :class:`QueryDumper`
is the default implementation, paging through a layer's ``/query`` endpoint
as GeoJSON.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any, Protocol

from pyarcsync._constants import DEFAULT_PAGE_SIZE, DEFAULT_QUERY
from pyarcsync._transport import Transport
from pyarcsync.credentials import Credential

_logger = logging.getLogger(__name__)

_INTEGER_TYPES = frozenset(
    {
        "esriFieldTypeOID",
        "esriFieldTypeInteger",
        "esriFieldTypeSmallInteger",
        "esriFieldTypeBigInteger",
    }
)
_NUMBER_TYPES = frozenset({"esriFieldTypeDouble", "esriFieldTypeSingle"})
_DATE_TYPES = frozenset({"esriFieldTypeDate", "esriFieldTypeTimestampOffset"})


class FeatureDumper(Protocol):
    """Lazy, finite source of raw GeoJSON features.

    ``fetch()`` is exhausted on completion and raises on error.
    """

    async def schema(self) -> dict[str, Any]:
        ...

    def fetch(self) -> AsyncIterator[dict[str, Any]]:
        ...


def field_schema(field: Mapping[str, Any]) -> dict[str, Any]:
    """JSON schema fragment for one Esri field definition."""
    esri_type = field.get("type")
    if esri_type in _DATE_TYPES:
        spec: dict[str, Any] = {"type": "string", "format": "date-time"}
    elif esri_type in _INTEGER_TYPES:
        spec = {"type": "integer"}
    elif esri_type in _NUMBER_TYPES:
        spec = {"type": "number"}
    else:
        spec = {"type": "string"}
    alias = field.get("alias")
    if alias and alias != field.get("name"):
        spec["description"] = str(alias)
    return spec


class QueryDumper:
    """Page through ``<layer>/query`` until the server stops truncating."""

    def __init__(
        self,
        transport: Transport,
        url: str,
        *,
        query: str = DEFAULT_QUERY,
        params: Mapping[str, Any] | None = None,
        credential: Credential | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._transport = transport
        self._url = url.rstrip("/")
        self._query = query
        self._params = dict(params or {})
        self._credential = credential
        self._page_size = page_size

    async def schema(self) -> dict[str, Any]:
        layer = await self._transport.get_json(self._url, {}, self._credential)
        properties = {
            str(field["name"]): field_schema(field)
            for field in layer.get("fields") or []
            if isinstance(field, Mapping) and field.get("name")
        }
        return {"type": "object", "required": [], "properties": properties}

    async def fetch(self) -> AsyncIterator[dict[str, Any]]:
        offset = 0
        while True:
            page = await self._transport.get_json(
                f"{self._url}/query",
                {
                    "where": self._query,
                    "outFields": "*",
                    "returnGeometry": "true",
                    "outSR": "4326",
                    **self._params,
                    "resultOffset": offset,
                    "resultRecordCount": self._page_size,
                    "f": "geojson",
                },
                self._credential,
            )
            features = page.get("features") or []
            _logger.debug("Fetched %d features at offset %d from %s", len(features), offset, self._url)
            for feature in features:
                yield feature

            exceeded = page.get("exceededTransferLimit")
            if exceeded is None:
                exceeded = (page.get("properties") or {}).get("exceededTransferLimit")
            if not exceeded or not features:
                return
            offset += len(features)

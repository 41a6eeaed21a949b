"""Feature service query and edit endpoints.

Endpoints:
  - <layer>/query (returnIdsOnly)
  - <layer>/addFeatures
  - <layer>/updateFeatures
"""

from __future__ import annotations

import json
from typing import Any, NamedTuple

from pyarcsync._transport import Transport
from pyarcsync.credentials import Credential
from pyarcsync.exceptions import ArcSyncRemoteError


class RemoteRow(NamedTuple):
    object_id_field: str
    object_id: int


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _endpoint(layer_url: str, operation: str) -> str:
    return f"{layer_url.rstrip('/')}/{operation}"


async def query_correlation_id(
    transport: Transport,
    layer_url: str,
    *,
    field: str,
    value: str,
    credential: Credential | None = None,
) -> RemoteRow | None:
    """Return the row whose *field* equals *value*, if any."""
    url = _endpoint(layer_url, "query")
    body = await transport.post_form(
        url,
        {"where": f"{field}={_quote(value)}", "returnIdsOnly": "true"},
        credential,
    )
    ids = body.get("objectIds") or []
    if not ids:
        return None
    return RemoteRow(str(body.get("objectIdFieldName") or "OBJECTID"), int(ids[0]))


def _check_results(url: str, body: dict[str, Any], key: str) -> int | None:
    results = body.get(key)
    if not isinstance(results, list) or not results:
        raise ArcSyncRemoteError(f"{url} returned no {key}", url=url, details=body)
    result = results[0]
    error = result.get("error")
    if not result.get("success") or error:
        code = error.get("code") if isinstance(error, dict) else None
        description = error.get("description") if isinstance(error, dict) else error
        raise ArcSyncRemoteError(
            f"{url} rejected feature: {description or 'success=false'}",
            code=code,
            details=result,
            url=url,
        )
    object_id = result.get("objectId")
    return int(object_id) if object_id is not None else None


async def add_features(
    transport: Transport,
    layer_url: str,
    feature: dict[str, Any],
    credential: Credential | None = None,
) -> int | None:
    url = _endpoint(layer_url, "addFeatures")
    body = await transport.post_form(url, {"features": json.dumps([feature])}, credential)
    return _check_results(url, body, "addResults")


async def update_features(
    transport: Transport,
    layer_url: str,
    feature: dict[str, Any],
    credential: Credential | None = None,
) -> int | None:
    url = _endpoint(layer_url, "updateFeatures")
    body = await transport.post_form(url, {"features": json.dumps([feature])}, credential)
    return _check_results(url, body, "updateResults")

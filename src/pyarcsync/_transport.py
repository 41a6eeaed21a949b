"""HTTP transport for ArcGIS REST endpoints."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyarcsync._constants import USER_AGENT
from pyarcsync._redact import redact_for_log, redact_url
from pyarcsync.credentials import Credential
from pyarcsync.exceptions import ArcSyncRemoteError, ArcSyncTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Tests pass in-memory doubles; production uses :class:`ArcGISTransport`.
    """

    async def get_json(
        self,
        url: str,
        params: Mapping[str, Any],
        credential: Credential | None = None,
    ) -> dict[str, Any]:
        ...

    async def post_form(
        self,
        url: str,
        data: Mapping[str, Any],
        credential: Credential | None = None,
    ) -> dict[str, Any]:
        ...


def raise_for_error_payload(url: str, body: dict[str, Any]) -> None:
    """Raise :class:`ArcSyncRemoteError` when a 200 response embeds an error."""
    error = body.get("error")
    if not error:
        return
    if isinstance(error, dict):
        code = error.get("code")
        message = error.get("message") or error.get("description") or "unknown error"
        details = error.get("details")
    else:
        code = None
        message = str(error)
        details = None
    raise ArcSyncRemoteError(
        f"{url} returned error {code}: {message}",
        code=code,
        details=details,
        url=url,
    )


class ArcGISTransport:
    """aiohttp transport speaking the ArcGIS REST JSON conventions."""

    def __init__(self, http_session: aiohttp.ClientSession) -> None:
        self._http = http_session

    def _headers(self, credential: Credential | None) -> dict[str, str]:
        headers = {"accept": "application/json", "user-agent": USER_AGENT}
        if credential is not None:
            headers.update(credential.headers())
        return headers

    async def get_json(
        self,
        url: str,
        params: Mapping[str, Any],
        credential: Credential | None = None,
    ) -> dict[str, Any]:
        query = {"f": "json", **{k: str(v) for k, v in params.items()}}
        _logger.debug("GET %s params=%s", redact_url(url), redact_for_log(query))
        return await self._request("GET", url, credential, params=query)

    async def post_form(
        self,
        url: str,
        data: Mapping[str, Any],
        credential: Credential | None = None,
    ) -> dict[str, Any]:
        form = {"f": "json", **{k: str(v) for k, v in data.items()}}
        _logger.debug("POST %s data=%s", redact_url(url), redact_for_log(form))
        return await self._request("POST", url, credential, data=form)

    async def _request(
        self,
        method: str,
        url: str,
        credential: Credential | None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        try:
            async with self._http.request(method, url, headers=self._headers(credential), **kwargs) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise ArcSyncTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        url=url,
                    )
        except ArcSyncTransportError:
            raise
        except aiohttp.ClientError as exc:
            raise ArcSyncTransportError(f"Request to {url} failed: {exc}", url=url) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ArcSyncTransportError(f"Invalid JSON from {url}: {text[:200]}", url=url) from exc

        if not isinstance(body, dict):
            raise ArcSyncTransportError(f"Unexpected JSON document from {url}", url=url)

        raise_for_error_payload(url, body)
        return body

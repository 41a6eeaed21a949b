"""Token issuance.

Endpoints:
  - <portal>/sharing/rest/generateToken
  - <server>/tokens/generateToken
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlsplit

from pyarcsync._transport import Transport
from pyarcsync.exceptions import ArcSyncTransportError
from pyarcsync.models.token import AuthFailure, AuthResponse, AuthSuccess

_logger = logging.getLogger(__name__)


def token_endpoint(base_url: str, *, portal: bool) -> str:
    """Resolve the ``generateToken`` URL for a portal or a server URL."""
    url = base_url.rstrip("/")
    if portal:
        if url.endswith("/sharing/rest"):
            return f"{url}/generateToken"
        return f"{url}/sharing/rest/generateToken"
    marker = "/rest/services"
    index = url.find(marker)
    root = url[:index] if index >= 0 else url
    return f"{root}/tokens/generateToken"


def referer_for(base_url: str) -> str:
    """Origin of *base_url*; tokens are always issued for this referer."""
    parts = urlsplit(base_url)
    if not parts.scheme or not parts.netloc:
        return base_url
    return f"{parts.scheme}://{parts.netloc}"


def parse_token_response(body: dict[str, Any], referer: str) -> AuthResponse:
    """Turn a ``generateToken`` body into a tagged :data:`AuthResponse`."""
    token = body.get("token")
    expires = body.get("expires")
    if not token:
        return AuthFailure(reason="response carried no token")
    if not isinstance(expires, (int, float)):
        return AuthFailure(reason="response carried no expiry")
    return AuthSuccess(
        token=str(token),
        expires_at=datetime.fromtimestamp(expires / 1000, tz=UTC),
        referer=referer,
    )


async def issue_token(
    transport: Transport,
    *,
    base_url: str,
    portal: bool,
    username: str,
    password: str,
    expiration: int,
) -> AuthResponse:
    """Request a token.  Never raises for remote failures, returns :class:`AuthFailure`."""
    url = token_endpoint(base_url, portal=portal)
    referer = referer_for(base_url)
    form = {
        "username": username,
        "password": password,
        "referer": referer,
        "client": "referer",
        "expiration": expiration,
    }
    try:
        body = await transport.post_form(url, form)
    except ArcSyncTransportError as exc:
        _logger.debug("Token request to %s failed: %s", url, exc)
        return AuthFailure(reason=str(exc))
    return parse_token_response(body, referer)

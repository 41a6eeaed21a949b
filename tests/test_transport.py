from __future__ import annotations

from datetime import UTC, datetime

import pytest

from pyarcsync._api.token import parse_token_response, referer_for, token_endpoint
from pyarcsync._transport import raise_for_error_payload
from pyarcsync.exceptions import ArcSyncRemoteError, ArcSyncTransportError
from pyarcsync.models.token import AuthFailure, AuthSuccess


def test_error_payload_raises_remote_error() -> None:
    body = {"error": {"code": 498, "message": "Invalid token.", "details": []}}

    with pytest.raises(ArcSyncRemoteError) as exc_info:
        raise_for_error_payload("https://x/query", body)

    exc = exc_info.value
    assert exc.code == 498
    assert exc.url == "https://x/query"
    assert isinstance(exc, ArcSyncTransportError)


def test_empty_error_payload_is_ignored() -> None:
    raise_for_error_payload("https://x/query", {"error": {}, "features": []})
    raise_for_error_payload("https://x/query", {"features": []})


@pytest.mark.parametrize(
    ("base_url", "portal", "expected"),
    [
        ("https://www.arcgis.com", True, "https://www.arcgis.com/sharing/rest/generateToken"),
        ("https://gis.example.com/portal/", True, "https://gis.example.com/portal/sharing/rest/generateToken"),
        ("https://gis.example.com/portal/sharing/rest", True, "https://gis.example.com/portal/sharing/rest/generateToken"),
        (
            "https://gis.example.com/server/rest/services/Roads/FeatureServer/0",
            False,
            "https://gis.example.com/server/tokens/generateToken",
        ),
    ],
)
def test_token_endpoint(base_url: str, portal: bool, expected: str) -> None:
    assert token_endpoint(base_url, portal=portal) == expected


def test_referer_is_origin() -> None:
    assert referer_for("https://gis.example.com/portal/sharing") == "https://gis.example.com"


def test_parse_token_response_success() -> None:
    response = parse_token_response({"token": "abc", "expires": 1_767_225_600_000, "ssl": True}, "https://r")

    assert isinstance(response, AuthSuccess)
    assert response.ok is True
    assert response.token == "abc"
    assert response.expires_at == datetime(2026, 1, 1, tzinfo=UTC)
    assert response.referer == "https://r"


@pytest.mark.parametrize("body", [{}, {"token": ""}, {"token": "abc"}])
def test_parse_token_response_failure(body: dict[str, object]) -> None:
    response = parse_token_response(body, "https://r")

    assert isinstance(response, AuthFailure)
    assert response.ok is False
    assert response.reason

from __future__ import annotations

import json

from pyarcsync._redact import MASK, redact_for_log, redact_url
from pyarcsync.models.push import PushRecord


def test_generate_token_form_hides_password() -> None:
    form = {
        "f": "json",
        "username": "analyst",
        "password": "hunter2",
        "referer": "https://portal.example.com",
        "expiration": "1440",
    }

    redacted = redact_for_log(form)

    assert redacted["password"] == MASK
    assert redacted["username"] == "analyst"
    assert redacted["referer"] == "https://portal.example.com"


def test_token_query_parameter_is_masked_in_urls() -> None:
    url = "https://services.example.com/arcgis/rest/services/x/FeatureServer/0?token=abc123&f=json"

    masked = redact_url(url)

    assert "abc123" not in masked
    assert masked.startswith("https://services.example.com/arcgis/rest/services/x/FeatureServer/0?")
    assert "token=<redacted>" in masked
    assert "f=json" in masked
    assert redact_url("https://services.example.com/x/FeatureServer/0") == (
        "https://services.example.com/x/FeatureServer/0"
    )


def test_url_values_inside_mappings_are_masked() -> None:
    redacted = redact_for_log({"url": "https://h/x/FeatureServer/0?TOKEN=abc"})
    assert "abc" not in redacted["url"]


def test_queue_message_text_is_decoded_and_masked() -> None:
    message = json.dumps(
        {
            "id": "u-1",
            "geometry": {"type": "Point", "coordinates": [1, 2]},
            "properties": {"callsign": "Alpha", "token": "leaked"},
        }
    )

    for body in (message, message.encode("utf-8")):
        redacted = redact_for_log(body)
        assert redacted["id"] == "u-1"
        assert redacted["properties"]["token"] == MASK
        assert redacted["properties"]["callsign"] == "Alpha"


def test_non_json_text_and_binary_bodies() -> None:
    assert redact_for_log("{not json") == "{not json"
    assert redact_for_log(b"\xff\xfe") == "<bytes:2b>"


def test_push_record_is_redacted_by_field() -> None:
    record = PushRecord(id="u-1", geometry={"type": "Point", "coordinates": [1, 2]})

    redacted = redact_for_log(record)

    assert redacted["id"] == "u-1"
    assert redacted["properties"]["callsign"] == "Unknown"


def test_long_strings_are_truncated() -> None:
    redacted = redact_for_log({"features": "x" * 600}, max_string=10)
    assert redacted["features"] == "x" * 10 + "…<truncated>"

"""Secret masking for DEBUG and failure logs.

Tokens travel as headers, as ``generateToken`` responses and sometimes as a
``?token=`` query parameter pasted into a layer URL.  Passwords only travel
in the ``generateToken`` form.  Queue messages arrive as JSON text, so those
are decoded and masked field by field before they are logged.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import BaseModel

MASK = "<redacted>"

_SECRET_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "token",
        "authorization",
        "x-esri-authorization",
        "cookie",
    }
)
_MAX_DEPTH = 20


def _is_secret(key: Any) -> bool:
    return str(key).lower() in _SECRET_KEYS


def redact_url(url: str) -> str:
    """Mask secret query parameters in *url*, leaving everything else intact."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    pairs = parse_qsl(parts.query, keep_blank_values=True)
    if not any(_is_secret(key) for key, _ in pairs):
        return url
    masked = [(key, MASK if _is_secret(key) else value) for key, value in pairs]
    return urlunsplit(parts._replace(query=urlencode(masked, safe="<>")))


def _redact_text(text: str, max_string: int, depth: int) -> Any:
    stripped = text.lstrip()
    if stripped[:1] in ("{", "["):
        try:
            decoded = json.loads(text)
        except ValueError:
            pass
        else:
            return _redact(decoded, max_string, depth)
    if "://" in text and "?" in text:
        text = redact_url(text)
    if len(text) > max_string:
        return f"{text[:max_string]}…<truncated>"
    return text


def _redact(value: Any, max_string: int, depth: int) -> Any:
    if depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, BaseModel):
        return _redact(value.model_dump(mode="json"), max_string, depth + 1)
    if isinstance(value, str):
        return _redact_text(value, max_string, depth + 1)
    if isinstance(value, (bytes, bytearray)):
        try:
            return _redact_text(bytes(value).decode("utf-8"), max_string, depth + 1)
        except UnicodeDecodeError:
            return f"<bytes:{len(value)}b>"
    if isinstance(value, Mapping):
        return {
            str(key): MASK if _is_secret(key) else _redact(item, max_string, depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, Sequence):
        return [_redact(item, max_string, depth + 1) for item in value]
    return f"<{type(value).__name__}>"


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Return a copy of *value* with secrets masked and long strings cut.

    Accepts request forms and query mappings, URLs, queue message bodies
    (JSON text, bytes or decoded dicts) and pydantic models.
    """
    return _redact(value, max_string, 0)

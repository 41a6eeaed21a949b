"""Credential state for authenticated feature-service calls.

A :class:`Credential` is immutable; refreshing replaces it wholesale in the
:class:`CredentialStore`, which is the only mutable state shared between
concurrent operations of a layer.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from pathlib import Path
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, field_validator

_logger = logging.getLogger(__name__)


class Direction(StrEnum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"


class CredentialScope(NamedTuple):
    """Credentials are never shared across layers or directions."""

    layer_id: str
    direction: Direction

    def key(self) -> str:
        return f"{self.layer_id}:{self.direction.value}"

    @classmethod
    def from_key(cls, key: str) -> CredentialScope:
        layer_id, _, direction = key.rpartition(":")
        return cls(layer_id, Direction(direction))


class Credential(BaseModel):
    """Access token with its expiry and paired referer.

    Parameters
    ----------
    token : str
        Access token; empty for anonymous access.
    expires_at : datetime or None
        UTC instant after which the server rejects the token.
    referer : str or None
        Referer the token was issued for.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    token: str = ""
    expires_at: datetime | None = None
    referer: str | None = None

    @field_validator("expires_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @classmethod
    def anonymous(cls) -> Credential:
        return cls()

    @property
    def is_anonymous(self) -> bool:
        return not self.token

    def remaining(self, now: datetime) -> timedelta | None:
        if self.expires_at is None:
            return None
        return self.expires_at - now

    def is_usable(self, now: datetime, guard: timedelta) -> bool:
        """Whether the token can be used without refreshing first.

        A token without its referer, or expiring within *guard* of *now*,
        is not usable.
        """
        if not self.token or not self.referer:
            return False
        remaining = self.remaining(now)
        return remaining is not None and remaining > guard

    def headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        headers = {"X-Esri-Authorization": f"Bearer {self.token}"}
        if self.referer:
            headers["Referer"] = self.referer
        return headers


class CredentialStore:
    """In-memory credential cache keyed by :class:`CredentialScope`.

    Subclasses override :meth:`_persist` to write the cache to durable
    layer state so later invocations reuse the token.
    """

    def __init__(self, initial: dict[CredentialScope, Credential] | None = None) -> None:
        self._credentials: dict[CredentialScope, Credential] = dict(initial or {})

    def get(self, scope: CredentialScope) -> Credential | None:
        return self._credentials.get(scope)

    async def save(self, scope: CredentialScope, credential: Credential) -> None:
        self._credentials[scope] = credential
        await self._persist()

    def snapshot(self) -> dict[str, dict[str, Any]]:
        return {scope.key(): cred.model_dump(mode="json") for scope, cred in self._credentials.items()}

    async def _persist(self) -> None:
        return None


class JsonFileCredentialStore(CredentialStore):
    """Credential store persisted to a JSON file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        super().__init__(self._load())

    def _load(self) -> dict[CredentialScope, Credential]:
        if not self._path.exists():
            return {}
        raw = json.loads(self._path.read_text(encoding="utf-8"))
        loaded: dict[CredentialScope, Credential] = {}
        for key, value in raw.items():
            try:
                loaded[CredentialScope.from_key(key)] = Credential.model_validate(value)
            except ValueError:
                _logger.warning("Ignoring unreadable cached credential %s", key)
        return loaded

    def _write(self, text: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(text, encoding="utf-8")
        tmp.replace(self._path)

    async def _persist(self) -> None:
        text = json.dumps(self.snapshot(), indent=2, sort_keys=True)
        await asyncio.get_running_loop().run_in_executor(None, self._write, text)

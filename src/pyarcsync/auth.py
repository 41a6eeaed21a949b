"""Just-in-time token refresh shared by the pull and push pipelines."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from pyarcsync._api.token import issue_token
from pyarcsync._transport import Transport
from pyarcsync.config import AuthSettings
from pyarcsync.credentials import Credential, CredentialScope, CredentialStore, Direction
from pyarcsync.exceptions import ArcSyncAuthenticationError, ArcSyncConfigError
from pyarcsync.models.token import AuthFailure

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AuthCache:
    """Hand out usable credentials, refreshing them at most once at a time.

    Each (layer, direction) scope has its own lock.  Concurrent callers of
    the same scope wait for the refresh in flight and then reuse the value
    it saved instead of issuing their own token request.
    """

    def __init__(
        self,
        store: CredentialStore,
        transport: Transport,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._transport = transport
        self._clock = clock
        self._locks: dict[CredentialScope, asyncio.Lock] = {}

    @property
    def store(self) -> CredentialStore:
        return self._store

    def _lock(self, scope: CredentialScope) -> asyncio.Lock:
        lock = self._locks.get(scope)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[scope] = lock
        return lock

    async def ensure_credential(
        self,
        layer_id: str,
        direction: Direction,
        settings: AuthSettings,
        *,
        guard_window: timedelta | None = None,
        fallback_url: str | None = None,
    ) -> Credential:
        """Return a credential valid for at least *guard_window*.

        Parameters
        ----------
        layer_id, direction
            Scope of the cached credential.
        settings
            Portal credentials for the direction.
        guard_window
            Minimum remaining validity; defaults to ``settings.guard``.
        fallback_url
            Server URL used to issue tokens when no portal is configured.

        Raises
        ------
        ArcSyncAuthenticationError
            Token issuance failed.
        ArcSyncConfigError
            Credentials are configured but there is nowhere to send them.
        """
        scope = CredentialScope(layer_id, direction)
        guard = settings.guard if guard_window is None else guard_window

        if not settings.has_credentials:
            existing = self._store.get(scope)
            if existing is not None:
                return existing
            _logger.debug("No credentials configured for %s; proceeding anonymously", scope.key())
            return Credential.anonymous()

        existing = self._store.get(scope)
        if existing is not None and existing.is_usable(self._clock(), guard):
            return existing

        async with self._lock(scope):
            # Another waiter may have refreshed while we were queued.
            existing = self._store.get(scope)
            if existing is not None and existing.is_usable(self._clock(), guard):
                return existing
            credential = await self._refresh(settings, fallback_url)
            await self._store.save(scope, credential)
            _logger.info("Refreshed token for %s (expires %s)", scope.key(), credential.expires_at)
            return credential

    async def _refresh(self, settings: AuthSettings, fallback_url: str | None) -> Credential:
        base_url = settings.portal_url or fallback_url
        if not base_url:
            raise ArcSyncConfigError("Credentials configured without a portal or service URL")
        assert settings.username is not None and settings.password is not None  # noqa: S101

        response = await issue_token(
            self._transport,
            base_url=base_url,
            portal=settings.portal_url is not None,
            username=settings.username,
            password=settings.password,
            expiration=settings.token_expiration,
        )
        if isinstance(response, AuthFailure):
            raise ArcSyncAuthenticationError(f"Token request failed: {response.reason}", reason=response.reason)
        return Credential(token=response.token, expires_at=response.expires_at, referer=response.referer)

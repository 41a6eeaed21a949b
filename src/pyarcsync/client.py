"""High-level async client tying one layer's pipelines together."""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum
from typing import Any

import aiohttp

from pyarcsync._transport import ArcGISTransport, Transport
from pyarcsync.auth import AuthCache
from pyarcsync.config import LayerConfig, config_schema
from pyarcsync.credentials import Credential, CredentialStore, Direction
from pyarcsync.exceptions import ArcSyncError
from pyarcsync.geometry import Reprojector
from pyarcsync.models.feature import FeatureCollection
from pyarcsync.models.push import RecordOutcome
from pyarcsync.pipelines.pull import DumperFactory, PullPipeline, Submit
from pyarcsync.pipelines.push import PushMessage, PushPipeline


class SchemaType(StrEnum):
    INPUT = "input"
    OUTPUT = "output"


class ArcSyncClient:
    """Async client for one configured layer.

    Usage::

        async with ArcSyncClient(layer) as client:
            collection = await client.pull()
            outcomes = await client.push(messages)
    """

    def __init__(
        self,
        layer: LayerConfig,
        *,
        store: CredentialStore | None = None,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        reprojector: Reprojector | None = None,
        dumper_factory: DumperFactory | None = None,
    ) -> None:
        self._layer = layer
        self._store = store if store is not None else CredentialStore()
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._external_transport = transport is not None
        self._reprojector = reprojector
        self._dumper_factory = dumper_factory
        self._auth: AuthCache | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ArcSyncClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = ArcGISTransport(self._http_session)
        self._auth = AuthCache(self._store, self._transport)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None
        self._auth = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_auth(self) -> tuple[AuthCache, Transport]:
        if self._auth is None or self._transport is None:
            raise ArcSyncError("Client not initialized. Use 'async with ArcSyncClient(...) as client:'")
        return self._auth, self._transport

    @property
    def layer(self) -> LayerConfig:
        return self._layer

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def ensure_credential(self, direction: Direction) -> Credential:
        auth, _ = self._require_auth()
        settings = self._layer.incoming if direction == Direction.INCOMING else self._layer.outgoing
        fallback = (
            self._layer.incoming.url
            if direction == Direction.INCOMING
            else self._layer.outgoing.point_url
            or self._layer.outgoing.linestring_url
            or self._layer.outgoing.polygon_url
        )
        return await auth.ensure_credential(self._layer.layer_id, direction, settings, fallback_url=fallback)

    def pull_pipeline(self, submit: Submit | None = None) -> PullPipeline:
        auth, transport = self._require_auth()
        return PullPipeline(
            self._layer,
            auth,
            transport,
            dumper_factory=self._dumper_factory,
            submit=submit,
        )

    def push_pipeline(self) -> PushPipeline:
        auth, transport = self._require_auth()
        return PushPipeline(self._layer, auth, transport, reprojector=self._reprojector)

    async def pull(self, submit: Submit | None = None) -> FeatureCollection:
        """Fetch and normalize every feature of the incoming layer."""
        return await self.pull_pipeline(submit).run()

    async def push(self, batch: Sequence[PushMessage]) -> list[RecordOutcome]:
        """Insert or update each record of *batch* on the outgoing layers."""
        return await self.push_pipeline().run(batch)

    async def schema(self, kind: SchemaType = SchemaType.INPUT) -> dict[str, Any]:
        """Configuration schema (input) or remote property schema (output)."""
        if kind == SchemaType.INPUT:
            return {
                "type": "object",
                "properties": {
                    Direction.INCOMING.value: config_schema(Direction.INCOMING),
                    Direction.OUTGOING.value: config_schema(Direction.OUTGOING),
                },
            }

        return await self.pull_pipeline().schema()

"""Pull pipeline: remote layer -> normalized feature collection."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

from pyarcsync._transport import Transport
from pyarcsync.auth import AuthCache
from pyarcsync.config import LayerConfig
from pyarcsync.credentials import Credential, Direction
from pyarcsync.dumper import FeatureDumper, QueryDumper
from pyarcsync.exceptions import ArcSyncConfigError
from pyarcsync.geometry import date_fields, format_datetime_fields, normalize_feature
from pyarcsync.models.feature import Feature, FeatureCollection

_logger = logging.getLogger(__name__)

DumperFactory = Callable[[Credential], FeatureDumper]
Submit = Callable[[FeatureCollection], Awaitable[None]]


class PullState(StrEnum):
    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    STREAMING = "streaming"
    AGGREGATING = "aggregating"
    DONE = "done"
    FAILED = "failed"


class PullPipeline:
    """Read every feature of a layer and hand one collection to the host.

    Any error aborts the run: the pipeline moves to ``FAILED``, the error
    propagates and nothing is submitted.
    """

    def __init__(
        self,
        layer: LayerConfig,
        auth: AuthCache,
        transport: Transport,
        *,
        dumper_factory: DumperFactory | None = None,
        submit: Submit | None = None,
    ) -> None:
        self._layer = layer
        self._auth = auth
        self._transport = transport
        self._dumper_factory = dumper_factory or self._query_dumper
        self._submit = submit
        self.state = PullState.IDLE

    def _query_dumper(self, credential: Credential) -> FeatureDumper:
        incoming = self._layer.incoming
        assert incoming.url is not None  # noqa: S101
        return QueryDumper(
            self._transport,
            incoming.url,
            query=incoming.query,
            params=incoming.params,
            credential=credential,
            page_size=incoming.page_size,
        )

    def _require_url(self) -> str:
        if not self._layer.incoming.url:
            raise ArcSyncConfigError("No ArcGIS URL provided")
        return self._layer.incoming.url

    async def _authenticate(self) -> Credential:
        return await self._auth.ensure_credential(
            self._layer.layer_id,
            Direction.INCOMING,
            self._layer.incoming,
            fallback_url=self._require_url(),
        )

    async def schema(self) -> dict[str, Any]:
        """Property schema of the remote layer."""
        self._require_url()
        credential = await self._authenticate()
        return await self._dumper_factory(credential).schema()

    async def run(self) -> FeatureCollection:
        incoming = self._layer.incoming
        self._require_url()

        try:
            self.state = PullState.AUTHENTICATING
            credential = await self._authenticate()
            dumper = self._dumper_factory(credential)

            timezone = incoming.timezone
            fields: frozenset[str] = frozenset()
            if timezone:
                fields = date_fields(await dumper.schema())

            self.state = PullState.STREAMING
            features: list[Feature] = []
            async for raw in dumper.fetch():
                if fields and timezone:
                    properties = format_datetime_fields(raw.get("properties") or {}, fields, timezone)
                    raw = {**raw, "properties": properties}
                features.extend(normalize_feature(raw, self._layer.layer_id))

            self.state = PullState.AGGREGATING
            collection = FeatureCollection(features=features)
            _logger.info("ok - obtained %d features for layer %s", len(features), self._layer.layer_id)
            if self._submit is not None:
                await self._submit(collection)
        except Exception:
            self.state = PullState.FAILED
            raise

        self.state = PullState.DONE
        return collection

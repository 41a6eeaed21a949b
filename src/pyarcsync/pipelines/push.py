"""Push pipeline: change records -> remote inserts/updates.

Every record is processed in its own task that returns a
:class:`~pyarcsync.models.push.RecordOutcome` and never raises, so one bad
record cannot prevent its siblings from completing.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from pyproj.exceptions import CRSError

from pyarcsync._api.features import add_features, query_correlation_id, update_features
from pyarcsync._redact import redact_for_log
from pyarcsync._transport import Transport
from pyarcsync.auth import AuthCache
from pyarcsync.config import LayerConfig
from pyarcsync.credentials import Credential, Direction
from pyarcsync.exceptions import ArcSyncConfigError, ArcSyncUnsupportedGeometryError
from pyarcsync.geometry import Reprojector, geometry_kind, project, pyproj_reprojector
from pyarcsync.models.push import PushRecord, RecordOutcome, RecordStatus

_logger = logging.getLogger(__name__)

PushMessage = PushRecord | str | bytes | dict[str, Any]


class PushPipeline:
    """Create or update remote features for a batch of change records."""

    def __init__(
        self,
        layer: LayerConfig,
        auth: AuthCache,
        transport: Transport,
        *,
        reprojector: Reprojector | None = None,
    ) -> None:
        self._layer = layer
        self._auth = auth
        self._transport = transport
        self._reprojector = reprojector

    async def run(self, batch: Sequence[PushMessage]) -> list[RecordOutcome]:
        """Process *batch* and return one outcome per message, in batch order.

        Raises only for batch-level problems (no destination configured,
        token issuance failure); record failures are logged and reported
        as ``FAILED`` outcomes.
        """
        outgoing = self._layer.outgoing
        if not outgoing.has_destination:
            raise ArcSyncConfigError("No ArcGIS destination URL provided")

        credential = await self._auth.ensure_credential(
            self._layer.layer_id,
            Direction.OUTGOING,
            outgoing,
            fallback_url=outgoing.point_url or outgoing.linestring_url or outgoing.polygon_url,
        )
        reprojector = self._reprojector or self._default_reprojector()

        tasks = [asyncio.create_task(self._process(message, credential, reprojector)) for message in batch]
        outcomes: list[RecordOutcome] = await asyncio.gather(*tasks)

        failed = sum(1 for outcome in outcomes if not outcome.ok)
        _logger.info("Processed %d records for layer %s (%d failed)", len(outcomes), self._layer.layer_id, failed)
        return outcomes

    def _default_reprojector(self) -> Reprojector:
        outgoing = self._layer.outgoing
        try:
            return pyproj_reprojector(outgoing.source_crs, f"EPSG:{outgoing.target_wkid}")
        except CRSError as exc:
            raise ArcSyncConfigError(
                f"Cannot reproject {outgoing.source_crs} to EPSG:{outgoing.target_wkid}: {exc}"
            ) from exc

    async def acknowledge(self, batch: Sequence[PushMessage]) -> bool:
        """Host-facing entry point: ``True`` once the whole batch was attempted."""
        await self.run(batch)
        return True

    async def _process(
        self,
        message: PushMessage,
        credential: Credential,
        reprojector: Reprojector,
    ) -> RecordOutcome:
        record_id: str | None = None
        try:
            record = message if isinstance(message, PushRecord) else PushRecord.from_message(message)
            record_id = record.id
            return await self._apply(record, credential, reprojector)
        except Exception as exc:
            _logger.exception("Failed to push record %s; message=%s", record_id, redact_for_log(message))
            return RecordOutcome(record_id=record_id, status=RecordStatus.FAILED, error=str(exc))

    async def _apply(
        self,
        record: PushRecord,
        credential: Credential,
        reprojector: Reprojector,
    ) -> RecordOutcome:
        outgoing = self._layer.outgoing
        try:
            kind = geometry_kind(record.geometry)
        except ArcSyncUnsupportedGeometryError:
            _logger.warning("Skipping record %s: unsupported geometry %s", record.id, record.geometry_type)
            return RecordOutcome(record_id=record.id, status=RecordStatus.SKIPPED)

        url = outgoing.url_for(kind)
        if not url:
            _logger.warning("Skipping record %s: no destination for %s", record.id, kind.value)
            return RecordOutcome(record_id=record.id, status=RecordStatus.SKIPPED)

        feature: dict[str, Any] = {
            "attributes": self._attributes(record),
            "geometry": project(record.geometry, outgoing.source_crs, outgoing.target_wkid, reprojector),
        }

        if outgoing.preserve_history:
            object_id = await add_features(self._transport, url, feature, credential)
            _logger.info("Inserted record %s (objectId=%s)", record.id, object_id)
            return RecordOutcome(record_id=record.id, status=RecordStatus.INSERTED, object_id=object_id)

        existing = await query_correlation_id(
            self._transport,
            url,
            field=outgoing.correlation_field,
            value=record.id,
            credential=credential,
        )
        if existing is None:
            object_id = await add_features(self._transport, url, feature, credential)
            _logger.info("Inserted record %s (objectId=%s)", record.id, object_id)
            return RecordOutcome(record_id=record.id, status=RecordStatus.INSERTED, object_id=object_id)

        feature["attributes"][existing.object_id_field] = existing.object_id
        await update_features(self._transport, url, feature, credential)
        _logger.info("Updated record %s (objectId=%s)", record.id, existing.object_id)
        return RecordOutcome(record_id=record.id, status=RecordStatus.UPDATED, object_id=existing.object_id)

    def _attributes(self, record: PushRecord) -> dict[str, Any]:
        props = record.properties
        return {
            self._layer.outgoing.correlation_field: record.id,
            "callsign": props.callsign,
            "remarks": props.remarks,
            "type": props.type,
            "how": props.how,
            "time": props.time,
            "start": props.start,
            "stale": props.stale,
        }

"""Entry points invoked by the external task host."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from pyarcsync.client import ArcSyncClient, SchemaType
from pyarcsync.config import LayerConfig
from pyarcsync.credentials import CredentialStore
from pyarcsync.models.feature import FeatureCollection


class SyncHost(Protocol):
    """What the task host provides: layer configuration and a sink."""

    async def layer(self) -> LayerConfig:
        ...

    async def submit(self, collection: FeatureCollection) -> None:
        ...


def queue_messages(event: Mapping[str, Any]) -> list[Any]:
    """Extract message bodies from a queue delivery (``{"Records": [...]}``)."""
    return [record.get("body") for record in event.get("Records") or []]


async def handler(
    event: Mapping[str, Any] | None,
    host: SyncHost,
    *,
    store: CredentialStore | None = None,
    **client_kwargs: Any,
) -> Any:
    """Dispatch one host invocation.

    * ``{"type": "schema:input"}`` -> configuration schema
    * ``{"type": "schema:output"}`` -> remote layer property schema
    * ``{"Records": [...]}`` -> push batch, returns ``True``
    * anything else -> pull and submit the collection
    """
    event = event or {}
    layer = await host.layer()

    async with ArcSyncClient(layer, store=store, **client_kwargs) as client:
        event_type = event.get("type")
        if event_type == "schema:input":
            return await client.schema(SchemaType.INPUT)
        if event_type == "schema:output":
            return await client.schema(SchemaType.OUTPUT)
        if "Records" in event:
            return await client.push_pipeline().acknowledge(queue_messages(event))

        await client.pull(host.submit)
        return None

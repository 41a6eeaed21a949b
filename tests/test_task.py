from __future__ import annotations

import json
from collections.abc import AsyncIterator, Sequence
from typing import Any

import pytest

from pyarcsync.client import ArcSyncClient, SchemaType
from pyarcsync.config import IncomingConfig, LayerConfig, OutgoingConfig
from pyarcsync.credentials import Credential, Direction
from pyarcsync.exceptions import ArcSyncError
from pyarcsync.models.feature import FeatureCollection
from pyarcsync.task import handler, queue_messages

URL = "https://services.example.com/arcgis/rest/services/Sites/FeatureServer/0"


class _Host:
    def __init__(self, layer: LayerConfig) -> None:
        self._layer = layer
        self.submitted: list[FeatureCollection] = []

    async def layer(self) -> LayerConfig:
        return self._layer

    async def submit(self, collection: FeatureCollection) -> None:
        self.submitted.append(collection)


class _Server:
    def __init__(self) -> None:
        self.posts: list[str] = []

    async def get_json(self, url: str, params: dict[str, Any], credential: Credential | None = None) -> dict[str, Any]:
        if url.endswith("/query"):
            return {"features": [{"id": 5, "properties": {}, "geometry": {"type": "Point", "coordinates": [1, 2]}}]}
        return {"fields": [{"name": "name", "type": "esriFieldTypeString"}]}

    async def post_form(self, url: str, data: dict[str, Any], credential: Credential | None = None) -> dict[str, Any]:
        self.posts.append(url)
        if url.endswith("/query"):
            return {"objectIds": []}
        return {"addResults": [{"objectId": 1, "success": True}]}


def _identity(point: Sequence[float]) -> list[float]:
    return [point[0], point[1]]


def _layer() -> LayerConfig:
    return LayerConfig(
        layer_id="7",
        incoming=IncomingConfig(url=URL),
        outgoing=OutgoingConfig(point_url=URL),
    )


@pytest.mark.asyncio
async def test_default_event_pulls_and_submits() -> None:
    host = _Host(_layer())

    result = await handler({}, host, transport=_Server())

    assert result is None
    assert len(host.submitted) == 1
    assert host.submitted[0].to_geojson()["features"] == [
        {
            "type": "Feature",
            "id": "layer-7-5",
            "properties": {"metadata": {}},
            "geometry": {"type": "Point", "coordinates": [1, 2]},
        }
    ]


@pytest.mark.asyncio
async def test_queue_event_pushes_and_acknowledges() -> None:
    host = _Host(_layer())
    server = _Server()
    body = json.dumps({"id": "uid-1", "geometry": {"type": "Point", "coordinates": [0, 0]}, "properties": {}})
    event = {"Records": [{"body": body}, {"body": "garbage"}]}

    result = await handler(event, host, transport=server, reprojector=_identity)

    assert result is True
    assert server.posts == [f"{URL}/query", f"{URL}/addFeatures"]
    assert host.submitted == []


@pytest.mark.asyncio
async def test_schema_events() -> None:
    host = _Host(_layer())

    input_schema = await handler({"type": "schema:input"}, host, transport=_Server())
    output_schema = await handler({"type": "schema:output"}, host, transport=_Server())

    assert set(input_schema["properties"]) == {"incoming", "outgoing"}
    assert output_schema["properties"] == {"name": {"type": "string"}}


def test_queue_messages_extracts_bodies() -> None:
    assert queue_messages({"Records": [{"body": "a"}, {"body": "b"}]}) == ["a", "b"]
    assert queue_messages({}) == []


@pytest.mark.asyncio
async def test_client_requires_context_manager() -> None:
    client = ArcSyncClient(_layer(), transport=_Server())

    with pytest.raises(ArcSyncError):
        await client.schema(SchemaType.OUTPUT)


@pytest.mark.asyncio
async def test_client_ensure_credential_is_anonymous_without_credentials() -> None:
    async with ArcSyncClient(_layer(), transport=_Server()) as client:
        credential = await client.ensure_credential(Direction.OUTGOING)

    assert credential.is_anonymous

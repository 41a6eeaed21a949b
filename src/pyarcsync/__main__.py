"""Run a one-shot pull configured from ``ARCGIS_*`` environment variables."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys

from pyarcsync.config import LayerConfig
from pyarcsync.credentials import JsonFileCredentialStore
from pyarcsync.models.feature import FeatureCollection
from pyarcsync.task import handler


class StdoutHost:
    """Host that prints the collection instead of forwarding it."""

    def __init__(self, layer: LayerConfig) -> None:
        self._layer = layer

    async def layer(self) -> LayerConfig:
        return self._layer

    async def submit(self, collection: FeatureCollection) -> None:
        json.dump(collection.to_geojson(), sys.stdout)
        sys.stdout.write("\n")


def main() -> None:
    logging.basicConfig(level=os.environ.get("ARCSYNC_LOG_LEVEL", "INFO"), stream=sys.stderr)
    store = JsonFileCredentialStore(os.environ.get("ARCSYNC_CREDENTIALS", ".arcsync-credentials.json"))
    asyncio.run(handler({}, StdoutHost(LayerConfig.from_env()), store=store))


if __name__ == "__main__":
    main()

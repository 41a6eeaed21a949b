#!/usr/bin/env python3
"""Push GeoJSON features to the configured ArcGIS layers.

Reads a GeoJSON FeatureCollection (or newline-delimited features) and runs
them through the push pipeline, printing one outcome per record.

Usage
-----
Set environment variables and run::

    export ARCGIS_PORTAL="https://www.arcgis.com"
    export ARCGIS_USERNAME="you"
    export ARCGIS_PASSWORD="your-password"
    export ARCGIS_POINT_URL="https://services.arcgis.com/.../FeatureServer/0"
    python scripts/push_features.py features.geojson

Options::

    --preserve-history   Always insert instead of updating
    --json               Output outcomes as machine-readable JSON
    --verbose            Enable DEBUG logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyarcsync import ArcSyncClient, LayerConfig, RecordStatus  # noqa: E402


def _load_messages(path: Path) -> list[Any]:
    text = path.read_text(encoding="utf-8").strip()
    if text.startswith("{"):
        try:
            document = json.loads(text)
        except json.JSONDecodeError:
            document = None
        if isinstance(document, dict) and document.get("type") == "FeatureCollection":
            return list(document.get("features") or [])
        if isinstance(document, dict):
            return [document]
    return [line for line in text.splitlines() if line.strip()]


async def _run(args: argparse.Namespace) -> int:
    overrides: dict[str, Any] = {}
    if args.preserve_history:
        overrides["outgoing"] = {"preserve_history": True}
    layer = LayerConfig.from_env(**overrides)
    messages = _load_messages(Path(args.path))

    async with ArcSyncClient(layer) as client:
        outcomes = await client.push(messages)

    if args.json:
        json.dump([o.model_dump(mode="json") for o in outcomes], sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        for outcome in outcomes:
            detail = outcome.error or (f"objectId={outcome.object_id}" if outcome.object_id is not None else "")
            print(f"{outcome.status.value:>8}  {outcome.record_id or '<unparsed>'}  {detail}")

    return 1 if any(o.status == RecordStatus.FAILED for o in outcomes) else 0


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("path", help="GeoJSON FeatureCollection or newline-delimited features")
    parser.add_argument("--preserve-history", action="store_true")
    parser.add_argument("--json", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, stream=sys.stderr)
    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()

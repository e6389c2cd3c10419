"""Pytest configuration and shared schema fixtures."""
from __future__ import annotations

import io
import json
import sys
import zipfile
from pathlib import Path
from typing import Dict

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

PLAYER_REQUEST = {
    "type": "object",
    "required": ["target_id", "request_type", "date"],
    "properties": {
        "target_id": {"type": "string"},
        "request_type": {"type": "string"},
        "date": {"type": "string"},
    },
}

INVENTORY_ITEM = {
    "type": "object",
    "required": ["item_id", "quantity"],
    "properties": {
        "item_id": {"type": "string"},
        "quantity": {"type": "number"},
        "attributes": {"type": "object"},
    },
}


def write_schema(root: Path, relative: str, document) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(document, str):
        path.write_text(document, encoding="utf-8")
    else:
        path.write_text(json.dumps(document), encoding="utf-8")
    return path


def zip_archive(entries: Dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def schema_tree(tmp_path: Path) -> Path:
    """A local schema root holding two ``bees/v1`` schemas."""

    write_schema(tmp_path, "bees/v1/player/player_request.json", PLAYER_REQUEST)
    write_schema(tmp_path, "bees/v1/inventory/inventory_item.json", INVENTORY_ITEM)
    return tmp_path


@pytest.fixture
def asset_table() -> Dict[str, bytes]:
    """An injected bundled-asset table mirroring :func:`schema_tree`."""

    return {
        "bees/v1/player/player_request.json": json.dumps(PLAYER_REQUEST).encode("utf-8"),
        "bees/v1/inventory/inventory_item.json": json.dumps(INVENTORY_ITEM).encode("utf-8"),
    }

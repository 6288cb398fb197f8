"""Node and link record ingestion.

Records are the caller's own objects. They may be mappings (``dict``-like)
or plain objects with attributes; the layout never mutates them. Field
lookup goes through :func:`record_get` so both shapes work the same way.
"""

from __future__ import annotations

__all__ = [
    "default_id",
    "default_type",
    "load_json",
    "read_json",
    "read_payload",
    "record_get",
]

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from circular_sankey.layout.constants import ID_KEY, TYPE_KEY


def record_get(record: Any, key: str, default: Any = None) -> Any:
    """Read ``key`` from a mapping or attribute-style record."""
    if isinstance(record, Mapping):
        return record.get(key, default)
    return getattr(record, key, default)


def default_id(record: Any) -> Any:
    """Identifier of a node record: its ``name`` field."""
    return record_get(record, ID_KEY)


def default_type(record: Any) -> Any:
    """Type tag of a link record: its ``type`` field."""
    return record_get(record, TYPE_KEY)


def read_payload(text: str) -> Mapping[str, Any]:
    """Parse a Sankey JSON document; it must be an object."""
    payload = json.loads(text)
    if not isinstance(payload, Mapping):
        raise ValueError("Sankey JSON must be an object with 'nodes' and 'links'")
    return payload


def read_json(text: str) -> tuple[list[Any], list[Any]]:
    """Parse ``{"nodes": [...], "links": [...]}`` text.

    Missing keys come back as ``None`` so the layout reports them as
    missing input rather than silently laying out an empty graph.
    """
    payload = read_payload(text)
    return payload.get("nodes"), payload.get("links")


def load_json(path: str | Path) -> tuple[list[Any], list[Any]]:
    """Read node and link records from a JSON file."""
    return read_json(Path(path).read_text())

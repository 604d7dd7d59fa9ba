"""Heap snapshot loading.

A ``.heapsnapshot`` file is a JSON object of the form::

    {
      "snapshot": {
        "meta": {
          "node_fields": ["type", "name", "id", "self_size", "edge_count", ...],
          "node_types": [["hidden", "array", "string", "object", ...], ...],
          "edge_fields": ["type", "name_or_index", "to_node"],
          "edge_types": [["context", "element", "property", ...], ...]
        },
        "node_count": ..., "edge_count": ...
      },
      "nodes": [...], "edges": [...], "strings": [...]
    }

The loader checks that the sections exist and have the right JSON kind,
that each flat array is a whole number of records, and that every node
value is a non-negative integer. Edges are not inspected.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from memwatch_diff.errors import CorruptData, InvalidFormat, MissingSection
from memwatch_diff.models import HeapSnapshot, SnapshotSource

logger = logging.getLogger(__name__)

REQUIRED_NODE_FIELDS = ("name", "self_size")


def describe_file(path: Path | str) -> SnapshotSource:
    """Stat a snapshot file without reading it."""
    file_path = Path(path)
    stat = file_path.stat()
    return SnapshotSource(
        path=file_path,
        filename=file_path.name,
        file_size=stat.st_size,
        modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
    )


def load_snapshot(path: Path | str) -> HeapSnapshot:
    """Read and parse a heap snapshot file.

    Raises:
        InvalidFormat: the file is not UTF-8 JSON of the expected shape.
        MissingSection: a required table is absent.
        CorruptData: a flat array is not a whole number of records.
    """
    file_path = Path(path)
    source = describe_file(file_path)
    logger.debug("Reading %s (%d bytes)", file_path, source.file_size)

    try:
        with file_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidFormat(f"not valid JSON ({e.msg} at line {e.lineno})", path=file_path) from e
    except UnicodeDecodeError as e:
        raise InvalidFormat("not UTF-8 text", path=file_path) from e

    return parse_snapshot(data, source=source)


def parse_snapshot(data: Any, source: SnapshotSource | None = None) -> HeapSnapshot:
    """Validate decoded snapshot JSON and wrap it as a ``HeapSnapshot``."""
    path = source.path if source else None

    if not isinstance(data, dict):
        raise InvalidFormat("top-level value is not an object", path=path)

    snapshot_section = _require(data, "snapshot", dict, path=path)
    meta = _require(snapshot_section, "meta", dict, path=path, label="snapshot.meta")

    node_fields = _require_string_list(meta, "node_fields", path=path)
    edge_fields = _require_string_list(meta, "edge_fields", path=path)
    nodes = _require(data, "nodes", list, path=path)
    edges = _require(data, "edges", list, path=path)
    strings = _require(data, "strings", list, path=path)

    for field_name in REQUIRED_NODE_FIELDS:
        if field_name not in node_fields:
            raise MissingSection(
                f"snapshot.meta.node_fields has no '{field_name}' field", path=path
            )

    if len(nodes) % len(node_fields) != 0:
        raise CorruptData(
            f"nodes array length {len(nodes)} is not a multiple of "
            f"{len(node_fields)} node fields",
            path=path,
        )
    if len(edges) % len(edge_fields) != 0:
        raise CorruptData(
            f"edges array length {len(edges)} is not a multiple of "
            f"{len(edge_fields)} edge fields",
            path=path,
        )
    _check_node_values(nodes, node_fields, path=path)

    snapshot = HeapSnapshot.model_construct(
        node_fields=node_fields,
        node_types=_type_enumeration(meta.get("node_types"), node_fields),
        edge_fields=edge_fields,
        edge_types=_type_enumeration(meta.get("edge_types"), edge_fields),
        nodes=nodes,
        edges=edges,
        strings=strings,
        source=source,
    )
    logger.debug(
        "Parsed %d nodes, %d edges, %d strings",
        snapshot.node_count,
        snapshot.edge_count,
        len(strings),
    )
    return snapshot


def _require(
    container: dict[str, Any],
    key: str,
    kind: type,
    *,
    path: Path | None,
    label: str | None = None,
) -> Any:
    """Fetch a section, distinguishing absent sections from mistyped ones."""
    label = label or key
    if key not in container or container[key] is None:
        raise MissingSection(f"required section '{label}' is absent", path=path)
    value = container[key]
    if not isinstance(value, kind):
        raise InvalidFormat(
            f"section '{label}' is {type(value).__name__}, expected {kind.__name__}", path=path
        )
    return value


def _require_string_list(meta: dict[str, Any], key: str, *, path: Path | None) -> list[str]:
    label = f"snapshot.meta.{key}"
    fields = _require(meta, key, list, path=path, label=label)
    if not fields:
        raise MissingSection(f"section '{label}' is empty", path=path)
    if not all(isinstance(item, str) for item in fields):
        raise InvalidFormat(f"section '{label}' must list field names", path=path)
    return fields


def _check_node_values(nodes: list[Any], node_fields: list[str], *, path: Path | None) -> None:
    """Reject node values that are not non-negative integers."""
    for position, value in enumerate(nodes):
        # bool is an int subclass; JSON true/false is never a valid node value
        if type(value) is not int or value < 0:
            stride = len(node_fields)
            raise CorruptData(
                f"node {position // stride} has invalid "
                f"'{node_fields[position % stride]}' value {value!r}",
                path=path,
            )


def _type_enumeration(raw: Any, fields: list[str]) -> list[str]:
    """Return the enumeration for the ``type`` field, or [] when absent."""
    # meta.*_types holds one entry per field, aligned with *_fields; only the
    # entry for "type" is an enumeration list.
    if "type" not in fields or not isinstance(raw, list):
        return []
    index = fields.index("type")
    if index < len(raw) and isinstance(raw[index], list):
        return [str(item) for item in raw[index]]
    return []

"""Shared fixtures: synthetic V8 heap snapshots."""

import json

import pytest

NODE_FIELDS = ["type", "name", "id", "self_size", "edge_count", "trace_node_id", "detachedness"]
NODE_KINDS = [
    "hidden",
    "array",
    "string",
    "object",
    "code",
    "closure",
    "regexp",
    "number",
    "native",
    "synthetic",
    "concatenated string",
    "sliced string",
    "symbol",
    "bigint",
    "object shape",
]
EDGE_FIELDS = ["type", "name_or_index", "to_node"]
EDGE_KINDS = ["context", "element", "property", "internal", "hidden", "shortcut", "weak"]


def build_snapshot_data(types, kind="object"):
    """Build heap snapshot JSON.

    ``types`` maps a name to ``(count, total_size)`` or ``(count, total_size, kind)``.
    The total size is spread over the instances, remainder on the first one.
    """
    strings = [""]
    nodes = []
    node_id = 1
    for name, entry in types.items():
        count, size = entry[0], entry[1]
        node_kind = entry[2] if len(entry) > 2 else kind
        if name not in strings:
            strings.append(name)
        name_index = strings.index(name)
        kind_index = NODE_KINDS.index(node_kind)
        per_node, remainder = divmod(size, count) if count else (0, 0)
        for i in range(count):
            self_size = per_node + (remainder if i == 0 else 0)
            nodes.extend([kind_index, name_index, node_id, self_size, 0, 0, 0])
            node_id += 2

    return {
        "snapshot": {
            "meta": {
                "node_fields": NODE_FIELDS,
                "node_types": [NODE_KINDS, "string", "number", "number", "number", "number", "number"],
                "edge_fields": EDGE_FIELDS,
                "edge_types": [EDGE_KINDS, "string_or_number", "node"],
            },
            "node_count": len(nodes) // len(NODE_FIELDS),
            "edge_count": 0,
        },
        "nodes": nodes,
        "edges": [],
        "strings": strings,
    }


@pytest.fixture
def snapshot_data():
    """Factory building snapshot JSON dicts."""
    return build_snapshot_data


@pytest.fixture
def write_snapshot(tmp_path):
    """Factory writing a snapshot (dict or raw text) to a file and returning its path."""
    counter = {"n": 0}

    def _write(content, name=None):
        counter["n"] += 1
        path = tmp_path / (name or f"snapshot-{counter['n']}.heapsnapshot")
        if isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_text(json.dumps(content), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def leak_pair(write_snapshot):
    """Array grows from 100 instances / 100 kB to 2000 instances / 10 MB."""
    before = write_snapshot(build_snapshot_data({"Array": (100, 100_000)}), "before.heapsnapshot")
    after = write_snapshot(build_snapshot_data({"Array": (2000, 10_000_000)}), "after.heapsnapshot")
    return before, after

"""Per-type aggregation of a single heap snapshot.

One pass over the flat node array, summing self sizes per type. Edges are
never visited, so the cost is linear in the node count and "retained size"
here means the sum of self sizes of all instances of a type.
"""

from __future__ import annotations

import logging

from memwatch_diff.config import AnalysisConfig
from memwatch_diff.models import HeapSnapshot, SnapshotSource, TypeAggregate

logger = logging.getLogger(__name__)

FALLBACK_TYPE_NAME = "object"
WHOLE_FILE_TYPE_NAME = "(whole file)"

# Node kinds whose string-table name is the constructor name. Every other
# kind is bucketed under a parenthesized kind label, as DevTools does.
NAMED_NODE_KINDS = frozenset({"object", "native"})
NODE_KIND_LABELS = {
    "hidden": "(system)",
    "code": "(compiled code)",
}


def resolve_type_name(
    name_index: int,
    strings: list[str],
    node_kind: str | None = None,
) -> str:
    """Map a node to the bucket it is counted under."""
    if node_kind is not None and node_kind not in NAMED_NODE_KINDS:
        return NODE_KIND_LABELS.get(node_kind, f"({node_kind})")
    if 0 <= name_index < len(strings):
        name = strings[name_index]
        if isinstance(name, str) and name:
            return name
    return FALLBACK_TYPE_NAME


def aggregate_types(
    snapshot: HeapSnapshot, config: AnalysisConfig | None = None
) -> dict[str, TypeAggregate]:
    """Reduce a snapshot to a type name -> ``TypeAggregate`` mapping.

    Buckets appear in order of their first node.

    With ``group_by_node_type`` (the default) only ``object`` and ``native``
    nodes are bucketed by their string-table name. Every other kind goes to
    a DevTools-style label such as ``(string)``, ``(closure)`` or
    ``(system)``. Set it to False to bucket every node by name alone.
    """
    config = config or AnalysisConfig()
    fields = snapshot.node_fields
    stride = len(fields)
    name_offset = fields.index("name")
    size_offset = fields.index("self_size")
    id_offset = fields.index("id") if "id" in fields else None

    kind_offset: int | None = None
    if config.group_by_node_type and "type" in fields and snapshot.node_types:
        kind_offset = fields.index("type")
    node_kinds = snapshot.node_types
    strings = snapshot.strings
    nodes = snapshot.nodes
    sample_size = config.sample_size

    counts: dict[str, int] = {}
    sizes: dict[str, int] = {}
    samples: dict[str, list[int]] = {}

    for offset in range(0, len(nodes), stride):
        node_kind = None
        if kind_offset is not None:
            kind_index = nodes[offset + kind_offset]
            if 0 <= kind_index < len(node_kinds):
                node_kind = node_kinds[kind_index]

        type_name = resolve_type_name(nodes[offset + name_offset], strings, node_kind)

        if type_name not in counts:
            counts[type_name] = 0
            sizes[type_name] = 0
            samples[type_name] = []
        counts[type_name] += 1
        sizes[type_name] += nodes[offset + size_offset]

        bucket_samples = samples[type_name]
        if id_offset is not None and len(bucket_samples) < sample_size:
            bucket_samples.append(nodes[offset + id_offset])

    logger.debug("Aggregated %d nodes into %d types", snapshot.node_count, len(counts))

    return {
        type_name: TypeAggregate(
            type_name=type_name,
            count=counts[type_name],
            size=sizes[type_name],
            sample_ids=tuple(samples[type_name]),
        )
        for type_name in counts
    }


def aggregate_whole_file(source: SnapshotSource) -> dict[str, TypeAggregate]:
    """Degenerate aggregation: the whole file as one synthetic type.

    Lets a plain file-size comparison run through the same differ and
    classifier as a full per-type analysis.
    """
    return {
        WHOLE_FILE_TYPE_NAME: TypeAggregate(
            type_name=WHOLE_FILE_TYPE_NAME,
            count=1,
            size=source.file_size,
        )
    }


def total_size(aggregates: dict[str, TypeAggregate]) -> int:
    """Sum of sizes over every bucket."""
    return sum(aggregate.size for aggregate in aggregates.values())


def total_count(aggregates: dict[str, TypeAggregate]) -> int:
    return sum(aggregate.count for aggregate in aggregates.values())

"""Assembly of the final analysis result. Pure data transformation, no I/O."""

from __future__ import annotations

from memwatch_diff.aggregator import total_count, total_size
from memwatch_diff.config import BYTES_PER_MB
from memwatch_diff.errors import InconsistentAnalysis
from memwatch_diff.models import (
    AnalysisMetadata,
    AnalysisResult,
    AnalysisSummary,
    HeapSnapshot,
    SnapshotSource,
    SnapshotSummary,
    TypeAggregate,
    TypeDelta,
    Verdict,
)


def summarize_snapshot(
    snapshot: HeapSnapshot, aggregates: dict[str, TypeAggregate]
) -> SnapshotSummary:
    """Totals for one side of the report, from the aggregation pass and file stat."""
    source = snapshot.source
    return SnapshotSummary(
        total_size=total_size(aggregates),
        node_count=snapshot.node_count,
        file_size=source.file_size if source else 0,
        timestamp=source.modified_at if source else None,
        filename=source.filename if source else "",
    )


def summarize_whole_file(
    source: SnapshotSource, aggregates: dict[str, TypeAggregate]
) -> SnapshotSummary:
    """Totals for a file-size-only comparison; there is no node table."""
    return SnapshotSummary(
        total_size=total_size(aggregates),
        node_count=total_count(aggregates),
        file_size=source.file_size,
        timestamp=source.modified_at,
        filename=source.filename,
    )


def sort_deltas(deltas: list[TypeDelta]) -> list[TypeDelta]:
    """Largest growth first; ties by type name."""
    return sorted(deltas, key=lambda delta: (-delta.delta_size, delta.type_name))


def assemble_report(
    before: SnapshotSummary,
    after: SnapshotSummary,
    deltas: list[TypeDelta],
    verdict: Verdict,
    metadata: AnalysisMetadata | None = None,
) -> AnalysisResult:
    """Package summaries, ranked offenders and the verdict into one result.

    Raises:
        InconsistentAnalysis: the inputs disagree about how much the heap grew.
    """
    total_growth = after.total_size - before.total_size

    if total_growth != 0 and not deltas:
        raise InconsistentAnalysis(
            f"snapshot totals differ by {total_growth} bytes but no type deltas were supplied"
        )

    delta_sum = sum(delta.delta_size for delta in deltas)
    if delta_sum != total_growth:
        raise InconsistentAnalysis(
            f"type deltas sum to {delta_sum} bytes but snapshot totals differ by "
            f"{total_growth} bytes"
        )

    if verdict.total_growth_bytes != total_growth:
        raise InconsistentAnalysis(
            f"verdict was computed for {verdict.total_growth_bytes} bytes of growth, "
            f"snapshot totals differ by {total_growth} bytes"
        )

    summary = AnalysisSummary(
        total_growth_mb=total_growth / BYTES_PER_MB,
        suspicious_growth=verdict.suspicious_growth,
        likely_leak_source=verdict.likely_leak_source,
        confidence=verdict.confidence,
        recommendations=list(verdict.recommendations),
    )

    return AnalysisResult(
        before=before,
        after=after,
        offenders=list(verdict.offenders),
        deltas=sort_deltas(deltas),
        summary=summary,
        metadata=metadata or AnalysisMetadata(),
    )

"""Analysis pipeline: Load -> Aggregate (x2) -> Diff -> Classify -> Assemble.

Every call is independent. Configuration is passed in explicitly and no
state survives between calls.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from memwatch_diff.aggregator import aggregate_types, aggregate_whole_file
from memwatch_diff.classifier import classify
from memwatch_diff.config import AnalysisConfig
from memwatch_diff.differ import diff_aggregates
from memwatch_diff.loader import describe_file, load_snapshot
from memwatch_diff.models import (
    AnalysisMetadata,
    AnalysisResult,
    HeapSnapshot,
    SnapshotSummary,
    TypeAggregate,
)
from memwatch_diff.report import assemble_report, summarize_snapshot, summarize_whole_file

logger = logging.getLogger(__name__)

LoadedSide = tuple[SnapshotSummary, dict[str, TypeAggregate]]


def _load_and_aggregate(path: Path, config: AnalysisConfig) -> LoadedSide:
    started = time.perf_counter()
    snapshot = load_snapshot(path)
    aggregates = aggregate_types(snapshot, config)
    summary = summarize_snapshot(snapshot, aggregates)
    logger.debug(
        "Loaded %s: %d nodes, %d types in %.2fs",
        summary.filename,
        summary.node_count,
        len(aggregates),
        time.perf_counter() - started,
    )
    # The snapshot tables are dropped here; only the aggregates move on
    return summary, aggregates


def _stat_and_aggregate(path: Path, config: AnalysisConfig) -> LoadedSide:
    source = describe_file(path)
    aggregates = aggregate_whole_file(source)
    return summarize_whole_file(source, aggregates), aggregates


def _finish(
    before: LoadedSide,
    after: LoadedSide,
    config: AnalysisConfig,
    metadata: AnalysisMetadata | None,
) -> AnalysisResult:
    before_summary, before_aggregates = before
    after_summary, after_aggregates = after

    deltas = diff_aggregates(before_aggregates, after_aggregates)
    verdict = classify(deltas, before_summary.total_size, after_summary.total_size, config)
    return assemble_report(before_summary, after_summary, deltas, verdict, metadata)


def _run_pair(
    loader: Callable[[Path, AnalysisConfig], LoadedSide],
    before_path: Path,
    after_path: Path,
    config: AnalysisConfig,
) -> tuple[LoadedSide, LoadedSide]:
    """Run one load step per snapshot concurrently and join on both.

    The first failure (before side checked first) is re-raised, so callers
    never see a half-finished analysis.
    """
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="memwatch-load") as pool:
        before_future = pool.submit(loader, before_path, config)
        after_future = pool.submit(loader, after_path, config)
        return before_future.result(), after_future.result()


def compare_snapshots(
    before: HeapSnapshot,
    after: HeapSnapshot,
    config: AnalysisConfig | None = None,
    metadata: AnalysisMetadata | None = None,
) -> AnalysisResult:
    """Compare two already-loaded snapshots."""
    config = config or AnalysisConfig()
    before_aggregates = aggregate_types(before, config)
    after_aggregates = aggregate_types(after, config)
    return _finish(
        (summarize_snapshot(before, before_aggregates), before_aggregates),
        (summarize_snapshot(after, after_aggregates), after_aggregates),
        config,
        metadata,
    )


def analyze_snapshots(
    before_path: Path | str,
    after_path: Path | str,
    config: AnalysisConfig | None = None,
    metadata: AnalysisMetadata | None = None,
) -> AnalysisResult:
    """Full per-type comparison of two heap snapshot files.

    Raises:
        InvalidFormat, MissingSection, CorruptData: a snapshot failed to load.
        InconsistentAnalysis: assembly invariants were violated.
    """
    config = config or AnalysisConfig()
    before, after = _run_pair(_load_and_aggregate, Path(before_path), Path(after_path), config)
    return _finish(before, after, config, metadata)


def analyze_file_sizes(
    before_path: Path | str,
    after_path: Path | str,
    config: AnalysisConfig | None = None,
    metadata: AnalysisMetadata | None = None,
) -> AnalysisResult:
    """Basic comparison of snapshot file sizes, without parsing either file."""
    config = config or AnalysisConfig()
    before, after = _run_pair(_stat_and_aggregate, Path(before_path), Path(after_path), config)
    return _finish(before, after, config, metadata)

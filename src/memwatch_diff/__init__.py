"""Before/after V8 heap snapshot diffing for Node.js memory leak investigation."""

from memwatch_diff.config import AnalysisConfig, SeverityThresholds
from memwatch_diff.engine import analyze_file_sizes, analyze_snapshots, compare_snapshots
from memwatch_diff.errors import (
    CorruptData,
    InconsistentAnalysis,
    InvalidFormat,
    MemwatchDiffError,
    MissingSection,
    SnapshotError,
)
from memwatch_diff.models import AnalysisMetadata, AnalysisResult, TypeAggregate, TypeDelta

__version__ = "1.0.0"

__all__ = [
    "AnalysisConfig",
    "AnalysisMetadata",
    "AnalysisResult",
    "CorruptData",
    "InconsistentAnalysis",
    "InvalidFormat",
    "MemwatchDiffError",
    "MissingSection",
    "SeverityThresholds",
    "SnapshotError",
    "TypeAggregate",
    "TypeDelta",
    "analyze_file_sizes",
    "analyze_snapshots",
    "compare_snapshots",
]

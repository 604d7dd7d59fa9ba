"""Typed data passed between the analysis stages."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

# ============================================================
# TYPE ALIASES
# ============================================================

Severity: TypeAlias = Literal["low", "medium", "high", "critical"]
BytesValue: TypeAlias = int

SEVERITY_ORDER: tuple[Severity, ...] = ("low", "medium", "high", "critical")

# ============================================================
# SNAPSHOT TABLES
# ============================================================


class SnapshotSource(BaseModel):
    """On-disk facts about a snapshot file, gathered without parsing it."""

    model_config = ConfigDict(frozen=True)

    path: Path
    filename: str
    file_size: BytesValue = Field(ge=0)
    modified_at: datetime


class HeapSnapshot(BaseModel):
    """Parsed V8 heap snapshot tables.

    The flat ``nodes`` and ``edges`` arrays are laid out in strides of
    ``len(node_fields)`` and ``len(edge_fields)``. ``node_types`` is the
    enumeration for the node ``type`` field (empty when the file has none).
    """

    model_config = ConfigDict(frozen=True)

    node_fields: list[str]
    node_types: list[str] = Field(default_factory=list)
    edge_fields: list[str]
    edge_types: list[str] = Field(default_factory=list)
    nodes: list[int]
    edges: list[int]
    strings: list[str]
    source: SnapshotSource | None = None

    @property
    def node_field_count(self) -> int:
        return len(self.node_fields)

    @property
    def edge_field_count(self) -> int:
        return len(self.edge_fields)

    @property
    def node_count(self) -> int:
        return len(self.nodes) // self.node_field_count if self.node_fields else 0

    @property
    def edge_count(self) -> int:
        return len(self.edges) // self.edge_field_count if self.edge_fields else 0


# ============================================================
# AGGREGATES AND DELTAS
# ============================================================


class TypeAggregate(BaseModel):
    """Count and total self size of one type within a single snapshot."""

    model_config = ConfigDict(frozen=True)

    type_name: str
    count: int = Field(ge=0)
    size: BytesValue = Field(ge=0)
    sample_ids: tuple[int, ...] = ()


class TypeDelta(BaseModel):
    """Growth of one type between the before and after snapshots.

    ``growth_rate`` is ``math.inf`` when the type was absent before and is
    present after; it serializes to JSON as the string ``"Infinity"``.
    ``severity`` stays ``None`` until the classifier marks the type as an
    offender.
    """

    model_config = ConfigDict(frozen=True, ser_json_inf_nan="strings")

    type_name: str
    count_before: int = 0
    count_after: int = 0
    size_before: BytesValue = 0
    size_after: BytesValue = 0
    delta_size: BytesValue = 0
    delta_count: int = 0
    growth_rate: float = 0.0
    severity: Severity | None = None
    suspicious_retainers: list[str] = Field(default_factory=list)

    @property
    def is_infinite_growth(self) -> bool:
        return math.isinf(self.growth_rate)

    @property
    def delta_size_mb(self) -> float:
        return self.delta_size / (1024 * 1024)


# ============================================================
# REPORT
# ============================================================


class SnapshotSummary(BaseModel):
    """Per-snapshot totals shown on each side of the report."""

    model_config = ConfigDict(frozen=True)

    total_size: BytesValue = Field(ge=0)
    node_count: int = Field(ge=0)
    file_size: BytesValue = Field(default=0, ge=0)
    timestamp: datetime | None = None
    filename: str = ""


class Verdict(BaseModel):
    """Classifier output: ranked offenders plus the overall call."""

    model_config = ConfigDict(frozen=True, ser_json_inf_nan="strings")

    offenders: list[TypeDelta] = Field(default_factory=list)
    total_growth_bytes: int
    suspicious_growth: bool
    likely_leak_source: str | None = None
    confidence: float = Field(ge=0.0, le=1.0)
    recommendations: list[str] = Field(default_factory=list)


class AnalysisSummary(BaseModel):
    """Headline numbers of an analysis."""

    model_config = ConfigDict(frozen=True)

    total_growth_mb: float
    suspicious_growth: bool
    likely_leak_source: str | None = None
    confidence: float = Field(ge=0.0, le=1.0)
    recommendations: list[str] = Field(default_factory=list)


class AnalysisMetadata(BaseModel):
    """Where the snapshots came from and when the analysis ran."""

    model_config = ConfigDict(frozen=True)

    container_id: str = ""
    image: str = ""
    delay_minutes: float = 0.0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AnalysisResult(BaseModel):
    """Complete result of comparing two heap snapshots."""

    model_config = ConfigDict(frozen=True, ser_json_inf_nan="strings")

    before: SnapshotSummary
    after: SnapshotSummary
    offenders: list[TypeDelta] = Field(default_factory=list)
    deltas: list[TypeDelta] = Field(default_factory=list)
    summary: AnalysisSummary
    metadata: AnalysisMetadata = Field(default_factory=AnalysisMetadata)

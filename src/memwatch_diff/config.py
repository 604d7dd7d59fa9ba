"""Analysis configuration passed explicitly into every engine call."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

BYTES_PER_MB = 1024 * 1024
DEFAULT_THRESHOLD_BYTES = 10 * BYTES_PER_MB


class SeverityThresholds(BaseModel):
    """Per-type severity cut-offs.

    Sizes are megabytes of growth; rates are multiples of the before size.
    A type takes the higher of its size class and its rate class.
    """

    model_config = ConfigDict(frozen=True)

    critical_mb: float = 100.0
    high_mb: float = 50.0
    medium_mb: float = 10.0

    critical_rate: float = 10.0
    high_rate: float = 5.0
    medium_rate: float = 2.0


class AnalysisConfig(BaseModel):
    """Configurable knobs for one before/after comparison."""

    model_config = ConfigDict(frozen=True)

    # Total heap growth above this many bytes marks the comparison suspicious
    threshold_bytes: int = Field(default=DEFAULT_THRESHOLD_BYTES, ge=0)
    severity: SeverityThresholds = Field(default_factory=SeverityThresholds)

    # Node ids kept per type for diagnostics
    sample_size: int = Field(default=5, ge=0)

    # Bucket strings, closures, code etc. by node kind instead of by name
    group_by_node_type: bool = True

    max_recommendations: int = Field(default=8, ge=1)

"""Severity classification, offender ranking and the overall verdict."""

from __future__ import annotations

import logging
import math

from memwatch_diff.aggregator import WHOLE_FILE_TYPE_NAME
from memwatch_diff.config import BYTES_PER_MB, AnalysisConfig, SeverityThresholds
from memwatch_diff.models import SEVERITY_ORDER, Severity, TypeDelta, Verdict

logger = logging.getLogger(__name__)

# ============================================================
# TYPE PATTERNS
# ============================================================

# (name fragments, retainer hint, recommendation). First match wins, so the
# typed-array and buffer row sits before the generic Array row.
TYPE_PATTERNS: tuple[tuple[tuple[str, ...], str, str], ...] = (
    (
        ("ArrayBuffer", "Buffer", "Uint8Array"),
        "Binary buffers retained after I/O completes",
        "Check stream, socket and file handles are closed so their buffers can be released",
    ),
    (
        ("Array", "(array)", "(object elements)"),
        "Elements appended to a long-lived array (queue, history or cache)",
        "Check for unbounded array growth; cap queues and histories or evict old entries",
    ),
    (
        ("Map", "Set", "(object properties)"),
        "Entries accumulating in a Map/Set or object used as a cache",
        "Add eviction to caches keyed by request or session data (LRU, TTL or WeakMap)",
    ),
    (
        ("(closure)", "Function", "(context)"),
        "Closures kept alive by registered callbacks, capturing their scope",
        "Look for callbacks registered per request and never unregistered",
    ),
    (
        ("EventEmitter", "Listener", "listener"),
        "Listeners added without a matching removeListener/off",
        "Audit on()/addListener() calls for matching removeListener()/off() on teardown",
    ),
    (
        ("Timeout", "Timer", "Immediate"),
        "Timer handles still referenced (setInterval/setTimeout not cleared)",
        "Make sure every setInterval/setTimeout is cleared when its owner is disposed",
    ),
    (
        ("Promise",),
        "Promises that never settle, holding their reactions",
        "Look for promises that never resolve or reject, such as awaits without timeouts",
    ),
    (
        ("string)", "String"),
        "Strings accumulating in logs, buffers or memoized keys",
        "Check in-memory log buffers, string concatenation in loops and memoization keys",
    ),
    (
        ("Detached",),
        "Detached nodes still referenced from script",
        "Drop references to detached nodes once they leave the tree",
    ),
    (
        ("(system)", "(compiled code)"),
        "Engine-internal growth (hidden classes, compiled code)",
        "Engine-internal growth often follows dynamic code (eval, new Function) or object shape churn",
    ),
)


def match_type_pattern(type_name: str) -> tuple[str, str] | None:
    """Return (retainer hint, recommendation) for a type name, if any."""
    for fragments, hint, recommendation in TYPE_PATTERNS:
        if any(fragment in type_name for fragment in fragments):
            return hint, recommendation
    return None


# ============================================================
# SEVERITY
# ============================================================


def _max_severity(first: Severity, second: Severity | None) -> Severity:
    if second is None:
        return first
    return max(first, second, key=SEVERITY_ORDER.index)


def classify_severity(
    delta_size: int, growth_rate: float, thresholds: SeverityThresholds
) -> Severity | None:
    """Severity of one type's growth, or None if it did not grow.

    Takes the higher of the size class and the rate class. An infinite
    growth rate (type absent before) is classified by size alone.
    """
    if delta_size <= 0:
        return None

    delta_mb = delta_size / BYTES_PER_MB
    if delta_mb > thresholds.critical_mb:
        by_size: Severity = "critical"
    elif delta_mb > thresholds.high_mb:
        by_size = "high"
    elif delta_mb > thresholds.medium_mb:
        by_size = "medium"
    else:
        by_size = "low"

    by_rate: Severity | None = None
    if not math.isinf(growth_rate):
        if growth_rate > thresholds.critical_rate:
            by_rate = "critical"
        elif growth_rate > thresholds.high_rate:
            by_rate = "high"
        elif growth_rate > thresholds.medium_rate:
            by_rate = "medium"

    return _max_severity(by_size, by_rate)


def suspicious_retainers(delta: TypeDelta) -> list[str]:
    """Free-text hints about what may be keeping a type alive."""
    hints: list[str] = []
    matched = match_type_pattern(delta.type_name)
    if matched:
        hints.append(matched[0])
    if delta.is_infinite_growth:
        hints.append("Type absent from the before snapshot; allocated only after it")
    elif delta.delta_count > 0 and delta.count_before > 0:
        ratio = delta.count_after / delta.count_before
        if ratio >= 2:
            hints.append(f"Instance count grew {ratio:.1f}x ({delta.delta_count:+d} instances)")
    elif delta.delta_count == 0 and delta.delta_size > 0:
        hints.append("Same instance count but larger instances; existing objects are growing")
    return hints


def rank_offenders(deltas: list[TypeDelta], config: AnalysisConfig) -> list[TypeDelta]:
    """Classify growing types and sort them.

    Types with ``delta_size <= 0`` are never offenders. Order is by
    ``delta_size`` descending, then type name ascending.
    """
    offenders: list[TypeDelta] = []
    for delta in deltas:
        severity = classify_severity(delta.delta_size, delta.growth_rate, config.severity)
        if severity is None:
            continue
        offenders.append(
            delta.model_copy(
                update={"severity": severity, "suspicious_retainers": suspicious_retainers(delta)}
            )
        )
    offenders.sort(key=lambda offender: (-offender.delta_size, offender.type_name))
    return offenders


# ============================================================
# VERDICT
# ============================================================


def growth_concentration(offenders: list[TypeDelta]) -> float:
    """Share of positive growth owned by the single largest offender."""
    positive_growth = sum(offender.delta_size for offender in offenders if offender.delta_size > 0)
    if positive_growth <= 0:
        return 0.0
    return max(offender.delta_size for offender in offenders) / positive_growth


def compute_confidence(total_growth: int, threshold: int, offenders: list[TypeDelta]) -> float:
    """Heuristic confidence in [0, 1] that the growth is a real leak.

    Zero unless growth exceeds the threshold. Rises with growth relative to
    the threshold and with how much of it a single type accounts for;
    approaches 1 when growth dwarfs the threshold and one type dominates.
    """
    if total_growth <= threshold:
        return 0.0
    magnitude = 1.0 - max(threshold, 1) / total_growth
    magnitude = max(0.0, min(1.0, magnitude))
    concentration = growth_concentration(offenders)
    return magnitude * (0.5 + 0.5 * concentration)


def build_recommendations(
    offenders: list[TypeDelta], suspicious: bool, config: AnalysisConfig
) -> list[str]:
    """Build advisory text tied to the observed offenders."""
    recommendations: list[str] = []

    if not suspicious:
        recommendations.append(
            "No significant heap growth above threshold; no leak investigation needed"
        )
        if offenders and offenders[0].severity in ("high", "critical"):
            top = offenders[0]
            recommendations.append(
                f"'{top.type_name}' grew sharply ({top.severity}) although total growth "
                "stayed under threshold; re-check after a longer delay"
            )
        return recommendations[: config.max_recommendations]

    if offenders:
        top = offenders[0]
        recommendations.append(
            f"Investigate '{top.type_name}' first: +{top.delta_size_mb:.2f} MB "
            f"({top.delta_count:+d} instances) between snapshots"
        )

    critical = [offender for offender in offenders if offender.severity == "critical"]
    if critical:
        recommendations.append(
            f"Critical growth in {len(critical)} type(s); take a third snapshot to confirm "
            "the trend before restarting the service"
        )

    if len(offenders) > 1 and growth_concentration(offenders) < 0.5:
        recommendations.append(
            "Growth is spread across many types; look for a shared container "
            "(cache, registry, session store) retaining mixed objects"
        )

    if any(offender.type_name == WHOLE_FILE_TYPE_NAME for offender in offenders):
        recommendations.append(
            "Only snapshot file sizes were compared; rerun the per-type analysis "
            "to identify which types are growing"
        )

    for offender in offenders:
        matched = match_type_pattern(offender.type_name)
        if matched and matched[1] not in recommendations:
            recommendations.append(matched[1])

    recommendations.append(
        "Load both snapshots into Chrome DevTools (Memory > Comparison) to inspect "
        "retaining paths of the top offenders"
    )
    return recommendations[: config.max_recommendations]


def classify(
    deltas: list[TypeDelta],
    before_total: int,
    after_total: int,
    config: AnalysisConfig,
) -> Verdict:
    """Rank offenders and decide whether growth between snapshots is suspicious."""
    offenders = rank_offenders(deltas, config)
    total_growth = after_total - before_total
    suspicious = total_growth > config.threshold_bytes
    confidence = compute_confidence(total_growth, config.threshold_bytes, offenders)
    likely_leak_source = offenders[0].type_name if offenders else None

    logger.debug(
        "Growth %+d bytes vs threshold %d: suspicious=%s, %d offenders, confidence=%.3f",
        total_growth,
        config.threshold_bytes,
        suspicious,
        len(offenders),
        confidence,
    )

    return Verdict(
        offenders=offenders,
        total_growth_bytes=total_growth,
        suspicious_growth=suspicious,
        likely_leak_source=likely_leak_source,
        confidence=confidence,
        recommendations=build_recommendations(offenders, suspicious, config),
    )

"""Human-readable rendering of an analysis result."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from memwatch_diff.config import BYTES_PER_MB
from memwatch_diff.models import AnalysisResult, Severity, SnapshotSummary, TypeAggregate, TypeDelta

# ============================================================
# RICH OUTPUT RENDERING
# ============================================================

MEMWATCH_THEME = Theme(
    {
        "critical": "bold red",
        "warning": "bold yellow",
        "success": "bold green",
        "info": "cyan",
        "metric": "white",
        "label": "dim white",
        "header": "bold magenta",
    }
)

console = Console(theme=MEMWATCH_THEME)

SEVERITY_STYLES: dict[Severity, str] = {
    "low": "info",
    "medium": "warning",
    "high": "critical",
    "critical": "critical",
}


def format_bytes_human(size_bytes: int) -> str:
    """Format bytes to human-readable size."""
    sign = "-" if size_bytes < 0 else ""
    size_bytes = abs(size_bytes)
    if size_bytes >= 1024**3:
        return f"{sign}{size_bytes / (1024**3):.1f}G"
    elif size_bytes >= 1024**2:
        return f"{sign}{size_bytes / (1024**2):.1f}M"
    elif size_bytes >= 1024:
        return f"{sign}{size_bytes / 1024:.1f}K"
    return f"{sign}{size_bytes}B"


def format_mb(size_bytes: int) -> str:
    return f"{size_bytes / BYTES_PER_MB:.2f} MB"


def format_growth_rate(delta: TypeDelta) -> str:
    """Growth as a multiple of the before size, or 'new' for appeared types."""
    if delta.is_infinite_growth:
        return "new"
    return f"{delta.growth_rate:+.1f}x"


def determine_overall_status(result: AnalysisResult) -> tuple[str, str]:
    """Determine overall status text and style token."""
    if result.summary.suspicious_growth:
        return "POTENTIAL MEMORY LEAK DETECTED", "critical"
    if result.offenders:
        return "GROWTH BELOW THRESHOLD", "warning"
    return "NO SIGNIFICANT MEMORY GROWTH", "success"


def build_snapshot_rows(result: AnalysisResult) -> list[tuple[str, str, str]]:
    """Rows comparing the two snapshots side by side."""

    def timestamp(summary: SnapshotSummary) -> str:
        return summary.timestamp.isoformat() if summary.timestamp else "-"

    before, after = result.before, result.after
    return [
        ("File", before.filename or "-", after.filename or "-"),
        ("Heap size", format_mb(before.total_size), format_mb(after.total_size)),
        ("Nodes", f"{before.node_count:,}", f"{after.node_count:,}"),
        ("File size", format_bytes_human(before.file_size), format_bytes_human(after.file_size)),
        ("Captured", timestamp(before), timestamp(after)),
    ]


def build_verdict_rows(result: AnalysisResult) -> list[tuple[str, str]]:
    summary = result.summary
    return [
        ("Total growth", f"{summary.total_growth_mb:+.2f} MB"),
        ("Suspicious growth", "YES" if summary.suspicious_growth else "NO"),
        ("Likely leak source", summary.likely_leak_source or "-"),
        ("Confidence", f"{summary.confidence:.0%}"),
        ("Offending types", str(len(result.offenders))),
    ]


def build_metadata_rows(result: AnalysisResult) -> list[tuple[str, str]]:
    metadata = result.metadata
    rows = [("Analysis time", metadata.timestamp.isoformat())]
    if metadata.container_id:
        rows.append(("Container", metadata.container_id))
    if metadata.image:
        rows.append(("Image", metadata.image))
    if metadata.delay_minutes:
        rows.append(("Delay period", f"{metadata.delay_minutes:g} minutes"))
    return rows


def create_key_value_table(title: str, rows: list[tuple[str, str]]) -> Table:
    """Create a simple two-column key/value table."""
    table = Table(title=title, show_header=False, box=None, padding=(0, 2))
    table.add_column("Metric", style="label")
    table.add_column("Value", style="metric")
    for label, value in rows:
        table.add_row(label, value)
    return table


def create_snapshot_table(result: AnalysisResult) -> Table:
    table = Table(title="Heap Snapshots", show_header=True, header_style="header")
    table.add_column("", style="label")
    table.add_column("Before", style="metric")
    table.add_column("After", style="metric")
    for label, before, after in build_snapshot_rows(result):
        table.add_row(label, before, after)
    return table


def create_offender_table(offenders: list[TypeDelta], top: int) -> Table:
    """Create the ranked offender table."""
    table = Table(title="Top Offenders", show_header=True, header_style="header")
    table.add_column("Type", style="info")
    table.add_column("Severity")
    table.add_column("Δ Size", justify="right", style="metric")
    table.add_column("Δ Count", justify="right", style="metric")
    table.add_column("Before", justify="right", style="label")
    table.add_column("After", justify="right", style="label")
    table.add_column("Growth", justify="right", style="metric")

    for offender in offenders[:top]:
        severity = offender.severity or "low"
        table.add_row(
            offender.type_name,
            Text(severity.upper(), style=SEVERITY_STYLES[severity]),
            f"+{format_bytes_human(offender.delta_size)}",
            f"{offender.delta_count:+,d}",
            format_bytes_human(offender.size_before),
            format_bytes_human(offender.size_after),
            format_growth_rate(offender),
        )
    return table


def render_verdict_panel(result: AnalysisResult) -> Panel:
    """Render the overall verdict."""
    status, style = determine_overall_status(result)
    content = Text()
    content.append(f"{status}\n\n", style=style)
    rows = build_verdict_rows(result)
    for index, (label, value) in enumerate(rows):
        line_ending = "\n" if index < len(rows) - 1 else ""
        content.append(f"{label}: ", style="label")
        content.append(value + line_ending, style="metric")
    return Panel(content, title=f"[{style}]Leak Assessment[/{style}]", border_style=style)


def render_rich_output(result: AnalysisResult, *, top: int = 10) -> None:
    """Render comprehensive analysis using Rich components."""
    console.print()
    console.print(Panel("Heap Snapshot Leak Analysis", style="header", expand=True))
    console.print()

    console.print(create_key_value_table("Run", build_metadata_rows(result)))
    console.print()
    console.print(create_snapshot_table(result))
    console.print()
    console.print(render_verdict_panel(result))
    console.print()

    if result.offenders:
        console.print(create_offender_table(result.offenders, top))
        remaining = len(result.offenders) - top
        if remaining > 0:
            console.print(f"[label]... and {remaining} more growing types[/label]")
        console.print()

        hinted = [offender for offender in result.offenders[:top] if offender.suspicious_retainers]
        if hinted:
            hints = Text()
            for index, offender in enumerate(hinted):
                line_start = "\n" if index > 0 else ""
                hints.append(f"{line_start}{offender.type_name}", style="info")
                for hint in offender.suspicious_retainers:
                    hints.append(f"\n  • {hint}", style="metric")
            console.print(Panel(hints, title="Suspicious Retainers", border_style="cyan"))
            console.print()

    if result.summary.recommendations:
        recommendations = Text()
        for index, recommendation in enumerate(result.summary.recommendations, start=1):
            line_ending = "\n" if index < len(result.summary.recommendations) else ""
            recommendations.append(f"{index}. {recommendation}{line_ending}", style="metric")
        console.print(Panel(recommendations, title="Recommendations", border_style="info"))


def render_type_table(
    aggregates: dict[str, TypeAggregate], *, title: str, top: int = 20
) -> Table:
    """Largest types of a single snapshot."""
    total = sum(aggregate.size for aggregate in aggregates.values()) or 1
    ranked = sorted(aggregates.values(), key=lambda a: (-a.size, a.type_name))

    table = Table(title=title, show_header=True, header_style="header")
    table.add_column("Type", style="info")
    table.add_column("Count", justify="right", style="metric")
    table.add_column("Self Size", justify="right", style="metric")
    table.add_column("Share", justify="right", style="label")
    for aggregate in ranked[:top]:
        table.add_row(
            aggregate.type_name,
            f"{aggregate.count:,}",
            format_bytes_human(aggregate.size),
            f"{aggregate.size / total:.1%}",
        )
    return table


# ============================================================
# PLAIN TEXT REPORT
# ============================================================


def format_text_report(result: AnalysisResult, *, top: int = 5) -> str:
    """Fixed-layout plain text report, suitable for a summary file."""
    summary = result.summary
    metadata = result.metadata
    before, after = result.before, result.after

    lines = [
        "MEMORY LEAK DETECTION REPORT",
        "============================",
        "",
        f"Container: {metadata.container_id or '-'}",
        f"Image: {metadata.image or '-'}",
        f"Analysis Time: {metadata.timestamp.isoformat()}",
        f"Delay Period: {metadata.delay_minutes:g} minutes",
        "",
        "HEAP SNAPSHOTS",
        "--------------",
        f"Before: {before.filename} ({format_mb(before.total_size)}, {before.node_count} nodes)",
        f"After:  {after.filename} ({format_mb(after.total_size)}, {after.node_count} nodes)",
        "",
        "ANALYSIS RESULTS",
        "----------------",
        f"Total Growth: {summary.total_growth_mb:.2f} MB",
        f"Suspicious Growth: {'YES' if summary.suspicious_growth else 'NO'}",
    ]
    if summary.likely_leak_source:
        lines.append(f"Likely Source: {summary.likely_leak_source}")
    lines.append(f"Confidence: {summary.confidence:.0%}")

    lines.extend(["", "STATUS", "------"])
    lines.append(
        "POTENTIAL MEMORY LEAK DETECTED"
        if summary.suspicious_growth
        else "NO SIGNIFICANT MEMORY GROWTH"
    )

    if result.offenders:
        lines.extend(["", "TOP OFFENDERS", "-------------"])
        for offender in result.offenders[:top]:
            lines.append(
                f"{offender.type_name}: +{offender.delta_size_mb:.2f} MB "
                f"({offender.delta_count} objects) [{offender.severity}]"
            )

    if summary.recommendations:
        lines.extend(["", "RECOMMENDATIONS", "---------------"])
        lines.extend(f"- {recommendation}" for recommendation in summary.recommendations)

    return "\n".join(lines) + "\n"

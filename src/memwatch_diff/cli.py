"""memwatch-diff command line interface.

Compares a before/after pair of V8 heap snapshots captured from a Node.js
process and flags suspicious growth:
- Per-type count and self-size deltas
- Severity per offending type (low/medium/high/critical)
- Suspicious-growth verdict with a confidence score
- JSON + plain text report files and an optional webhook POST

Exit codes: 0 = no suspicious growth, 1 = suspicious growth, 2 = error.
"""

from __future__ import annotations

import cProfile
import logging
import pstats
import sys
from io import StringIO
from pathlib import Path
from typing import Annotated

import typer
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn

from memwatch_diff import __version__
from memwatch_diff.aggregator import aggregate_types, total_size
from memwatch_diff.config import DEFAULT_THRESHOLD_BYTES, AnalysisConfig
from memwatch_diff.engine import analyze_file_sizes, analyze_snapshots
from memwatch_diff.errors import MemwatchDiffError
from memwatch_diff.export import (
    WebhookError,
    exit_code_for,
    result_to_json,
    send_webhook,
    write_reports,
)
from memwatch_diff.loader import load_snapshot
from memwatch_diff.models import AnalysisMetadata
from memwatch_diff.render import (
    console,
    format_bytes_human,
    render_rich_output,
    render_type_table,
)

EXIT_ERROR = 2

logger = logging.getLogger(__name__)

# ============================================================
# TYPER CLI INTERFACE
# ============================================================

app = typer.Typer(
    name="memwatch-diff",
    help="Before/after V8 heap snapshot comparison for Node.js memory leak hunting",
    add_completion=False,
    rich_markup_mode="rich",
)

SnapshotPath = Annotated[
    Path,
    typer.Argument(
        help="Path to a .heapsnapshot file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
]


def configure_logging(verbose: bool) -> None:
    """Route library logging through Rich on the shared console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=verbose)],
        force=True,
    )


@app.command()
def analyze(
    before: Annotated[
        Path,
        typer.Argument(
            help="Heap snapshot taken first",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    after: Annotated[
        Path,
        typer.Argument(
            help="Heap snapshot taken after the delay",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    threshold: Annotated[
        int,
        typer.Option(
            "--threshold",
            "--analysis-threshold",
            help="Bytes of total heap growth considered a leak (default: 10 MiB)",
            envvar="MEMWATCH_ANALYSIS_THRESHOLD",
            min=0,
        ),
    ] = DEFAULT_THRESHOLD_BYTES,
    output_dir: Annotated[
        Path | None,
        typer.Option(
            "--output-dir",
            "-o",
            help="Directory for leak-report-*.json and leak-summary-*.txt",
            envvar="MEMWATCH_OUTPUT_DIR",
            file_okay=False,
            dir_okay=True,
        ),
    ] = None,
    webhook: Annotated[
        str | None,
        typer.Option(
            "--webhook",
            help="POST the final JSON report to this URL",
            envvar="MEMWATCH_WEBHOOK",
        ),
    ] = None,
    container_id: Annotated[
        str,
        typer.Option(
            "--container-id",
            help="Container or pod the snapshots were taken from (report metadata)",
            envvar="MEMWATCH_CONTAINER_ID",
        ),
    ] = "",
    image: Annotated[
        str,
        typer.Option(
            "--image",
            help="Container image of the target (report metadata)",
            envvar="MEMWATCH_IMAGE",
        ),
    ] = "",
    delay: Annotated[
        float,
        typer.Option(
            "--delay",
            help="Minutes between the two snapshots (report metadata)",
            min=0.0,
        ),
    ] = 0.0,
    basic: Annotated[
        bool,
        typer.Option(
            "--basic",
            help="Compare snapshot file sizes only, without parsing the snapshots",
        ),
    ] = False,
    by_name: Annotated[
        bool,
        typer.Option(
            "--by-name",
            help="Group every node by its name, including strings and closures",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Print the JSON report instead of the rich summary"),
    ] = False,
    top: Annotated[
        int,
        typer.Option("--top", "-n", help="Number of offenders to display", min=1),
    ] = 10,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output with per-stage timings",
        ),
    ] = False,
    profile: Annotated[
        bool,
        typer.Option(
            "--profile",
            help="Enable performance profiling and display timing statistics",
        ),
    ] = False,
) -> None:
    """Compare two heap snapshots (BEFORE, AFTER) and report suspicious growth.

    Exit codes: 0 = no suspicious growth, 1 = suspicious growth, 2 = error.
    """
    configure_logging(verbose)

    profiler = None
    if profile:
        profiler = cProfile.Profile()
        profiler.enable()

    try:
        config = AnalysisConfig(threshold_bytes=threshold, group_by_node_type=not by_name)
        metadata = AnalysisMetadata(container_id=container_id, image=image, delay_minutes=delay)
        run = analyze_file_sizes if basic else analyze_snapshots
        logger.debug("Threshold %d bytes, basic=%s, by_name=%s", threshold, basic, by_name)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
            disable=json_output,
        ) as progress:
            progress.add_task("[cyan]Analyzing heap snapshots...", total=None)
            result = run(before, after, config, metadata)

        if json_output:
            typer.echo(result_to_json(result))
        else:
            render_rich_output(result, top=top)

        if output_dir:
            json_path, summary_path = write_reports(result, output_dir)
            if not json_output:
                console.print(f"\n[success]Report saved to {json_path}[/success]")
                console.print(f"[success]Summary saved to {summary_path}[/success]")

        if webhook:
            try:
                send_webhook(result, webhook)
                if not json_output:
                    console.print("[info]Webhook notification sent[/info]")
            except WebhookError as e:
                console.print(f"[warning]WARNING: {e}[/warning]")

        if profiler:
            profiler.disable()
            console.print("\n[bold cyan]Performance Profile (Top 20 Functions)[/bold cyan]\n")
            stats_stream = StringIO()
            stats = pstats.Stats(profiler, stream=stats_stream)
            stats.strip_dirs()
            stats.sort_stats("cumulative")
            stats.print_stats(20)
            console.print(stats_stream.getvalue())

        sys.exit(exit_code_for(result))

    except (MemwatchDiffError, OSError) as e:
        console.print(f"[critical]ERROR: {e}[/critical]")
        sys.exit(EXIT_ERROR)


@app.command()
def inspect(
    snapshot_file: SnapshotPath,
    top: Annotated[
        int,
        typer.Option("--top", "-n", help="Number of types to display", min=1),
    ] = 20,
    by_name: Annotated[
        bool,
        typer.Option(
            "--by-name",
            help="Group every node by its name, including strings and closures",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output"),
    ] = False,
) -> None:
    """Show the largest types in a single heap snapshot."""
    configure_logging(verbose)
    try:
        snapshot = load_snapshot(snapshot_file)
    except (MemwatchDiffError, OSError) as e:
        console.print(f"[critical]ERROR: {e}[/critical]")
        sys.exit(EXIT_ERROR)

    aggregates = aggregate_types(snapshot, AnalysisConfig(group_by_node_type=not by_name))
    console.print(
        f"[info]{snapshot_file.name}: {snapshot.node_count:,} nodes, "
        f"{len(aggregates):,} types, "
        f"{format_bytes_human(total_size(aggregates))} total self size[/info]"
    )
    console.print(render_type_table(aggregates, title="Largest Types", top=top))


@app.command()
def version() -> None:
    """Display version."""
    console.print(f"memwatch-diff {__version__}")


if __name__ == "__main__":
    app()

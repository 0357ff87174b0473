"""
Filter command: confidence-threshold reclassification of classifier output.

Reads Kraken-style per-sequence output, moves each call up to the lowest
ancestor that holds at least the requested fraction of the sequence's
unambiguous k-mers, and writes the reclassified lines.
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from pydantic import ValidationError

from taxorefine.cli.utils import (
    QuietConsole,
    build_taxonomy_config,
    configure_logging,
    console,
    load_taxonomy_or_exit,
    print_error,
    resolve_output,
    spinner_progress,
)
from taxorefine.core.io_utils import open_text, std_stream
from taxorefine.core.reclassify import Reclassifier
from taxorefine.core.stream import ClassificationStreamProcessor
from taxorefine.models.config import FilterConfig


def build_filter_config(
    config_file: Path | None,
    threshold: float | None,
    threads: int | None,
    ordered: bool | None,
    strict_confidence: bool | None,
) -> FilterConfig:
    """Combine a YAML config (if any) with explicit CLI options, which win."""
    base = FilterConfig.from_yaml(config_file) if config_file else FilterConfig()
    overrides = {
        "threshold": threshold,
        "workers": threads,
        "ordered": ordered,
        "strict_confidence": strict_confidence,
    }
    merged = base.model_dump()
    merged.update({key: value for key, value in overrides.items() if value is not None})
    return FilterConfig(**merged)


def filter_classifications(
    db: Path = typer.Option(
        ...,
        "--db", "-d",
        help="Kraken database directory (with taxonomy/nodes.dmp)",
        exists=True,
        file_okay=False,
    ),
    input_file: Path | None = typer.Option(
        None,
        "--input", "-i",
        help="Classifier output to filter (default: stdin; .gz accepted)",
        exists=True,
        dir_okay=False,
    ),
    output: Path | None = typer.Option(
        None,
        "--output", "-o",
        help="Write reclassified lines here (default: stdout; .gz compresses)",
    ),
    threshold: float | None = typer.Option(
        None,
        "--threshold", "-t",
        help="Confidence threshold (0-1) [default: 0]",
        min=0.0,
        max=1.0,
    ),
    threads: int | None = typer.Option(
        None,
        "--threads", "-p",
        help="Number of worker threads [default: 4]",
        min=1,
    ),
    ordered: bool | None = typer.Option(
        None,
        "--ordered/--unordered",
        help="Keep input order in the output (default: unordered)",
    ),
    strict_confidence: bool | None = typer.Option(
        None,
        "--strict-confidence",
        help="Report P=0.000 when no ancestor reaches the threshold",
    ),
    strict_taxonomy: bool | None = typer.Option(
        None,
        "--strict-taxonomy/--lenient-taxonomy",
        help="Validate the taxonomy and fail on dangling parents or cycles (default: lenient)",
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config", "-c",
        help="YAML file with filter (and taxonomy) settings; explicit options override it",
        exists=True,
        dir_okay=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose output",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet", "-q",
        help="Suppress progress output",
    ),
) -> None:
    """
    Reclassify sequences at the lowest ancestor meeting a confidence threshold.

    Confidence is the fraction of a sequence's unambiguous k-mers that hit
    the candidate taxon or any of its descendants.

    Example:

        taxorefine filter \\
            --db /path/to/kraken_db \\
            --threshold 0.15 \\
            --input sample.kraken \\
            --output sample.filtered.kraken
    """
    configure_logging(verbose=verbose, quiet=quiet)
    out = QuietConsole(console, quiet=quiet)

    try:
        config = build_filter_config(config_file, threshold, threads, ordered, strict_confidence)
        taxonomy_config = build_taxonomy_config(config_file, db, strict_taxonomy)
    except (ValidationError, ValueError) as e:
        print_error(f"Invalid filter configuration: {e}")
        raise typer.Exit(code=1) from None

    out.print("\n[bold blue]Taxorefine Confidence Filter[/bold blue]\n")
    out.print("[bold]Parameters:[/bold]")
    out.print(f"  Threshold:  {config.threshold}")
    out.print(f"  Threads:    {config.workers}")
    out.print(f"  Ordered:    {config.ordered}")

    taxonomy = load_taxonomy_or_exit(
        taxonomy_config,
        quiet=quiet,
    )
    out.print(f"  Taxonomy:   {len(taxonomy):,} taxa")

    reclassifier = Reclassifier(
        taxonomy,
        threshold=config.threshold,
        strict_confidence=config.strict_confidence,
    )
    processor = ClassificationStreamProcessor.from_config(reclassifier, config)

    source = open_text(input_file) if input_file else std_stream(sys.stdin)
    sink = open_text(resolve_output(output), "w") if output else std_stream(sys.stdout)
    try:
        with spinner_progress("Reclassifying...", console, quiet):
            stats = processor.process_stream(source, sink)
    finally:
        if input_file:
            source.close()
        if output:
            sink.close()
        else:
            sink.flush()

    out.print("\n[bold green]Filtering complete![/bold green]")
    out.print(f"  Records:       {stats.records_read:,}")
    out.print(f"  Classified:    {stats.classified:,}")
    out.print(f"  Unclassified:  {stats.unclassified:,}")
    if stats.skipped:
        out.print(f"  [yellow]Skipped:       {stats.skipped:,} malformed[/yellow]")
    if stats.missing_ancestor:
        out.print(
            f"  [yellow]Missing taxa:  {stats.missing_ancestor:,} records "
            f"(reported unclassified)[/yellow]"
        )
    if output:
        out.print(f"\n[bold]Output:[/bold] {output}")

"""
Report commands: clade summary reports from per-sequence assignments.

Provides:
- report: Count assignments per taxon, roll them up the taxonomy and write a
  Kraken-style report (or a CSV/Parquet table of the same rows)
- summarize: Show the largest clades at one rank from an existing report
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

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
from taxorefine.core.constants import RANK_CODES, UNCLASSIFIED_RANK_CODE
from taxorefine.core.io_utils import open_text, std_stream, write_dataframe
from taxorefine.core.report import CladeAggregator, KrakenReport, ReportRenderer
from taxorefine.models.config import ReportConfig

VALID_RANK_CODES = frozenset(RANK_CODES.values()) | {UNCLASSIFIED_RANK_CODE, "-"}


def build_report_config(
    config_file: Path | None,
    show_zeros: bool | None,
    output_format: str | None,
) -> ReportConfig:
    """Combine a YAML config (if any) with explicit CLI options, which win."""
    base = ReportConfig.from_yaml(config_file) if config_file else ReportConfig()
    merged = base.model_dump()
    if show_zeros is not None:
        merged["show_zeros"] = show_zeros
    if output_format is not None:
        merged["output_format"] = output_format.lower()
    return ReportConfig(**merged)


def report_clades(
    db: Path = typer.Option(
        ...,
        "--db", "-d",
        help="Kraken database directory (with taxonomy/nodes.dmp and names.dmp)",
        exists=True,
        file_okay=False,
    ),
    input_file: Path | None = typer.Option(
        None,
        "--input", "-i",
        help="Classified sequences (default: stdin; .gz accepted)",
        exists=True,
        dir_okay=False,
    ),
    output: Path | None = typer.Option(
        None,
        "--output", "-o",
        help="Report destination (default: stdout; required for csv/parquet)",
    ),
    show_zeros: bool | None = typer.Option(
        None,
        "--show-zeros/--hide-zeros",
        help="Include taxa with no assigned sequences (default: hide)",
    ),
    output_format: str | None = typer.Option(
        None,
        "--format", "-f",
        help="Output format: kraken, csv or parquet [default: kraken]",
    ),
    strict_taxonomy: bool | None = typer.Option(
        None,
        "--strict-taxonomy/--lenient-taxonomy",
        help="Validate the taxonomy and fail on dangling parents or cycles (default: lenient)",
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config", "-c",
        help="YAML file with report (and taxonomy) settings; explicit options override it",
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
    Build a clade report from classified sequences.

    Each line gives the percentage and number of sequences in the clade,
    the number assigned directly to the taxon, its rank code, taxid and
    indented scientific name.

    Example:

        taxorefine report \\
            --db /path/to/kraken_db \\
            --input sample.filtered.kraken \\
            --output sample.kreport
    """
    configure_logging(verbose=verbose, quiet=quiet)
    out = QuietConsole(console, quiet=quiet)

    try:
        config = build_report_config(config_file, show_zeros, output_format)
        taxonomy_config = build_taxonomy_config(config_file, db, strict_taxonomy)
    except (ValidationError, ValueError) as e:
        print_error(f"Invalid report configuration: {e}")
        raise typer.Exit(code=1) from None

    if config.output_format != "kraken" and output is None:
        print_error(
            f"--output is required for {config.output_format} output",
            "Use --format kraken to write the text report to stdout.",
        )
        raise typer.Exit(code=1)

    out.print("\n[bold blue]Taxorefine Clade Report[/bold blue]\n")

    taxonomy = load_taxonomy_or_exit(
        taxonomy_config,
        require_names=True,
        quiet=quiet,
    )

    aggregator = CladeAggregator(taxonomy)
    source = open_text(input_file) if input_file else std_stream(sys.stdin)
    try:
        with spinner_progress("Counting assignments...", console, quiet):
            aggregator.scan(source)
    finally:
        if input_file:
            source.close()

    with spinner_progress("Aggregating clades...", console, quiet):
        counts = aggregator.aggregate()

    renderer = ReportRenderer(taxonomy, counts, show_zeros=config.show_zeros)
    if config.output_format == "kraken":
        sink = open_text(resolve_output(output), "w") if output else std_stream(sys.stdout)
        try:
            n_lines = renderer.render(sink.write)
        finally:
            if output:
                sink.close()
            else:
                sink.flush()
    else:
        df = renderer.to_dataframe()
        write_dataframe(df, resolve_output(output), config.output_format)
        n_lines = df.height

    out.print("[bold green]Report complete![/bold green]")
    out.print(f"  Sequences:     {counts.total_records:,}")
    out.print(
        f"  Unclassified:  {counts.direct_count(0):,} "
        f"({counts.unclassified_percentage:.2f}%)"
    )
    out.print(f"  Report lines:  {n_lines:,}")
    if aggregator.skipped_records:
        out.print(f"  [yellow]Skipped:       {aggregator.skipped_records:,} malformed[/yellow]")
    if counts.unplaced_records:
        out.print(
            f"  [yellow]Unplaced:      {counts.unplaced_records:,} "
            f"(taxa missing from the taxonomy)[/yellow]"
        )
    if output:
        out.print(f"\n[bold]Output:[/bold] {output}")


def summarize_report(
    report: Path = typer.Option(
        ...,
        "--report", "-r",
        help="Clade report written by 'taxorefine report' (text, CSV or Parquet)",
        exists=True,
        dir_okay=False,
    ),
    rank: str = typer.Option(
        "S",
        "--rank",
        help="Rank code to list (S, G, F, O, C, P, K, D)",
    ),
    top: int = typer.Option(
        10,
        "--top", "-n",
        help="Number of clades to show",
        min=1,
    ),
) -> None:
    """
    Show the largest clades at one rank of an existing report.

    Example:

        taxorefine summarize --report sample.kreport --rank G --top 20
    """
    rank = rank.upper()
    if rank not in VALID_RANK_CODES:
        print_error(
            f"Unknown rank code: {rank}",
            f"Choose one of: {', '.join(sorted(VALID_RANK_CODES))}",
        )
        raise typer.Exit(code=1)

    try:
        rows = KrakenReport(report).rank_rows(rank)
    except ValueError as e:
        print_error(f"Cannot read report: {e}")
        raise typer.Exit(code=1) from None
    if not rows:
        console.print(f"[yellow]No taxa at rank {rank} in {report}[/yellow]")
        raise typer.Exit(code=0)

    largest = sorted(rows, key=lambda row: row.clade_count, reverse=True)[:top]

    table = Table(title=f"Top {len(largest)} clades at rank {rank}")
    table.add_column("Taxid", justify="right")
    table.add_column("Name")
    table.add_column("Clade", justify="right")
    table.add_column("Direct", justify="right")
    table.add_column("%", justify="right")
    for row in largest:
        table.add_row(
            str(row.taxon_id),
            row.name,
            f"{row.clade_count:,}",
            f"{row.direct_count:,}",
            f"{row.percentage:.2f}",
        )
    Console().print(table)

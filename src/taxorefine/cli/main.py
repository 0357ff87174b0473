"""
Main CLI entry point for taxorefine.

Provides one command per post-processing step of k-mer classifier output:
- filter: Reclassify sequences at a confidence threshold
- report: Build a clade report from classified sequences
- summarize: Show the largest clades at one rank of a report
"""

from __future__ import annotations

import typer
from rich import print as rprint

from taxorefine import __version__
from taxorefine.cli import filter as filter_cmd  # Alias to avoid shadowing builtin
from taxorefine.cli import report

app = typer.Typer(
    name="taxorefine",
    help="Confidence filtering and clade reports for k-mer taxonomic classifications",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        rprint(f"taxorefine version {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    Taxorefine: post-processing for Kraken-style k-mer classifications.

    Re-anchor calls at the lowest ancestor with enough k-mer support, and
    summarise classified sequences as a depth-indented clade report.
    """


app.command(name="filter")(filter_cmd.filter_classifications)
app.command(name="report")(report.report_clades)
app.command(name="summarize")(report.summarize_report)


if __name__ == "__main__":
    app()

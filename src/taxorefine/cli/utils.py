"""
Shared CLI utilities for taxorefine commands.

Provides console handling, logging setup, and taxonomy loading with
operator-friendly error reporting.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from taxorefine.core.exceptions import TaxonomyError
from taxorefine.core.taxonomy import TaxonomyTree
from taxorefine.models.config import TaxonomyConfig

# Status messages go to stderr; stdout is reserved for data
console = Console(stderr=True)


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route library logging through Rich on stderr.

    Args:
        verbose: Log at DEBUG level.
        quiet: Log warnings and errors only. Ignored when verbose is set.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=verbose, markup=False)],
        force=True,
    )


@contextmanager
def spinner_progress(
    description: str,
    console: Console | None = None,
    quiet: bool = False,
) -> Generator[Progress, None, None]:
    """Context manager for spinner-style progress display.

    The spinner is suppressed when quiet mode is enabled.

    Args:
        description: Task description to display.
        console: Rich Console instance to draw on.
        quiet: If True, suppress the progress display entirely.

    Yields:
        Progress instance (even when quiet, for API consistency).
    """
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        disable=quiet,
        transient=True,
    ) as progress:
        progress.add_task(description=description, total=None)
        yield progress


class QuietConsole:
    """Console wrapper that drops ``print`` output in quiet mode.

    Everything other than ``print`` is delegated to the wrapped console, so
    errors printed through ``.console`` are always shown.
    """

    def __init__(self, console: Console, quiet: bool = False):
        self._console = console
        self._quiet = quiet

    @property
    def console(self) -> Console:
        """The wrapped Console, for output that must not be suppressed."""
        return self._console

    def print(self, *args: Any, **kwargs: Any) -> None:
        if not self._quiet:
            self._console.print(*args, **kwargs)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._console, name)


def build_taxonomy_config(
    config_file: Path | None,
    db_path: Path,
    strict: bool | None,
) -> TaxonomyConfig:
    """Taxonomy settings from the ``taxonomy:`` section of a config file, if any.

    ``--db`` always wins, and ``strict`` wins when given explicitly.
    """
    base = TaxonomyConfig.from_yaml(config_file) if config_file else TaxonomyConfig()
    merged = base.model_dump()
    merged["db_path"] = db_path
    if strict is not None:
        merged["strict"] = strict
    return TaxonomyConfig(**merged)


def load_taxonomy_or_exit(
    config: TaxonomyConfig,
    require_names: bool = False,
    quiet: bool = False,
) -> TaxonomyTree:
    """Load the taxonomy for a command, exiting with code 1 on failure.

    A missing or (in strict mode) invalid taxonomy is fatal and is reported
    before any records are read.
    """
    if config.db_path is None:
        console.print("[red]Error: no taxonomy database given (--db)[/red]")
        raise typer.Exit(code=1)
    try:
        with spinner_progress("Loading taxonomy...", console, quiet):
            return TaxonomyTree.from_directory(
                config.db_path,
                require_names=require_names,
                strict=config.strict,
            )
    except TaxonomyError as e:
        print_error(e.message, e.suggestion)
        raise typer.Exit(code=1) from None


def print_error(message: str, suggestion: str | None = None) -> None:
    """Print an error (and optional suggestion) to stderr."""
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
    if suggestion:
        console.print(f"\n[dim]{escape(suggestion)}[/dim]")


def resolve_output(output: Path | None) -> Path | None:
    """Create the parent directory of an output file if needed."""
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
    return output

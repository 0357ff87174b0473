"""
Unit tests for shared CLI helpers and option merging.
"""

from __future__ import annotations

from io import StringIO
from pathlib import Path

import pytest
import typer
from rich.console import Console

from taxorefine.cli.filter import build_filter_config
from taxorefine.cli.report import build_report_config
from taxorefine.cli.utils import (
    QuietConsole,
    build_taxonomy_config,
    load_taxonomy_or_exit,
    resolve_output,
)
from taxorefine.models.config import TaxonomyConfig


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "taxorefine.yaml"
    path.write_text(
        "filter:\n  threshold: 0.4\n  workers: 6\n"
        "report:\n  show_zeros: true\n"
        "taxonomy:\n  strict: true\n"
    )
    return path


class TestOptionMerging:
    """Explicit options override config file values."""

    def test_filter_defaults_without_file(self):
        config = build_filter_config(None, None, None, None, None)
        assert config.threshold == 0.0
        assert config.workers == 4

    def test_filter_file_values(self, config_file: Path):
        config = build_filter_config(config_file, None, None, None, None)
        assert config.threshold == 0.4
        assert config.workers == 6

    def test_filter_cli_wins(self, config_file: Path):
        config = build_filter_config(config_file, 0.9, 2, True, True)
        assert config.threshold == 0.9
        assert config.workers == 2
        assert config.ordered is True
        assert config.strict_confidence is True

    def test_report_cli_wins(self, config_file: Path):
        assert build_report_config(config_file, None, None).show_zeros is True
        config = build_report_config(config_file, False, "CSV")
        assert config.show_zeros is False
        assert config.output_format == "csv"

    def test_taxonomy_db_always_from_cli(self, config_file: Path, tmp_path: Path):
        config = build_taxonomy_config(config_file, tmp_path, None)
        assert config == TaxonomyConfig(db_path=tmp_path, strict=True)
        assert build_taxonomy_config(config_file, tmp_path, False).strict is False

    def test_taxonomy_flat_file_without_section(self, tmp_path: Path):
        """A filter-only file leaves taxonomy settings at their defaults."""
        path = tmp_path / "filter.yaml"
        path.write_text("threshold: 0.2\n")
        assert build_taxonomy_config(path, tmp_path, None).strict is False


class TestQuietConsole:
    """Tests for QuietConsole."""

    def test_print_suppressed_when_quiet(self):
        buffer = StringIO()
        out = QuietConsole(Console(file=buffer), quiet=True)
        out.print("hidden")
        out.console.print("shown")
        assert buffer.getvalue() == "shown\n"

    def test_print_passes_through(self):
        buffer = StringIO()
        QuietConsole(Console(file=buffer)).print("hello")
        assert buffer.getvalue() == "hello\n"


class TestTaxonomyLoading:
    """Tests for load_taxonomy_or_exit."""

    def test_loads(self, taxonomy_db: Path):
        tree = load_taxonomy_or_exit(TaxonomyConfig(db_path=taxonomy_db), quiet=True)
        assert 11 in tree

    def test_missing_db_path(self):
        with pytest.raises(typer.Exit):
            load_taxonomy_or_exit(TaxonomyConfig(), quiet=True)

    def test_missing_files(self, tmp_path: Path):
        with pytest.raises(typer.Exit) as exc_info:
            load_taxonomy_or_exit(TaxonomyConfig(db_path=tmp_path), quiet=True)
        assert exc_info.value.exit_code == 1


def test_resolve_output_creates_parent(tmp_path: Path):
    output = tmp_path / "nested" / "dir" / "report.txt"
    assert resolve_output(output) == output
    assert output.parent.is_dir()
    assert resolve_output(None) is None

"""
E2E test fixtures for taxorefine CLI testing.

Provides a CLI runner plus on-disk classifier output to run the commands
against.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from tests.factories import classification_line


# =============================================================================
# Core Fixtures
# =============================================================================


@pytest.fixture
def e2e_runner() -> CliRunner:
    """Provide a CLI runner for E2E tests."""
    return CliRunner()


@pytest.fixture
def kraken_output(tmp_path: Path) -> Path:
    """Classifier output over STANDARD_TAXA, one line per behaviour."""
    path = tmp_path / "sample.kraken"
    path.write_text("\n".join([
        classification_line("read_1", 11, "11:10"),
        classification_line("read_2", 11, "11:4 12:4 A:3"),
        classification_line("read_3", 21, "21:3 11:3"),
        classification_line("read_4", 0, "0:20"),
        classification_line("read_5", 30, "30:9 0:1"),
        classification_line("read_6", 12, "12:2 0:8"),
    ]) + "\n")
    return path


@pytest.fixture
def empty_db(tmp_path: Path) -> Path:
    """Database directory without any taxonomy files."""
    db = tmp_path / "empty_db"
    db.mkdir()
    return db

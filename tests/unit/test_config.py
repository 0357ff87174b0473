"""
Unit tests for configuration models.

Tests FilterConfig, ReportConfig and TaxonomyConfig including range
validation and YAML loading and serialization.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from taxorefine.models.config import FilterConfig, ReportConfig, TaxonomyConfig


class TestFilterConfig:
    """Tests for FilterConfig model."""

    def test_default_values(self):
        config = FilterConfig()
        assert config.threshold == 0.0
        assert config.workers == 4
        assert config.ordered is False
        assert config.strict_confidence is False
        assert config.effective_queue_size == 16

    def test_explicit_queue_size(self):
        assert FilterConfig(workers=2, queue_size=3).effective_queue_size == 3

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"threshold": -0.01},
            {"threshold": 1.5},
            {"workers": 0},
            {"queue_size": 0},
        ],
    )
    def test_rejects_out_of_range(self, kwargs):
        with pytest.raises(ValidationError):
            FilterConfig(**kwargs)

    def test_frozen(self):
        config = FilterConfig()
        with pytest.raises(ValidationError):
            config.threshold = 0.5

    def test_from_yaml_nested(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "filter:\n"
            "  threshold: 0.15\n"
            "  workers: 8\n"
            "  strict-confidence: true\n"
            "report:\n"
            "  show_zeros: true\n"
        )
        config = FilterConfig.from_yaml(path)
        assert config.threshold == 0.15
        assert config.workers == 8
        assert config.strict_confidence is True

    def test_from_yaml_flat(self, tmp_path: Path):
        path = tmp_path / "filter.yaml"
        path.write_text("threshold: 0.3\nordered: true\nqueue_size: null\n")
        config = FilterConfig.from_yaml(path)
        assert config.threshold == 0.3
        assert config.ordered is True
        assert config.queue_size is None

    def test_from_yaml_empty_file(self, tmp_path: Path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert FilterConfig.from_yaml(path) == FilterConfig()

    def test_from_yaml_rejects_non_mapping(self, tmp_path: Path):
        path = tmp_path / "list.yaml"
        path.write_text("- 0.5\n- 4\n")
        with pytest.raises(ValueError, match="mapping"):
            FilterConfig.from_yaml(path)

    def test_from_yaml_validates(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("filter:\n  threshold: 2.0\n")
        with pytest.raises(ValidationError):
            FilterConfig.from_yaml(path)

    def test_yaml_round_trip(self, tmp_path: Path):
        config = FilterConfig(threshold=0.2, workers=2, ordered=True)
        path = tmp_path / "out.yaml"
        path.write_text(config.to_yaml_str())
        assert yaml.safe_load(path.read_text())["filter"]["threshold"] == 0.2
        assert FilterConfig.from_yaml(path) == config


class TestReportConfig:
    """Tests for ReportConfig model."""

    def test_default_values(self):
        config = ReportConfig()
        assert config.show_zeros is False
        assert config.output_format == "kraken"

    def test_rejects_unknown_format(self):
        with pytest.raises(ValidationError):
            ReportConfig(output_format="json")

    def test_from_yaml_nested(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("report:\n  show-zeros: true\n  output_format: parquet\n")
        config = ReportConfig.from_yaml(path)
        assert config.show_zeros is True
        assert config.output_format == "parquet"

    def test_to_yaml_str(self):
        data = yaml.safe_load(ReportConfig(output_format="csv").to_yaml_str())
        assert data == {"report": {"show_zeros": False, "output_format": "csv"}}


class TestTaxonomyConfig:
    """Tests for TaxonomyConfig model."""

    def test_defaults(self):
        config = TaxonomyConfig()
        assert config.db_path is None
        assert config.strict is False

    def test_path_coercion(self):
        assert TaxonomyConfig(db_path="/data/db").db_path == Path("/data/db")

    def test_yaml_round_trip(self, tmp_path: Path):
        """Paths are written as plain strings and read back as Paths."""
        config = TaxonomyConfig(db_path=Path("/data/kraken_db"), strict=True)
        path = tmp_path / "taxonomy.yaml"
        path.write_text(config.to_yaml_str())
        assert yaml.safe_load(path.read_text()) == {
            "taxonomy": {"db_path": "/data/kraken_db", "strict": True},
        }
        assert TaxonomyConfig.from_yaml(path) == config

    def test_empty_section_uses_defaults(self, tmp_path: Path):
        path = tmp_path / "taxorefine.yaml"
        path.write_text("filter:\n  threshold: 0.5\ntaxonomy:\n")
        assert TaxonomyConfig.from_yaml(path) == TaxonomyConfig()
        assert FilterConfig.from_yaml(path).threshold == 0.5

    def test_scalar_section_rejected(self, tmp_path: Path):
        path = tmp_path / "taxorefine.yaml"
        path.write_text("taxonomy: strict\n")
        with pytest.raises(ValueError, match="Section 'taxonomy' must be a mapping"):
            TaxonomyConfig.from_yaml(path)

"""
Pydantic configuration models for taxorefine.

These models define configuration for threshold reclassification, clade
report rendering, and taxonomy loading. Configuration can be loaded from
YAML files or supplied through CLI arguments.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ReportFormat = Literal["kraken", "csv", "parquet"]


class TaxonomyConfig(BaseModel):
    """Location of the taxonomy dump and how strictly to treat it."""

    db_path: Path | None = Field(
        default=None,
        description="Kraken database directory holding taxonomy/nodes.dmp and names.dmp",
    )
    strict: bool = Field(
        default=False,
        description=(
            "Validate the taxonomy on load and reject lookups of undefined taxa "
            "instead of treating them as leaves."
        ),
    )

    @classmethod
    def from_yaml(cls, path: Path) -> TaxonomyConfig:
        """Load taxonomy settings from a YAML file (flat or under ``taxonomy:``)."""
        return cls(**_load_section(path, "taxonomy"))

    def to_yaml_str(self) -> str:
        import yaml

        return yaml.dump(
            {"taxonomy": self.model_dump(mode="json")},
            default_flow_style=False,
            sort_keys=False,
        )

    model_config = {"frozen": True}


class FilterConfig(BaseModel):
    """
    Configuration for confidence-threshold reclassification.

    A record is re-anchored at the lowest ancestor of its called taxon whose
    clade accounts for at least ``threshold`` of the record's unambiguous
    k-mers.

    Concurrency:
        workers reclassify records in parallel. With ordered=False output
        lines appear in completion order; ordered=True buffers them and
        restores input order, holding at most 2 x queue_size lines in flight.
    """

    threshold: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Minimum fraction of unambiguous k-mers supporting the call",
    )
    workers: int = Field(
        default=4,
        ge=1,
        description="Number of reclassification worker threads",
    )
    ordered: bool = Field(
        default=False,
        description="Emit output lines in input order",
    )
    strict_confidence: bool = Field(
        default=False,
        description=(
            "Report confidence 0 when no ancestor qualifies, instead of the "
            "last fraction computed during the walk"
        ),
    )
    queue_size: int | None = Field(
        default=None,
        ge=1,
        description="Capacity of the input and output queues (default: 4 x workers)",
    )

    @property
    def effective_queue_size(self) -> int:
        return self.queue_size or 4 * self.workers

    @classmethod
    def from_yaml(cls, path: Path) -> FilterConfig:
        """
        Load filter configuration from a YAML file.

        Accepts either a flat mapping or one nested under a ``filter:`` key.
        """
        return cls(**_load_section(path, "filter"))

    def to_yaml_str(self) -> str:
        import yaml

        return yaml.dump({"filter": self.model_dump()}, default_flow_style=False, sort_keys=False)

    model_config = {"frozen": True}


class ReportConfig(BaseModel):
    """Configuration for clade report rendering."""

    show_zeros: bool = Field(
        default=False,
        description="Include taxa with a clade count of zero",
    )
    output_format: ReportFormat = Field(
        default="kraken",
        description="'kraken' for the indented text report, or a tabular export",
    )

    @classmethod
    def from_yaml(cls, path: Path) -> ReportConfig:
        """Load report configuration from a YAML file (flat or under ``report:``)."""
        return cls(**_load_section(path, "report"))

    def to_yaml_str(self) -> str:
        import yaml

        return yaml.dump({"report": self.model_dump()}, default_flow_style=False, sort_keys=False)

    model_config = {"frozen": True}


def _load_section(path: Path, section: str) -> dict[str, Any]:
    """Read a YAML file and return the named section, or the whole mapping."""
    import yaml

    logger.debug("Loading %s configuration from %s", section, path)
    raw = yaml.safe_load(path.read_text()) or {}
    if not isinstance(raw, dict):
        msg = f"Configuration file must contain a mapping: {path}"
        raise ValueError(msg)
    data = raw.get(section, raw) or {}
    if not isinstance(data, dict):
        msg = f"Section '{section}' must be a mapping: {path}"
        raise ValueError(msg)
    return {k.replace("-", "_"): v for k, v in data.items() if v is not None}

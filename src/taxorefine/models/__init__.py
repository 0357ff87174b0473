"""
Data models for taxorefine.

Provides lightweight record types for the per-sequence hot path and
Pydantic models for configuration.
"""

from taxorefine.models.config import FilterConfig, ReportConfig, TaxonomyConfig
from taxorefine.models.records import (
    Assignment,
    ClassificationRecord,
    HitProfile,
    NameRecord,
    NodeRecord,
    RefinedCall,
    TaxonomyNode,
)

__all__ = [
    "Assignment",
    "ClassificationRecord",
    "FilterConfig",
    "HitProfile",
    "NameRecord",
    "NodeRecord",
    "RefinedCall",
    "ReportConfig",
    "TaxonomyConfig",
    "TaxonomyNode",
]

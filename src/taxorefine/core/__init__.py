"""
Core algorithms for taxonomy-based reclassification and reporting.

This module contains the taxonomy tree, the confidence-threshold
reclassifier with its concurrent stream harness, and clade aggregation
with report rendering.
"""

from taxorefine.core.reclassify import Reclassifier
from taxorefine.core.report import CladeAggregator, CladeCounts, KrakenReport, ReportRenderer
from taxorefine.core.stream import ClassificationStreamProcessor, StreamStats
from taxorefine.core.taxonomy import TaxonomyTree

__all__ = [
    "CladeAggregator",
    "CladeCounts",
    "ClassificationStreamProcessor",
    "KrakenReport",
    "Reclassifier",
    "ReportRenderer",
    "StreamStats",
    "TaxonomyTree",
]

"""
Taxorefine: post-processing for k-mer taxonomic classifier output.

Refines Kraken-style per-sequence calls by re-anchoring each one at the
lowest ancestor holding enough of its unambiguous k-mer hits, and summarises
assignments as clade-count reports over the NCBI taxonomy tree.
"""

__version__ = "0.1.0"
__author__ = "Taxorefine Team"

from taxorefine.core.reclassify import Reclassifier
from taxorefine.core.report import CladeAggregator, ReportRenderer
from taxorefine.core.stream import ClassificationStreamProcessor
from taxorefine.core.taxonomy import TaxonomyTree
from taxorefine.models.records import ClassificationRecord, RefinedCall

__all__ = [
    "CladeAggregator",
    "ClassificationRecord",
    "ClassificationStreamProcessor",
    "Reclassifier",
    "RefinedCall",
    "ReportRenderer",
    "TaxonomyTree",
    "__version__",
]

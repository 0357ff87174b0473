"""
Confidence-threshold reclassification of k-mer classifier calls.

For each record the k-mer hits of every taxon are credited to that taxon and
all of its ancestors. The call is then moved up from the originally called
taxon to the first ancestor whose credited hits reach the requested fraction
of the record's unambiguous k-mers.

Records are independent of one another and the taxonomy is read-only, so a
single Reclassifier can be shared by any number of worker threads.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import NamedTuple

from taxorefine.core.constants import CONFIDENCE_EPSILON, UNCLASSIFIED_TAXID
from taxorefine.core.exceptions import InvalidThresholdError, MalformedRecordError, MissingAncestorError
from taxorefine.core.parsers import parse_classification_line, parse_hit_list
from taxorefine.core.taxonomy import TaxonomyTree
from taxorefine.models.records import ClassificationRecord, HitProfile, RefinedCall

logger = logging.getLogger(__name__)


class Reclassifier:
    """
    Re-anchor classification calls at the lowest sufficiently supported ancestor.

    Args:
        taxonomy: Shared, read-only taxonomy tree.
        threshold: Required fraction (0-1) of unambiguous k-mers.
        strict_confidence: When no ancestor qualifies, report confidence 0
            instead of the fraction last computed during the walk.

    Example:
        >>> reclassifier = Reclassifier(tree, threshold=0.5)
        >>> reclassifier.process_line("C\\tread1\\t3\\t150\\t3:10")
        'C\\tread1\\t3\\t150\\tP=1.000\\t3:10'
    """

    def __init__(
        self,
        taxonomy: TaxonomyTree,
        threshold: float,
        strict_confidence: bool = False,
    ) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise InvalidThresholdError("threshold", threshold, 0.0, 1.0)
        self.taxonomy = taxonomy
        self.threshold = threshold
        self.strict_confidence = strict_confidence
        self._cutoff = threshold - CONFIDENCE_EPSILON

    def hit_sums(self, profile: HitProfile) -> dict[int, int]:
        """
        Credit each hit taxon's count to itself and every ancestor.

        Only nodes on the lineage of some hit taxon appear in the result.

        Raises:
            MissingAncestorError: If a hit taxon or one of its ancestors is
                not defined in the taxonomy.
        """
        sums: dict[int, int] = {}
        for taxid, count in profile.taxon_counts():
            for node in self.taxonomy.lineage(taxid):
                sums[node] = sums.get(node, 0) + count
        return sums

    def resolve(
        self,
        called_taxon_id: int,
        sums: Mapping[int, int],
        total_unambiguous: int,
    ) -> RefinedCall:
        """
        Walk up from the called taxon and accept the first node over threshold.

        The fraction is recomputed only at nodes that carry a hit sum. If the
        walk runs past the root the record is unclassified and, unless
        strict_confidence is set, keeps the last fraction computed.
        """
        pct = 0.0
        for node in self.taxonomy.lineage(called_taxon_id):
            support = sums.get(node)
            if support is not None and total_unambiguous > 0:
                pct = support / total_unambiguous
            if pct >= self._cutoff:
                return RefinedCall(node, pct)
        if self.strict_confidence:
            pct = 0.0
        return RefinedCall(UNCLASSIFIED_TAXID, pct)

    def reclassify_or_raise(self, record: ClassificationRecord) -> RefinedCall:
        """
        Reclassify one record, propagating lineage errors.

        Raises:
            MalformedRecordError: If the hit list cannot be parsed.
            MissingAncestorError: If a lineage reaches an undefined taxon.
        """
        try:
            profile = parse_hit_list(record.raw_hit_list)
        except ValueError as e:
            raise MalformedRecordError(record.raw_hit_list, str(e)) from None

        total = profile.total_unambiguous
        if total == 0:
            return RefinedCall(UNCLASSIFIED_TAXID, 0.0)
        return self.resolve(record.called_taxon_id, self.hit_sums(profile), total)

    def reclassify(self, record: ClassificationRecord) -> RefinedCall:
        """
        Reclassify one record.

        A lineage that runs into an undefined taxon makes the record
        unclassified with confidence 0; the error is logged, not raised.
        """
        return self.process_record(record).call

    def process_record(self, record: ClassificationRecord) -> ProcessedRecord:
        """Reclassify one record and render its output line."""
        missing_ancestor = False
        try:
            call = self.reclassify_or_raise(record)
        except MissingAncestorError as e:
            logger.warning("Sequence %s left unclassified: %s", record.sequence_id, e.message)
            call = RefinedCall(UNCLASSIFIED_TAXID, 0.0)
            missing_ancestor = True
        return ProcessedRecord(format_refined(record, call), call, missing_ancestor)

    def process_line(self, line: str, line_num: int | None = None) -> str:
        """Parse, reclassify and format one classifier output line."""
        return self.process_record(parse_classification_line(line, line_num)).text


class ProcessedRecord(NamedTuple):
    """Output line of one record plus what the stream needs for its tallies."""

    text: str
    call: RefinedCall
    missing_ancestor: bool


def format_refined(record: ClassificationRecord, call: RefinedCall) -> str:
    """
    Render a reclassified record in classifier output format.

    The hit list is echoed verbatim; the length column is passed through.
    """
    status = "C" if call.is_classified else "U"
    return (
        f"{status}\t{record.sequence_id}\t{call.new_taxon_id}\t"
        f"{record.sequence_length}\tP={call.confidence:.3f}\t{record.raw_hit_list}"
    )

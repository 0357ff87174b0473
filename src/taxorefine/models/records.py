"""
Lightweight record types for taxonomy and classification processing.

These NamedTuples avoid Pydantic validation overhead in hot paths: one is
created per classification line, and inputs routinely run to tens of
millions of lines.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import NamedTuple

from taxorefine.core.constants import AMBIGUOUS_KEYS, UNCLASSIFIED_TAXID


class NodeRecord(NamedTuple):
    """One row of nodes.dmp."""

    taxon_id: int
    parent_id: int
    rank: str


class NameRecord(NamedTuple):
    """One row of names.dmp."""

    taxon_id: int
    name: str
    name_class: str


class TaxonomyNode(NamedTuple):
    """Snapshot of a single taxonomy node."""

    taxon_id: int
    parent_id: int
    rank: str
    name: str
    children: tuple[int, ...]


class ClassificationRecord(NamedTuple):
    """
    One line of classifier output.

    raw_hit_list is kept verbatim so it can be echoed unchanged on output.
    """

    status_code: str
    sequence_id: str
    called_taxon_id: int
    sequence_length: str
    raw_hit_list: str


class RefinedCall(NamedTuple):
    """Result of reclassifying one record."""

    new_taxon_id: int
    confidence: float

    @property
    def is_classified(self) -> bool:
        return self.new_taxon_id > UNCLASSIFIED_TAXID


class Assignment(NamedTuple):
    """Final taxon assignment of one sequence, as consumed by the report."""

    status_code: str
    sequence_id: str
    taxon_id: int


class HitProfile(Mapping[str, int]):
    """
    Per-record mapping of hit key to k-mer count.

    Keys are either an ambiguity marker or a taxon ID in its textual form.
    Counts for repeated keys are summed at construction time.
    """

    __slots__ = ("_counts",)

    def __init__(self, pairs: Iterator[tuple[str, int]] | list[tuple[str, int]] = ()):
        counts: dict[str, int] = {}
        for key, count in pairs:
            counts[key] = counts.get(key, 0) + count
        self._counts = counts

    def __getitem__(self, key: str) -> int:
        return self._counts[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def __repr__(self) -> str:
        return f"HitProfile({self._counts!r})"

    @property
    def total_unambiguous(self) -> int:
        """Sum of counts over every key except the ambiguity markers."""
        return sum(
            count for key, count in self._counts.items() if key not in AMBIGUOUS_KEYS
        )

    def taxon_counts(self) -> Iterator[tuple[int, int]]:
        """Yield (taxid, count) for every real taxon with a positive count."""
        for key, count in self._counts.items():
            if key in AMBIGUOUS_KEYS or count <= 0:
                continue
            taxid = int(key)
            if taxid > UNCLASSIFIED_TAXID:
                yield taxid, count

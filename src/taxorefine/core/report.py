"""
Clade count aggregation and Kraken-style report rendering.

The report pipeline is strictly sequential:

1. Scan: count assignments landing directly on each taxon.
2. Aggregate: one postorder pass turns direct counts into clade counts
   (each taxon plus all of its descendants).
3. Render: one preorder pass emits a line per taxon, visiting children in
   descending clade-count order.

Both traversals use an explicit stack, so arbitrarily deep lineages cannot
exhaust the interpreter's recursion limit.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, NamedTuple

import polars as pl

from taxorefine.core.constants import (
    ROOT_TAXID,
    UNCLASSIFIED_NAME,
    UNCLASSIFIED_RANK_CODE,
    UNCLASSIFIED_TAXID,
    rank_code,
)
from taxorefine.core.exceptions import MalformedRecordError
from taxorefine.core.io_utils import is_table_path, open_text, read_dataframe
from taxorefine.core.parsers import parse_assignment_line
from taxorefine.core.taxonomy import TaxonomyTree

logger = logging.getLogger(__name__)

INDENT = "  "

REPORT_SCHEMA: dict[str, pl.DataType] = {
    "percentage": pl.Float64,
    "clade_count": pl.Int64,
    "direct_count": pl.Int64,
    "rank_code": pl.Utf8,
    "taxon_id": pl.Int64,
    "depth": pl.Int64,
    "name": pl.Utf8,
}


class ReportRow(NamedTuple):
    """One line of a clade report."""

    percentage: float
    clade_count: int
    direct_count: int
    rank_code: str
    taxon_id: int
    depth: int
    name: str


@dataclass
class CladeCounts:
    """
    Direct and clade counts for every taxon reachable from the root.

    Attributes:
        direct: Assignments landing exactly on each taxon (0 = unclassified).
        clade: direct plus the clade counts of all children.
        total_records: Every successfully scanned record.
        unplaced_records: Records assigned to taxa not reachable from the
            root (undefined IDs or detached subtrees).
    """

    direct: dict[int, int] = field(default_factory=dict)
    clade: dict[int, int] = field(default_factory=dict)
    total_records: int = 0
    unplaced_records: int = 0

    def direct_count(self, taxid: int) -> int:
        return self.direct.get(taxid, 0)

    def clade_count(self, taxid: int) -> int:
        return self.clade.get(taxid, 0)

    def percentage(self, count: int) -> float:
        """Share of all records, in percent; 0 when nothing was scanned."""
        if self.total_records == 0:
            return 0.0
        return count * 100.0 / self.total_records

    @property
    def unclassified_percentage(self) -> float:
        return self.percentage(self.direct_count(UNCLASSIFIED_TAXID))


class CladeAggregator:
    """
    Accumulate per-taxon assignment counts and roll them up the tree.

    Example:
        >>> aggregator = CladeAggregator(tree)
        >>> with open("sample.filtered.kraken") as fh:
        ...     aggregator.scan(fh)
        >>> counts = aggregator.aggregate()
        >>> counts.clade_count(1)
    """

    def __init__(self, taxonomy: TaxonomyTree) -> None:
        self.taxonomy = taxonomy
        self.direct: dict[int, int] = {UNCLASSIFIED_TAXID: 0}
        self.total_records = 0
        self.skipped_records = 0

    def add(self, taxid: int) -> None:
        """Count one sequence assigned to taxid."""
        self.direct[taxid] = self.direct.get(taxid, 0) + 1
        self.total_records += 1

    def scan(self, lines: Iterable[str]) -> int:
        """
        Count assignments from classified lines (status, sequence_id, taxid, ...).

        Blank lines are ignored. Unparsable lines are logged and skipped and
        do not count towards the total.

        Returns:
            Number of records counted by this call.
        """
        before = self.total_records
        for line_num, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                assignment = parse_assignment_line(line, line_num)
            except MalformedRecordError as e:
                self.skipped_records += 1
                logger.warning("Skipping record: %s", e.message)
                continue
            self.add(assignment.taxon_id)
        return self.total_records - before

    def aggregate(self) -> CladeCounts:
        """
        Compute clade counts with a single postorder pass from the root.

        Every named taxon is present in the direct counts (zero if never
        assigned) so the full named tree is available to the report.
        """
        direct = dict(self.direct)
        for taxid in self.taxonomy.named_taxa():
            direct.setdefault(taxid, 0)

        clade: dict[int, int] = {}
        visited: set[int] = set()
        # (taxid, children_done) frames; a node is summed after all children
        stack: list[tuple[int, bool]] = [(ROOT_TAXID, False)]
        while stack:
            taxid, children_done = stack.pop()
            if children_done:
                clade[taxid] = direct.get(taxid, 0) + sum(
                    clade.get(child, 0) for child in self.taxonomy.children_of(taxid)
                )
                continue
            if taxid in visited:
                logger.warning("Taxon %d reached twice during aggregation; taxonomy has a cycle", taxid)
                continue
            visited.add(taxid)
            stack.append((taxid, True))
            for child in self.taxonomy.children_of(taxid):
                stack.append((child, False))

        # Unclassified is a sibling of the root rather than part of the tree
        clade[UNCLASSIFIED_TAXID] = direct.get(UNCLASSIFIED_TAXID, 0)

        unplaced = sum(
            count for taxid, count in direct.items()
            if count and taxid != UNCLASSIFIED_TAXID and taxid not in visited
        )
        if unplaced:
            logger.warning(
                "%d records assigned to taxa outside the taxonomy tree are not counted in any clade",
                unplaced,
            )
        if self.skipped_records:
            logger.warning("Skipped %d malformed records", self.skipped_records)

        return CladeCounts(
            direct=direct,
            clade=clade,
            total_records=self.total_records,
            unplaced_records=unplaced,
        )


class ReportRenderer:
    """
    Render clade counts as a Kraken-style report.

    The unclassified line comes first, followed by a preorder walk from the
    root. Children are visited by descending clade count; ties keep the
    taxonomy's child order. With zero suppression (the default) a taxon with
    clade count 0 is omitted together with its whole subtree, which is safe
    because every descendant's clade count is then 0 as well.
    """

    def __init__(
        self,
        taxonomy: TaxonomyTree,
        counts: CladeCounts,
        show_zeros: bool = False,
    ) -> None:
        self.taxonomy = taxonomy
        self.counts = counts
        self.show_zeros = show_zeros

    def sorted_children(self, taxid: int) -> list[int]:
        """Children by descending clade count, stable for ties."""
        clade = self.counts.clade
        return sorted(
            self.taxonomy.children_of(taxid),
            key=lambda child: clade.get(child, 0),
            reverse=True,
        )

    def unclassified_row(self) -> ReportRow:
        count = self.counts.direct_count(UNCLASSIFIED_TAXID)
        return ReportRow(
            percentage=self.counts.unclassified_percentage,
            clade_count=count,
            direct_count=count,
            rank_code=UNCLASSIFIED_RANK_CODE,
            taxon_id=UNCLASSIFIED_TAXID,
            depth=0,
            name=UNCLASSIFIED_NAME,
        )

    def tree_rows(self) -> Iterator[ReportRow]:
        """Rows of the taxonomy tree in sorted preorder."""
        visited: set[int] = set()
        stack: list[tuple[int, int]] = [(ROOT_TAXID, 0)]
        while stack:
            taxid, depth = stack.pop()
            clade_count = self.counts.clade_count(taxid)
            if clade_count == 0 and not self.show_zeros:
                continue
            if taxid in visited:
                continue
            visited.add(taxid)
            yield ReportRow(
                percentage=self.counts.percentage(clade_count),
                clade_count=clade_count,
                direct_count=self.counts.direct_count(taxid),
                rank_code=rank_code(self.taxonomy.rank_of(taxid)),
                taxon_id=taxid,
                depth=depth,
                name=self.taxonomy.name_of(taxid),
            )
            # Push in reverse so the largest clade is popped first
            for child in reversed(self.sorted_children(taxid)):
                stack.append((child, depth + 1))

    def rows(self) -> Iterator[ReportRow]:
        """Every report row, unclassified first."""
        yield self.unclassified_row()
        yield from self.tree_rows()

    def render(self, write: Callable[[str], Any]) -> int:
        """Write every formatted line (newline included). Returns the line count."""
        n_lines = 0
        for row in self.rows():
            write(format_row(row) + "\n")
            n_lines += 1
        return n_lines

    def to_dataframe(self) -> pl.DataFrame:
        """Report rows as a DataFrame (name without indentation)."""
        return pl.DataFrame(
            [tuple(row) for row in self.rows()],
            schema=REPORT_SCHEMA,
            orient="row",
        )


def format_row(row: ReportRow) -> str:
    """
    Format one report line.

    Example:
        >>> format_row(ReportRow(40.0, 4, 1, "S", 562, 2, "Escherichia coli"))
        ' 40.00\\t4\\t1\\tS\\t562\\t    Escherichia coli'
    """
    return (
        f" {row.percentage:.2f}\t{row.clade_count}\t{row.direct_count}\t"
        f"{row.rank_code}\t{row.taxon_id}\t{INDENT * row.depth}{row.name}"
    )


class KrakenReport:
    """
    Parser for clade reports.

    Reads the six tab-separated columns of a text report back into ReportRow
    values, recovering each taxon's depth from the indentation of its name.
    CSV, TSV and Parquet exports written with ``--format`` are read as tables.
    """

    def __init__(self, report_path: Path):
        self.report_path = report_path
        self._rows: list[ReportRow] | None = None

    def parse(self) -> list[ReportRow]:
        """Parse the report file (cached after the first call)."""
        if self._rows is None:
            if is_table_path(self.report_path):
                self._rows = self._parse_table()
            else:
                self._rows = self._parse_text()
        return self._rows

    def _parse_table(self) -> list[ReportRow]:
        df = read_dataframe(self.report_path)
        missing = [column for column in REPORT_SCHEMA if column not in df.columns]
        if missing:
            msg = f"{self.report_path} is missing report columns: {', '.join(missing)}"
            raise ValueError(msg)
        return [ReportRow(*row) for row in df.select(list(REPORT_SCHEMA)).iter_rows()]

    def _parse_text(self) -> list[ReportRow]:
        rows: list[ReportRow] = []
        with open_text(self.report_path) as f:
            for line_num, line in enumerate(f, start=1):
                parts = line.rstrip("\r\n").split("\t")
                if len(parts) < 6:
                    if line.strip():
                        logger.warning(
                            "Skipping report line %d of %s: expected 6 columns",
                            line_num,
                            self.report_path,
                        )
                    continue
                indented = parts[5]
                name = indented.lstrip(" ")
                depth = (len(indented) - len(name)) // len(INDENT)
                try:
                    rows.append(ReportRow(
                        percentage=float(parts[0]),
                        clade_count=int(parts[1]),
                        direct_count=int(parts[2]),
                        rank_code=parts[3],
                        taxon_id=int(parts[4]),
                        depth=depth,
                        name=name,
                    ))
                except ValueError:
                    logger.warning(
                        "Skipping report line %d of %s: non-numeric count column",
                        line_num,
                        self.report_path,
                    )
        return rows

    def _find(self, taxid: int) -> ReportRow | None:
        for row in self.parse():
            if row.taxon_id == taxid:
                return row
        return None

    def get_direct_count(self, taxid: int) -> int:
        """Sequences assigned directly to a taxon (0 if absent from the report)."""
        row = self._find(taxid)
        return row.direct_count if row else 0

    def get_clade_count(self, taxid: int) -> int:
        """Sequences assigned to a taxon or its descendants (0 if absent)."""
        row = self._find(taxid)
        return row.clade_count if row else 0

    def rank_rows(self, code: str) -> list[ReportRow]:
        """Rows at one rank code (e.g. 'S' for species), in report order."""
        return [row for row in self.parse() if row.rank_code == code]

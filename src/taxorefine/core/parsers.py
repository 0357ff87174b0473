"""
Line parsers for taxonomy dumps and Kraken-style classification output.

Taxonomy tables (nodes.dmp, names.dmp) are NCBI "tab-pipe-tab" delimited
but plain tab-separated tables are accepted too. Classification lines are
tab-separated with a space-separated ``key:count`` hit list in column 5.

All parsers raise MalformedRecordError on bad input; callers decide whether
a bad line is fatal or skipped.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Iterator
from typing import TypeVar

from taxorefine.core.constants import AMBIGUOUS_KEYS, PAIRED_SEPARATOR
from taxorefine.core.exceptions import MalformedRecordError
from taxorefine.models.records import (
    Assignment,
    ClassificationRecord,
    HitProfile,
    NameRecord,
    NodeRecord,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Kraken 2 --use-names writes the taxon column as "Escherichia coli (taxid 562)"
_NAMED_TAXID = re.compile(r"\(taxid (\d+)\)\s*$")

CLASSIFICATION_COLUMNS = 5
ASSIGNMENT_COLUMNS = 3


def split_table_fields(line: str) -> list[str]:
    """Split a dump line on '|' (or tabs when no pipe is present) and trim fields."""
    line = line.rstrip("\r\n")
    separator = "|" if "|" in line else "\t"
    return [field.strip() for field in line.split(separator)]


def parse_taxid(text: str) -> int:
    """
    Parse a taxon column, accepting bare IDs and Kraken 2 named form.

    Example:
        >>> parse_taxid("562")
        562
        >>> parse_taxid("Escherichia coli (taxid 562)")
        562
    """
    text = text.strip()
    if text.isdecimal():
        return int(text)
    match = _NAMED_TAXID.search(text)
    if match:
        return int(match.group(1))
    msg = f"invalid taxon id {text!r}"
    raise ValueError(msg)


def parse_node_line(line: str, line_num: int | None = None) -> NodeRecord:
    """Parse one nodes.dmp row into (taxon_id, parent_id, rank)."""
    fields = split_table_fields(line)
    if len(fields) < 3:
        raise MalformedRecordError(line, "expected at least 3 fields in node table", line_num)
    try:
        return NodeRecord(int(fields[0]), int(fields[1]), fields[2])
    except ValueError:
        raise MalformedRecordError(line, "non-integer taxon or parent id", line_num) from None


def parse_name_line(line: str, line_num: int | None = None) -> NameRecord:
    """
    Parse one names.dmp row into (taxon_id, name, name_class).

    The unique-name column is optional: with only three fields the third is
    the name class.
    """
    fields = split_table_fields(line)
    if len(fields) < 3:
        raise MalformedRecordError(line, "expected at least 3 fields in name table", line_num)
    name_class = fields[3] if len(fields) > 3 and fields[3] else fields[2]
    try:
        return NameRecord(int(fields[0]), fields[1], name_class)
    except ValueError:
        raise MalformedRecordError(line, "non-integer taxon id", line_num) from None


def _iter_table(
    lines: Iterable[str],
    parse: Callable[[str, int | None], T],
    table: str,
) -> Iterator[T]:
    skipped = 0
    for line_num, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            yield parse(line, line_num)
        except MalformedRecordError as e:
            skipped += 1
            logger.warning("Skipping %s row: %s", table, e.message)
    if skipped:
        logger.warning("Skipped %d malformed %s rows", skipped, table)


def iter_node_records(lines: Iterable[str]) -> Iterator[NodeRecord]:
    """Yield node records, skipping blank and malformed rows."""
    return _iter_table(lines, parse_node_line, "nodes")


def iter_name_records(lines: Iterable[str]) -> Iterator[NameRecord]:
    """Yield name records, skipping blank and malformed rows."""
    return _iter_table(lines, parse_name_line, "names")


def parse_hit_list(text: str) -> HitProfile:
    """
    Parse a space-separated ``key:count`` hit list into a HitProfile.

    Repeated keys are summed. The Kraken 2 paired-read separator ``|:|`` is
    ignored.

    Raises:
        ValueError: If a token is not ``key:count``, the key is neither an
            ambiguity marker nor a taxon ID, or the count is not a
            non-negative integer.

    Example:
        >>> dict(parse_hit_list("562:3 0:2 562:1 A:4"))
        {'562': 4, '0': 2, 'A': 4}
    """
    pairs: list[tuple[str, int]] = []
    for token in text.split():
        if token == PAIRED_SEPARATOR:
            continue
        key, sep, count_text = token.partition(":")
        if not sep or ":" in count_text:
            msg = f"hit token {token!r} is not key:count"
            raise ValueError(msg)
        if key not in AMBIGUOUS_KEYS and not key.isdecimal():
            msg = f"hit key {key!r} is not a taxon id"
            raise ValueError(msg)
        if not count_text.isdecimal():
            msg = f"hit count {count_text!r} is not a non-negative integer"
            raise ValueError(msg)
        # Normalise "0562" and "562" to the same key
        if key.isdecimal():
            key = str(int(key))
        pairs.append((key, int(count_text)))
    return HitProfile(pairs)


def parse_classification_line(line: str, line_num: int | None = None) -> ClassificationRecord:
    """
    Parse one classifier output line.

    Columns: status, sequence_id, called taxon, sequence_length, hit_list.
    """
    fields = line.rstrip("\r\n").split("\t")
    if len(fields) < CLASSIFICATION_COLUMNS:
        raise MalformedRecordError(
            line,
            f"expected {CLASSIFICATION_COLUMNS} tab-separated columns, got {len(fields)}",
            line_num,
        )
    try:
        called = parse_taxid(fields[2])
    except ValueError as e:
        raise MalformedRecordError(line, str(e), line_num) from None
    return ClassificationRecord(
        status_code=fields[0],
        sequence_id=fields[1],
        called_taxon_id=called,
        sequence_length=fields[3],
        raw_hit_list=fields[4],
    )


def parse_assignment_line(line: str, line_num: int | None = None) -> Assignment:
    """Parse the first three columns (status, sequence_id, taxon) of a classified line."""
    fields = line.rstrip("\r\n").split("\t")
    if len(fields) < ASSIGNMENT_COLUMNS:
        raise MalformedRecordError(
            line,
            f"expected at least {ASSIGNMENT_COLUMNS} tab-separated columns, got {len(fields)}",
            line_num,
        )
    try:
        taxid = parse_taxid(fields[2])
    except ValueError as e:
        raise MalformedRecordError(line, str(e), line_num) from None
    return Assignment(fields[0], fields[1], taxid)

"""
Shared pytest fixtures for taxorefine tests.

Provides small in-memory taxonomies, on-disk taxonomy databases and
classifier output lines for unit and end-to-end testing.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from taxorefine.core.reclassify import Reclassifier
from taxorefine.core.taxonomy import TaxonomyTree
from taxorefine.models.records import NameRecord, NodeRecord
from tests.factories import STANDARD_TAXA, classification_line, write_taxonomy


# =============================================================================
# Taxonomy Fixtures
# =============================================================================


@pytest.fixture
def small_tree() -> TaxonomyTree:
    """Bacteria/Viruses tree from STANDARD_TAXA, with scientific names."""
    return TaxonomyTree.from_records(
        [NodeRecord(t.taxon_id, t.parent_id, t.rank) for t in STANDARD_TAXA],
        [NameRecord(t.taxon_id, t.name, "scientific name") for t in STANDARD_TAXA],
    )


@pytest.fixture
def chain_tree() -> TaxonomyTree:
    """Unnamed three-node chain 3 -> 2 -> 1."""
    return TaxonomyTree.from_records([
        NodeRecord(1, 1, "no rank"),
        NodeRecord(2, 1, "genus"),
        NodeRecord(3, 2, "species"),
    ])


@pytest.fixture
def taxonomy_db(tmp_path: Path) -> Path:
    """Kraken-style database directory with taxonomy/nodes.dmp and names.dmp."""
    return write_taxonomy(tmp_path / "db")


# =============================================================================
# Reclassification Fixtures
# =============================================================================


@pytest.fixture
def reclassifier(small_tree: TaxonomyTree) -> Reclassifier:
    """Reclassifier over small_tree at a 50% threshold."""
    return Reclassifier(small_tree, threshold=0.5)


@pytest.fixture
def classification_lines() -> list[str]:
    """A handful of classifier output lines over STANDARD_TAXA."""
    return [
        # All k-mers on E. coli: stays put
        classification_line("read_1", 11, "11:10"),
        # Split between the two Escherichia species: moves to the genus
        classification_line("read_2", 11, "11:4 12:4 A:3"),
        # Split across genera: moves to Bacteria
        classification_line("read_3", 21, "21:3 11:3"),
        # Already unclassified
        classification_line("read_4", 0, "0:20"),
        # Viral call with some unclassified k-mers
        classification_line("read_5", 30, "30:9 0:1"),
    ]

"""
Test data factories for taxonomy dumps and classifier output.

Provides deterministic, seeded generation of NCBI-style dump files and
Kraken-style classification lines for reproducible testing.
"""

from __future__ import annotations

import random
from pathlib import Path
from typing import NamedTuple


class TaxonSpec(NamedTuple):
    """A taxon to write into nodes.dmp / names.dmp."""

    taxon_id: int
    parent_id: int
    rank: str
    name: str


# Small bacterial/viral tree used across the suite:
#
#   1 root
#   ├── 2 Bacteria (superkingdom)
#   │   ├── 10 Escherichia (genus)
#   │   │   ├── 11 Escherichia coli (species)
#   │   │   └── 12 Escherichia fergusonii (species)
#   │   └── 20 Salmonella (genus)
#   │       └── 21 Salmonella enterica (species)
#   └── 3 Viruses (superkingdom)
#       └── 30 Lambdavirus (genus)
STANDARD_TAXA: tuple[TaxonSpec, ...] = (
    TaxonSpec(1, 1, "no rank", "root"),
    TaxonSpec(2, 1, "superkingdom", "Bacteria"),
    TaxonSpec(10, 2, "genus", "Escherichia"),
    TaxonSpec(11, 10, "species", "Escherichia coli"),
    TaxonSpec(12, 10, "species", "Escherichia fergusonii"),
    TaxonSpec(20, 2, "genus", "Salmonella"),
    TaxonSpec(21, 20, "species", "Salmonella enterica"),
    TaxonSpec(3, 1, "superkingdom", "Viruses"),
    TaxonSpec(30, 3, "genus", "Lambdavirus"),
)


def node_line(taxon: TaxonSpec) -> str:
    """nodes.dmp row in NCBI tab-pipe-tab layout."""
    return f"{taxon.taxon_id}\t|\t{taxon.parent_id}\t|\t{taxon.rank}\t|\t\t|\t0\t|\n"


def name_line(taxon_id: int, name: str, name_class: str = "scientific name") -> str:
    """names.dmp row in NCBI tab-pipe-tab layout."""
    return f"{taxon_id}\t|\t{name}\t|\t\t|\t{name_class}\t|\n"


def write_taxonomy(
    db_dir: Path,
    taxa: tuple[TaxonSpec, ...] | list[TaxonSpec] = STANDARD_TAXA,
    with_names: bool = True,
    subdir: str = "taxonomy",
) -> Path:
    """Write nodes.dmp (and names.dmp) under db_dir/subdir; returns db_dir."""
    tax_dir = db_dir / subdir if subdir else db_dir
    tax_dir.mkdir(parents=True, exist_ok=True)
    (tax_dir / "nodes.dmp").write_text("".join(node_line(t) for t in taxa))
    if with_names:
        lines = []
        for taxon in taxa:
            lines.append(name_line(taxon.taxon_id, taxon.name))
            # Synonyms must never replace the scientific name
            lines.append(name_line(taxon.taxon_id, f"{taxon.name} synonym", "synonym"))
        (tax_dir / "names.dmp").write_text("".join(lines))
    return db_dir


def classification_line(
    seq_id: str,
    taxid: int,
    hits: str,
    status: str | None = None,
    length: int = 150,
) -> str:
    """One classifier output line (no trailing newline)."""
    if status is None:
        status = "C" if taxid > 0 else "U"
    return f"{status}\t{seq_id}\t{taxid}\t{length}\t{hits}"


class ClassificationFactory:
    """
    Seeded generator of classifier output over a taxonomy.

    Each record is called at a random taxon and carries hits on that taxon,
    some of its relatives and ambiguous k-mers.
    """

    def __init__(self, taxa: tuple[TaxonSpec, ...] = STANDARD_TAXA, seed: int = 42):
        self.taxa = taxa
        self.rng = random.Random(seed)

    def record(self, index: int) -> str:
        called = self.rng.choice(self.taxa).taxon_id
        tokens = [f"{called}:{self.rng.randint(1, 20)}"]
        for _ in range(self.rng.randint(0, 3)):
            other = self.rng.choice(self.taxa).taxon_id
            tokens.append(f"{other}:{self.rng.randint(0, 10)}")
        if self.rng.random() < 0.3:
            tokens.append(f"A:{self.rng.randint(1, 5)}")
        if self.rng.random() < 0.2:
            tokens.append(f"0:{self.rng.randint(1, 5)}")
        self.rng.shuffle(tokens)
        return classification_line(f"read_{index:05d}", called, " ".join(tokens))

    def lines(self, n: int) -> list[str]:
        return [self.record(i) for i in range(n)]

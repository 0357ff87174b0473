"""
Shared constants for taxonomy handling and Kraken-format records.
"""

from __future__ import annotations

# Taxon 1 is the root of an NCBI-style taxonomy. Taxon 0 is never a real node:
# it stands for "no parent" above the root and for "unclassified" in records.
ROOT_TAXID = 1
UNCLASSIFIED_TAXID = 0

# Hit-list markers for k-mers that map to more than one taxon. Kraken 1
# writes "A"; some tools spell it out.
AMBIGUOUS_KEYS: frozenset[str] = frozenset({"A", "ambiguous"})

# Kraken 2 separates mate 1 and mate 2 hits in paired-end output with this token
PAIRED_SEPARATOR = "|:|"

# Tolerance when comparing a confidence fraction against the threshold
CONFIDENCE_EPSILON = 1e-5

SCIENTIFIC_NAME = "scientific name"

UNCLASSIFIED_NAME = "unclassified"
UNCLASSIFIED_RANK_CODE = "U"
UNRANKED_CODE = "-"

RANK_CODES: dict[str, str] = {
    "species": "S",
    "genus": "G",
    "family": "F",
    "order": "O",
    "class": "C",
    "phylum": "P",
    "kingdom": "K",
    "superkingdom": "D",
}


def rank_code(rank: str) -> str:
    """Map a rank name to its single-letter report code ('-' if unmapped)."""
    return RANK_CODES.get(rank, UNRANKED_CODE)

"""
In-memory taxonomy tree built from NCBI-style nodes.dmp and names.dmp.

The tree is built once per run and is read-only afterwards, so it can be
shared between reclassification worker threads without locking.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from taxorefine.core.constants import ROOT_TAXID, SCIENTIFIC_NAME, UNCLASSIFIED_TAXID
from taxorefine.core.exceptions import (
    MissingAncestorError,
    TaxonomyCycleError,
    TaxonomyIntegrityError,
    TaxonomyNotFoundError,
    UnknownTaxonError,
)
from taxorefine.core.io_utils import open_text
from taxorefine.core.parsers import iter_name_records, iter_node_records
from taxorefine.models.records import NameRecord, NodeRecord, TaxonomyNode

logger = logging.getLogger(__name__)

NODES_FILENAME = "nodes.dmp"
NAMES_FILENAME = "names.dmp"


class TaxonomyTree:
    """
    Rooted taxonomy with parent links, ranks, scientific names and child lists.

    Taxon 1 is the root; its parent is forced to UNCLASSIFIED_TAXID (0),
    which is never a node itself. Child lists keep input order.

    Lookups of undefined taxa are lenient by default: ``children_of`` of an
    unknown ID is empty. With ``strict=True`` such lookups raise
    UnknownTaxonError instead. Lineage walks always fail loudly with
    MissingAncestorError when they reach an undefined taxon.

    Example:
        >>> tree = TaxonomyTree.from_records(
        ...     [NodeRecord(1, 1, "no rank"), NodeRecord(2, 1, "genus")],
        ...     [NameRecord(2, "Escherichia", "scientific name")],
        ... )
        >>> list(tree.lineage(2))
        [2, 1]
    """

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict
        self._parents: dict[int, int] = {}
        self._ranks: dict[int, str] = {}
        self._names: dict[int, str] = {}
        self._children: dict[int, list[int]] = {}

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_records(
        cls,
        nodes: Iterable[NodeRecord],
        names: Iterable[NameRecord] = (),
        strict: bool = False,
    ) -> TaxonomyTree:
        """Build a tree from node records and (optionally) name records."""
        tree = cls(strict=strict)
        for record in nodes:
            tree.add_node(*record)
        for record in names:
            tree.set_name(*record)
        if strict:
            tree.validate()
        return tree

    @classmethod
    def from_files(
        cls,
        nodes_path: Path,
        names_path: Path | None = None,
        strict: bool = False,
    ) -> TaxonomyTree:
        """Build a tree from nodes.dmp and names.dmp (plain or gzipped)."""
        with open_text(nodes_path) as nodes_fh:
            if names_path is None:
                tree = cls.from_records(iter_node_records(nodes_fh), strict=strict)
            else:
                with open_text(names_path) as names_fh:
                    tree = cls.from_records(
                        iter_node_records(nodes_fh),
                        iter_name_records(names_fh),
                        strict=strict,
                    )
        logger.info(
            "Loaded %d taxa (%d named) from %s",
            len(tree),
            len(tree._names),
            nodes_path.parent,
        )
        return tree

    @classmethod
    def from_directory(
        cls,
        db_path: Path,
        require_names: bool = False,
        strict: bool = False,
    ) -> TaxonomyTree:
        """
        Load the taxonomy of a Kraken database directory.

        Looks for nodes.dmp and names.dmp (optionally .gz) first in
        ``<db>/taxonomy/`` and then in ``<db>/`` itself.

        Raises:
            TaxonomyNotFoundError: If nodes.dmp is absent, or names.dmp is
                absent and ``require_names`` is set.
        """
        nodes_path, names_path = find_taxonomy_files(db_path)
        missing = []
        if nodes_path is None:
            missing.append(NODES_FILENAME)
        if names_path is None and require_names:
            missing.append(NAMES_FILENAME)
        if missing or nodes_path is None:
            raise TaxonomyNotFoundError(str(db_path), missing)
        return cls.from_files(nodes_path, names_path, strict=strict)

    def add_node(self, taxon_id: int, parent_id: int, rank: str) -> None:
        """Register a node under its parent. The root is always parentless."""
        if taxon_id == ROOT_TAXID:
            parent_id = UNCLASSIFIED_TAXID
        if taxon_id in self._parents:
            logger.warning("Taxon %d defined more than once; keeping the last definition", taxon_id)
            self._children[self._parents[taxon_id]].remove(taxon_id)
        self._parents[taxon_id] = parent_id
        self._ranks[taxon_id] = rank
        self._children.setdefault(parent_id, []).append(taxon_id)

    def set_name(self, taxon_id: int, name: str, name_class: str = SCIENTIFIC_NAME) -> None:
        """Record a display name; only scientific names are kept."""
        if name_class == SCIENTIFIC_NAME:
            self._names[taxon_id] = name

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._parents)

    def __contains__(self, taxid: object) -> bool:
        return taxid in self._parents

    def parent_of(self, taxid: int) -> int | None:
        """
        Parent of a taxon: 0 for the root, None for the sentinel 0 itself.

        Raises:
            MissingAncestorError: If taxid is nonzero and undefined.
        """
        if taxid == UNCLASSIFIED_TAXID:
            return None
        try:
            return self._parents[taxid]
        except KeyError:
            raise MissingAncestorError(taxid) from None

    def children_of(self, taxid: int) -> tuple[int, ...]:
        """Children in input order; empty for leaves (and unknown IDs unless strict)."""
        children = self._children.get(taxid)
        if children is None:
            if self.strict and taxid != UNCLASSIFIED_TAXID and taxid not in self._parents:
                raise UnknownTaxonError(taxid)
            return ()
        return tuple(children)

    def rank_of(self, taxid: int) -> str:
        return self._ranks.get(taxid, "")

    def name_of(self, taxid: int) -> str:
        return self._names.get(taxid, "")

    def node(self, taxid: int) -> TaxonomyNode:
        """Snapshot of one node."""
        parent = self.parent_of(taxid)
        if parent is None:
            raise UnknownTaxonError(taxid)
        return TaxonomyNode(
            taxon_id=taxid,
            parent_id=parent,
            rank=self.rank_of(taxid),
            name=self.name_of(taxid),
            children=self.children_of(taxid),
        )

    def named_taxa(self) -> Iterator[int]:
        """Every taxon that has a scientific name."""
        return iter(self._names)

    def lineage(self, taxid: int) -> Iterator[int]:
        """
        Yield taxid and then each ancestor up to and including the root.

        The sentinel 0 is never yielded, so ``lineage(0)`` is empty. The walk
        is lazy: a dangling parent raises only when the walk reaches it.

        Raises:
            MissingAncestorError: If the walk reaches an undefined taxon.
            TaxonomyCycleError: If the walk returns to a taxon it already
                yielded. No taxon is yielded twice.
        """
        parents = self._parents
        seen: set[int] = set()
        node = taxid
        while node != UNCLASSIFIED_TAXID:
            if node not in parents:
                raise MissingAncestorError(node)
            if node in seen:
                raise TaxonomyCycleError(taxid)
            yield node
            seen.add(node)
            node = parents[node]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def find_problems(self) -> list[str]:
        """List dangling parent references and lineages that never reach the root."""
        problems: list[str] = []
        if self._parents and ROOT_TAXID not in self._parents:
            problems.append(f"root taxon {ROOT_TAXID} is not defined")

        # reaches_root[taxid] is True once the taxon is known to end at the root
        reaches_root: dict[int, bool] = {UNCLASSIFIED_TAXID: True}
        for start in self._parents:
            path: list[int] = []
            on_path: set[int] = set()
            node = start
            while node not in reaches_root:
                if node not in self._parents:
                    problems.append(f"taxon {path[-1]} has undefined parent {node}")
                    reaches_root[node] = False
                    break
                if node in on_path:
                    problems.append(f"cycle through taxon {node}")
                    reaches_root[node] = False
                    break
                path.append(node)
                on_path.add(node)
                node = self._parents[node]
            outcome = reaches_root[node]
            for visited in path:
                reaches_root[visited] = outcome
        return problems

    def validate(self) -> None:
        """
        Strict-mode integrity check.

        Raises:
            TaxonomyIntegrityError: If any parent is undefined or any lineage
                fails to reach the root.
        """
        problems = self.find_problems()
        if problems:
            raise TaxonomyIntegrityError(problems)
        logger.debug("Taxonomy of %d taxa passed validation", len(self))


def find_taxonomy_files(db_path: Path) -> tuple[Path | None, Path | None]:
    """Locate (nodes.dmp, names.dmp) under a database directory; None where absent."""
    for directory in (db_path / "taxonomy", db_path):
        nodes = _first_existing(directory, NODES_FILENAME)
        if nodes is not None:
            return nodes, _first_existing(directory, NAMES_FILENAME)
    return None, None


def _first_existing(directory: Path, filename: str) -> Path | None:
    for candidate in (directory / filename, directory / f"{filename}.gz"):
        if candidate.is_file():
            return candidate
    return None

"""
Custom exceptions with actionable guidance.

Provides specific error types for common failure scenarios,
each with helpful suggestions for resolution.
"""

from __future__ import annotations


class TaxorefineError(Exception):
    """Base exception for taxorefine errors."""

    def __init__(self, message: str, suggestion: str | None = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.full_message)

    @property
    def full_message(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class TaxonomyError(TaxorefineError):
    """Base class for taxonomy database errors."""



class TaxonomyNotFoundError(TaxonomyError):
    """Raised when the taxonomy dump files cannot be located."""

    def __init__(self, path: str, missing: list[str] | None = None):
        missing_str = ", ".join(missing) if missing else "nodes.dmp"
        super().__init__(
            message=f"Taxonomy files not found under '{path}' (missing: {missing_str})",
            suggestion=(
                "Point --db at a Kraken database directory. Expected layout:\n"
                "  <db>/taxonomy/nodes.dmp\n"
                "  <db>/taxonomy/names.dmp\n"
                "The files may also sit directly in <db>/ or be gzip-compressed."
            ),
        )
        self.path = path


class MissingAncestorError(TaxonomyError):
    """Raised when a lineage walk reaches a taxon absent from the tree."""

    def __init__(self, taxid: int, message: str | None = None):
        super().__init__(
            message=message or f"Taxon {taxid} is not defined in the taxonomy",
            suggestion=(
                "The classification references a taxon (or a parent of one) that "
                "nodes.dmp does not define. Make sure the taxonomy matches the "
                "database used for classification."
            ),
        )
        self.taxid = taxid


class TaxonomyCycleError(MissingAncestorError):
    """Raised when a lineage walk never reaches the root."""

    def __init__(self, taxid: int):
        super().__init__(
            taxid,
            message=f"Lineage of taxon {taxid} does not terminate at the root (cycle in nodes.dmp)",
        )


class UnknownTaxonError(TaxonomyError):
    """Raised by strict lookups of a taxon that was never defined."""

    def __init__(self, taxid: int):
        super().__init__(
            message=f"Unknown taxon: {taxid}",
            suggestion="Disable strict taxonomy mode to treat unknown taxa as leaves.",
        )
        self.taxid = taxid


class TaxonomyIntegrityError(TaxonomyError):
    """Raised when strict validation finds dangling parents or cycles."""

    def __init__(self, problems: list[str]):
        shown = "; ".join(problems[:5])
        if len(problems) > 5:
            shown += f"... and {len(problems) - 5} more"
        super().__init__(
            message=f"Taxonomy failed validation ({len(problems)} problems): {shown}",
            suggestion=(
                "Rebuild or re-download the taxonomy dump. Every parent_id in "
                "nodes.dmp must itself be defined, and every lineage must reach taxon 1."
            ),
        )
        self.problems = problems


class RecordError(TaxorefineError):
    """Base class for per-record input errors."""



class MalformedRecordError(RecordError):
    """Raised when an input line cannot be parsed."""

    def __init__(self, line: str, reason: str, line_num: int | None = None):
        where = f" at line {line_num}" if line_num is not None else ""
        preview = line if len(line) <= 80 else line[:77] + "..."
        super().__init__(
            message=f"Malformed record{where}: {reason} ({preview!r})",
            suggestion=(
                "Classification lines must be tab-separated:\n"
                "  status  sequence_id  taxid  length  hit_list\n"
                "with hit_list made of space-separated taxid:count tokens."
            ),
        )
        self.line = line
        self.reason = reason
        self.line_num = line_num


class ConfigurationError(TaxorefineError):
    """Raised when configuration is invalid."""



class InvalidThresholdError(ConfigurationError):
    """Raised when a threshold parameter is out of valid range."""

    def __init__(self, param_name: str, value: float, min_val: float, max_val: float):
        super().__init__(
            message=f"{param_name} = {value} is out of valid range [{min_val}, {max_val}]",
            suggestion=f"Set {param_name} to a value between {min_val} and {max_val}.",
        )

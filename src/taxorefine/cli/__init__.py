"""
CLI commands for taxorefine.

Provides the command-line interface for confidence filtering and
clade reporting.
"""

__all__ = ["filter", "main", "report"]

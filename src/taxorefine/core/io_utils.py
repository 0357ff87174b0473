"""
I/O helpers for text streams and tabular report exports.

Every path the tools read or write may be gzip-compressed; compression is
chosen from the ``.gz`` suffix. Text is UTF-8 with ``surrogateescape``, so
bytes that are not valid UTF-8 (in a sequence ID, say) are read without
error and written back unchanged. Tabular report exports go through polars.
"""

from __future__ import annotations

import gzip
import io
from pathlib import Path
from typing import IO, Literal

import polars as pl

TableFormat = Literal["csv", "parquet"]

TEXT_ERRORS = "surrogateescape"

# Suffixes read back as tables rather than as text reports
TABLE_SUFFIXES = (".csv", ".csv.gz", ".tsv", ".tsv.gz", ".parquet")


def open_text(path: Path, mode: Literal["r", "w"] = "r") -> IO[str]:
    """
    Open a UTF-8 text file for reading or writing, gzip if it ends in ``.gz``.

    Example:
        >>> with open_text(Path("sample.kraken.gz")) as fh:
        ...     first = fh.readline()
    """
    if path.suffix == ".gz":
        return gzip.open(path, f"{mode}t", encoding="utf-8", errors=TEXT_ERRORS)
    return path.open(mode, encoding="utf-8", errors=TEXT_ERRORS)


def std_stream(stream: IO[str]) -> IO[str]:
    """Give stdin or stdout the same undecodable-byte handling as open_text."""
    if isinstance(stream, io.TextIOWrapper):
        stream.reconfigure(errors=TEXT_ERRORS)
    return stream


def is_table_path(path: Path) -> bool:
    """True for CSV/TSV/Parquet exports (optionally gzipped)."""
    return path.name.lower().endswith(TABLE_SUFFIXES)


def write_dataframe(
    df: pl.DataFrame,
    path: Path,
    output_format: TableFormat = "csv",
) -> None:
    """
    Export report rows as CSV or zstd-compressed Parquet.

    Example:
        >>> write_dataframe(renderer.to_dataframe(), Path("sample.parquet"), "parquet")
    """
    if output_format == "parquet":
        df.write_parquet(path, compression="zstd")
    else:
        df.write_csv(path)


def read_dataframe(path: Path) -> pl.DataFrame:
    """
    Load a CSV, TSV or Parquet export; the format follows the file name.

    Raises:
        ValueError: For any other extension.
    """
    name = path.name.lower()
    if name.endswith(".parquet"):
        return pl.read_parquet(path)
    if name.endswith((".csv", ".csv.gz")):
        return pl.read_csv(path)
    if name.endswith((".tsv", ".tsv.gz")):
        return pl.read_csv(path, separator="\t")
    msg = f"Not a CSV, TSV or Parquet file: {path}"
    raise ValueError(msg)

from __future__ import annotations

import csv
import io
import math
import re
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pandas as pd

_DECIMAL_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")

# Read every physical line into one column; commas are split afterwards so
# short and long rows can be padded or cut to the header width.
_LINE_SEPARATOR = "\x1f"


class CsvFormatError(ValueError):
    """Raised when uploaded text cannot be turned into records."""


def coerce_cell(value: str) -> Any:
    """Return a float for a finite decimal number, otherwise the trimmed text."""
    text = value.strip()
    if _DECIMAL_NUMBER.match(text):
        number = float(text)
        if math.isfinite(number):
            return number
    return text


def _read_lines(text: str) -> pd.Series:
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            header=None,
            names=["line"],
            sep=_LINE_SEPARATOR,
            dtype=str,
            keep_default_na=False,
            na_filter=False,
            quoting=csv.QUOTE_NONE,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        return pd.Series([], dtype=str)
    except pd.errors.ParserError as exc:
        raise CsvFormatError(
            "Failed to parse CSV file. Ensure it is correctly formatted."
        ) from exc
    lines = frame["line"]
    return lines[lines.str.strip() != ""].reset_index(drop=True)


def parse_csv_text(text: str) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Parse comma-separated text into records keyed by the header row.

    Cells are split on bare commas (quotes get no special treatment) and
    trimmed. Blank lines are ignored, missing trailing cells read as empty
    text and surplus cells are dropped.
    """
    lines = _read_lines(text)
    if len(lines) < 2:
        raise CsvFormatError(
            "CSV file must contain a header row and at least one data row."
        )

    headers = [header.strip() for header in lines.iloc[0].split(",")]
    width = len(headers)
    cells = (
        lines.iloc[1:]
        .str.split(",", expand=True)
        .reindex(columns=range(width))
        .fillna("")
    )
    records: List[Dict[str, Any]] = []
    for row in cells.itertuples(index=False, name=None):
        records.append(
            {header: coerce_cell(cell) for header, cell in zip(headers, row)}
        )
    return records, headers


def load_csv(path: Path) -> Tuple[List[Dict[str, Any]], List[str]]:
    try:
        text = path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise CsvFormatError(f"{path} is not UTF-8 encoded text.") from exc
    return parse_csv_text(text)

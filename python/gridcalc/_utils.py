"""A1-style cell address helpers.

Columns are a single letter ``A``-``Z``; rows are 1-based.
"""

from __future__ import annotations

import re

_A1_RE = re.compile(r"^([A-Z])(\d+)$")

MAX_COLUMNS = 26


def column_letter(index: int) -> str:
    """0-based column index -> letter (``0`` -> ``"A"``)."""
    if index < 0 or index >= MAX_COLUMNS:
        raise ValueError(f"Column index out of range: {index}")
    return chr(ord("A") + index)


def column_index(letter: str) -> int:
    """Column letter -> 0-based index (``"A"`` -> ``0``)."""
    if len(letter) != 1 or not "A" <= letter <= "Z":
        raise ValueError(f"Invalid column letter: {letter!r}")
    return ord(letter) - ord("A")


def a1_to_rowcol(ref: str) -> tuple[int, int]:
    """``"B4"`` -> ``(4, 2)``: 1-based row and column."""
    m = _A1_RE.match(ref)
    if not m or int(m.group(2)) < 1:
        raise ValueError(f"Invalid cell reference: {ref!r}")
    return int(m.group(2)), column_index(m.group(1)) + 1


def rowcol_to_a1(row: int, col: int) -> str:
    """``(4, 2)`` -> ``"B4"``."""
    if row < 1:
        raise ValueError(f"Row must be >= 1, got {row}")
    return f"{column_letter(col - 1)}{row}"


def is_cell_ref(text: str) -> bool:
    return _A1_RE.match(text) is not None

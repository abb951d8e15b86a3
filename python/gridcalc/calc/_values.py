"""Cell value model: tagged kinds, error sentinels and total coercions.

Resolved values are plain Python objects:

- ``""`` (or ``None`` from a host) is **Empty**
- ``float`` is **Number**
- ``str`` is **Text**
- :class:`CellError` is **Error**
"""

from __future__ import annotations

import enum
import math
import re
from typing import Any, Union


class CellError:
    """Error value shown in place of a computed result.

    Use ``CellError.of(code)`` to get a cached singleton for each code.
    Errors compare equal to their string code so hosts can display them
    verbatim, but :func:`classify` still reports them as ``ERROR``.
    """

    __slots__ = ("code",)
    _cache: dict[str, CellError] = {}

    ERROR: CellError
    CIRCULAR: CellError

    def __init__(self, code: str) -> None:
        self.code = code

    @classmethod
    def of(cls, code: str) -> CellError:
        canon = code.upper()
        if canon not in cls._cache:
            cls._cache[canon] = cls(canon)
        return cls._cache[canon]

    def __repr__(self) -> str:
        return self.code

    def __str__(self) -> str:
        return self.code

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CellError):
            return self.code == other.code
        if isinstance(other, str):
            return self.code == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.code)


CellError.ERROR = CellError.of("#ERROR!")
CellError.CIRCULAR = CellError.of("#CIRCULAR!")

CellValue = Union[float, str, CellError]


class ValueKind(enum.Enum):
    EMPTY = "empty"
    NUMBER = "number"
    TEXT = "text"
    ERROR = "error"


def classify(value: Any) -> ValueKind:
    if isinstance(value, CellError):
        return ValueKind.ERROR
    if value is None or value == "":
        return ValueKind.EMPTY
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return ValueKind.NUMBER
    return ValueKind.TEXT


def is_error(value: Any) -> bool:
    return isinstance(value, CellError)


def is_circular(value: Any) -> bool:
    """True for the cycle marker, the one error every reading formula takes on.

    Other errors read as non-numeric, like text.
    """
    return isinstance(value, CellError) and value.code == CellError.CIRCULAR.code


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------

# Decimal literal with optional sign and exponent; surrounding blanks allowed.
_NUMERIC_RE = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?\s*$")


def is_numeric_text(text: str) -> bool:
    return _NUMERIC_RE.match(text) is not None


def coerce_literal(text: str) -> CellValue:
    """Stored literal -> displayed value: numbers become floats, text stays."""
    if is_numeric_text(text):
        return float(text)
    return text


def to_number(value: Any) -> float | None:
    """Numeric view of a resolved value, or None when it has none.

    Never raises. Errors, empty cells and non-numeric text all map to None.
    """
    if isinstance(value, bool) or value is None or isinstance(value, CellError):
        return None
    if isinstance(value, (int, float)):
        if math.isnan(value):
            return None
        return float(value)
    if isinstance(value, str) and is_numeric_text(value):
        return float(value)
    return None


def format_number(value: float) -> str:
    """Text form of a number for substitution into an arithmetic expression."""
    if not math.isfinite(value):
        raise ValueError(f"Cannot format non-finite number {value!r}")
    if value == int(value) and abs(value) < 1e15:
        return str(int(value))
    return repr(value)

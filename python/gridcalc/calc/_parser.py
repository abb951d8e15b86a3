"""Formula parser: reference extraction, range expansion, argument classification.

A formula is parsed once into one of four variants (:class:`Literal`,
:class:`SumCall`, :class:`SumIfCall`, :class:`Arithmetic`); the evaluator
dispatches on the variant type rather than re-matching string prefixes.
"""

from __future__ import annotations

import enum
import functools
import math
import re
from dataclasses import dataclass
from typing import Union

from gridcalc._utils import a1_to_rowcol, is_cell_ref, rowcol_to_a1
from gridcalc.calc._errors import FormulaSyntaxError
from gridcalc.calc._values import is_numeric_text

# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

# Single cell ref as written in formulas: one uppercase column letter + row.
CELL_REF_RE = re.compile(r"[A-Z]\d+")

_SUMIF_PREFIX = "=SUMIF("
_SUM_PREFIX = "=SUM("

SUPPORTED_FUNCTIONS = frozenset({"SUM", "SUMIF"})


# ---------------------------------------------------------------------------
# Range expansion
# ---------------------------------------------------------------------------


def _parse_endpoints(range_ref: str) -> tuple[tuple[int, int], tuple[int, int]]:
    parts = range_ref.split(":")
    if len(parts) != 2:
        raise FormulaSyntaxError(f"Invalid range: {range_ref!r}")
    try:
        start = a1_to_rowcol(parts[0].strip())
        end = a1_to_rowcol(parts[1].strip())
    except ValueError as exc:
        raise FormulaSyntaxError(f"Invalid range: {range_ref!r}") from exc
    return start, end


def expand_range(range_ref: str) -> list[str]:
    """Expand ``"A1:B2"`` into ``["A1", "A2", "B1", "B2"]``.

    Order is column-major: columns outer, rows inner. Reversed endpoints
    (``"B2:A1"``) are normalized to the same rectangle.

    Raises FormulaSyntaxError if either endpoint is not ``[A-Z]\\d+``.
    """
    (start_row, start_col), (end_row, end_col) = _parse_endpoints(range_ref)

    r_min, r_max = min(start_row, end_row), max(start_row, end_row)
    c_min, c_max = min(start_col, end_col), max(start_col, end_col)

    cells: list[str] = []
    for c in range(c_min, c_max + 1):
        for r in range(r_min, r_max + 1):
            cells.append(rowcol_to_a1(r, c))
    return cells


# ---------------------------------------------------------------------------
# Argument classification
# ---------------------------------------------------------------------------


class ArgKind(enum.Enum):
    RANGE = "range"
    CELL_REF = "cell_ref"
    STRING = "string"
    CRITERION = "criterion"
    NUMBER = "number"


@dataclass(frozen=True)
class Argument:
    """One classified function argument.

    ``text`` is the trimmed source text; ``value`` is the payload: the
    range/ref text, the unquoted string, the raw criterion, or a float
    (``nan`` when the text is not a number).
    """

    kind: ArgKind
    text: str
    value: str | float


def split_args(args_str: str) -> list[str]:
    """Split on commas at paren depth 0, outside double-quoted strings."""
    args: list[str] = []
    depth = 0
    in_string = False
    current = ""
    for ch in args_str:
        if ch == '"':
            in_string = not in_string
            current += ch
        elif not in_string:
            if ch == "(":
                depth += 1
                current += ch
            elif ch == ")":
                depth -= 1
                current += ch
            elif ch == "," and depth == 0:
                args.append(current)
                current = ""
            else:
                current += ch
        else:
            current += ch
    args.append(current)
    return args


def classify_arg(arg: str) -> Argument:
    arg = arg.strip()
    if ":" in arg:
        return Argument(ArgKind.RANGE, arg, arg)
    if is_cell_ref(arg):
        return Argument(ArgKind.CELL_REF, arg, arg)
    if len(arg) >= 2 and arg[0] == '"' and arg[-1] == '"':
        return Argument(ArgKind.STRING, arg, arg[1:-1])
    if arg[:1] in (">", "<", "="):
        return Argument(ArgKind.CRITERION, arg, arg)
    number = float(arg) if is_numeric_text(arg) else math.nan
    return Argument(ArgKind.NUMBER, arg, number)


def classify_args(args_str: str) -> list[Argument]:
    """Classify the text between a function's parentheses.

    An argument list that is empty or all whitespace yields no arguments.
    """
    if not args_str.strip():
        return []
    return [classify_arg(a) for a in split_args(args_str)]


# ---------------------------------------------------------------------------
# Parsed formula variants
# ---------------------------------------------------------------------------


def _argument_refs(args: tuple[Argument, ...]) -> list[str]:
    refs: list[str] = []
    for arg in args:
        if arg.kind is ArgKind.RANGE:
            refs.extend(expand_range(arg.text))
        elif arg.kind is ArgKind.CELL_REF:
            refs.append(arg.text)
    return refs


@dataclass(frozen=True)
class Literal:
    """Text that does not start with ``=``; displayed as-is."""

    text: str

    def references(self) -> list[str]:
        return []


@dataclass(frozen=True)
class SumCall:
    args: tuple[Argument, ...]

    def references(self) -> list[str]:
        return _dedupe(_argument_refs(self.args))


@dataclass(frozen=True)
class SumIfCall:
    args: tuple[Argument, ...]

    def references(self) -> list[str]:
        return _dedupe(_argument_refs(self.args))


@dataclass(frozen=True)
class Arithmetic:
    """Generic ``=<expr>`` formula; ``expression`` excludes the ``=``."""

    expression: str

    def references(self) -> list[str]:
        return _dedupe(CELL_REF_RE.findall(self.expression))


ParsedFormula = Union[Literal, SumCall, SumIfCall, Arithmetic]


def _dedupe(refs: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for ref in refs:
        if ref not in seen:
            out.append(ref)
            seen.add(ref)
    return out


def _check_balanced(text: str, formula: str) -> None:
    depth = 0
    in_string = False
    for ch in text:
        if ch == '"':
            in_string = not in_string
        elif not in_string:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth < 0:
                    raise FormulaSyntaxError(f"Unbalanced parentheses in {formula!r}")
    if depth != 0 or in_string:
        raise FormulaSyntaxError(f"Unbalanced parentheses in {formula!r}")


def _call_args(formula: str, prefix: str) -> tuple[Argument, ...]:
    if not formula.endswith(")") or len(formula) <= len(prefix):
        raise FormulaSyntaxError(f"Missing closing parenthesis in {formula!r}")
    inner = formula[len(prefix):-1]
    _check_balanced(inner, formula)
    return tuple(classify_args(inner))


@functools.lru_cache(maxsize=4096)
def parse_formula(formula: str) -> ParsedFormula:
    """Parse stored cell text into its formula variant.

    Function names match case-insensitively; SUMIF is tested before SUM.

    Raises FormulaSyntaxError when a SUM/SUMIF call is not closed or its
    parentheses are unbalanced.
    """
    if not formula.startswith("="):
        return Literal(formula)
    head = formula[: len(_SUMIF_PREFIX)].upper()
    if head == _SUMIF_PREFIX:
        return SumIfCall(_call_args(formula, _SUMIF_PREFIX))
    if head.startswith(_SUM_PREFIX):
        return SumCall(_call_args(formula, _SUM_PREFIX))
    return Arithmetic(formula[1:])


def all_references(formula: str) -> list[str]:
    """All cell refs a formula reads, with ranges expanded, in first-seen order."""
    return parse_formula(formula).references()

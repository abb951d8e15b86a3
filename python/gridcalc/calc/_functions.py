"""Builtin aggregate functions: SUM and SUMIF.

Each builtin takes the classified arguments of the call and a ``lookup``
callable mapping a cell ref to its resolved value.
"""

from __future__ import annotations

import logging
import operator
import re
from typing import Any, Callable

from gridcalc.calc._errors import ErrorValueReference, FormulaArgumentError, FormulaArityError
from gridcalc.calc._parser import SUPPORTED_FUNCTIONS, ArgKind, Argument, expand_range
from gridcalc.calc._values import format_number, is_circular, to_number

logger = logging.getLogger(__name__)

Lookup = Callable[[str], Any]


def is_supported(func_name: str) -> bool:
    """Check if a function name can be evaluated."""
    return func_name.upper() in SUPPORTED_FUNCTIONS


# ---------------------------------------------------------------------------
# Reference resolution
# ---------------------------------------------------------------------------


def _resolve(ref: str, lookup: Lookup) -> Any:
    """Value of *ref*; a cell on a reference cycle aborts the whole call."""
    value = lookup(ref)
    if is_circular(value):
        raise ErrorValueReference(ref, value)
    return value


def _range_values(arg: Argument, lookup: Lookup, func_name: str) -> list[Any]:
    """Values of a range argument, or a one-element list for a bare cell ref."""
    if arg.kind is ArgKind.RANGE:
        return [_resolve(ref, lookup) for ref in expand_range(arg.text)]
    if arg.kind is ArgKind.CELL_REF:
        return [_resolve(arg.text, lookup)]
    raise FormulaArgumentError(f"{func_name}: expected a range, got {arg.text!r}")


# ---------------------------------------------------------------------------
# SUM
# ---------------------------------------------------------------------------


def _builtin_sum(args: list[Argument], lookup: Lookup) -> float:
    """SUM(arg, ...): ranges, cell refs and numbers; non-numeric cells count 0."""
    total = 0.0
    for arg in args:
        if arg.kind is ArgKind.RANGE:
            for value in _range_values(arg, lookup, "SUM"):
                total += to_number(value) or 0.0
        elif arg.kind is ArgKind.CELL_REF:
            total += to_number(_resolve(arg.text, lookup)) or 0.0
        elif arg.kind is ArgKind.NUMBER:
            number = to_number(arg.value)
            if number is None:
                raise FormulaArgumentError(f"SUM: not a number: {arg.text!r}")
            total += number
        else:
            raise FormulaArgumentError(f"SUM: unsupported argument {arg.text!r}")
    return total


# ---------------------------------------------------------------------------
# SUMIF
# ---------------------------------------------------------------------------

_CRITERION_STRIP_RE = re.compile(r'["><=]')

_COMPARATORS: dict[str, Callable[[float, float], bool]] = {
    ">": operator.gt,
    "<": operator.lt,
    "=": operator.eq,
}


def _parse_criterion(text: str) -> tuple[str, float]:
    """Split criterion text like ``">10"`` into ``(">", 10.0)``.

    The comparator is the leading ``>`` or ``<`` (``=`` otherwise); the
    operand is what remains once every ``"``, ``>``, ``<`` and ``=`` is
    removed. ``">=5"`` therefore compares with a strict ``>``.
    """
    op = text[0] if text[:1] in (">", "<") else "="
    threshold = to_number(_CRITERION_STRIP_RE.sub("", text))
    if threshold is None:
        raise FormulaArgumentError(f"SUMIF: invalid criterion {text!r}")
    return op, threshold


def _criterion_text(arg: Argument, lookup: Lookup) -> str:
    if arg.kind is ArgKind.STRING:
        return str(arg.value)
    if arg.kind in (ArgKind.CRITERION, ArgKind.NUMBER):
        return arg.text
    if arg.kind is ArgKind.CELL_REF:
        value = _resolve(arg.text, lookup)
        number = to_number(value)
        return format_number(number) if number is not None else str(value)
    raise FormulaArgumentError(f"SUMIF: invalid criterion {arg.text!r}")


def _builtin_sumif(args: list[Argument], lookup: Lookup) -> float:
    """SUMIF(range, criterion, [sum_range]).

    Criterion-range and sum-range cells are paired by position; pairs where
    either side is not numeric (text, empty or an error value) are skipped. Ranges of different sizes are
    truncated to the shorter one.
    """
    if len(args) not in (2, 3):
        raise FormulaArityError(f"SUMIF requires 2 or 3 arguments, got {len(args)}")
    crit_range, criterion = args[0], args[1]
    sum_range = args[2] if len(args) == 3 else None

    op, threshold = _parse_criterion(_criterion_text(criterion, lookup))
    compare = _COMPARATORS[op]

    range_values = _range_values(crit_range, lookup, "SUMIF")
    if sum_range is None:
        sum_values = range_values
    else:
        sum_values = _range_values(sum_range, lookup, "SUMIF")
        if len(sum_values) != len(range_values):
            logger.debug(
                "SUMIF ranges differ in size (%d vs %d); pairing the first %d",
                len(range_values), len(sum_values), min(len(range_values), len(sum_values)),
            )

    total = 0.0
    for cv, sv in zip(range_values, sum_values):
        cell_num = to_number(cv)
        sum_num = to_number(sv)
        if cell_num is None or sum_num is None:
            continue
        if compare(cell_num, threshold):
            total += sum_num
    return total


_BUILTINS: dict[str, Callable[[list[Argument], Lookup], float]] = {
    "SUM": _builtin_sum,
    "SUMIF": _builtin_sumif,
}


def get_function(name: str) -> Callable[[list[Argument], Lookup], float]:
    try:
        return _BUILTINS[name.upper()]
    except KeyError:
        raise KeyError(f"Unsupported function: {name}") from None

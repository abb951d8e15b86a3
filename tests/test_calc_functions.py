"""Tests for gridcalc.calc SUM and SUMIF builtins."""

from __future__ import annotations

import logging
from typing import Any, Callable

import pytest
from gridcalc.calc._errors import ErrorValueReference, FormulaArgumentError, FormulaArityError
from gridcalc.calc._functions import (
    _BUILTINS,
    _builtin_sum,
    _builtin_sumif,
    _parse_criterion,
    get_function,
    is_supported,
)
from gridcalc.calc._parser import classify_args
from gridcalc.calc._values import CellError


def _lookup(cells: dict[str, Any]) -> Callable[[str], Any]:
    return lambda ref: cells.get(ref, "")


SUMIF_CELLS: dict[str, Any] = {
    "A1": 5.0, "A2": 15.0, "A3": 20.0,
    "B1": 1.0, "B2": 2.0, "B3": 3.0,
}


class TestRegistry:
    def test_builtins(self) -> None:
        assert set(_BUILTINS) == {"SUM", "SUMIF"}

    def test_is_supported_case_insensitive(self) -> None:
        assert is_supported("sum")
        assert is_supported("SumIf")
        assert not is_supported("AVERAGE")

    def test_get_function(self) -> None:
        assert get_function("sum") is _builtin_sum
        with pytest.raises(KeyError):
            get_function("VLOOKUP")


class TestBuiltinSUM:
    def test_range(self) -> None:
        lookup = _lookup({"B2": 30.0, "B3": 25.0})
        assert _builtin_sum(classify_args("B2:B3"), lookup) == 55

    def test_mixed_arguments(self) -> None:
        lookup = _lookup({"A1": 1.0, "A2": 2.0, "C1": 10.0})
        assert _builtin_sum(classify_args("A1:A2, C1, 100"), lookup) == 113

    def test_non_numeric_cells_count_zero(self) -> None:
        lookup = _lookup({"A1": "Name", "A2": 4.0, "B1": "x"})
        assert _builtin_sum(classify_args("A1:A3, B1"), lookup) == 4

    def test_numeric_text_cells_count(self) -> None:
        lookup = _lookup({"A1": "4"})
        assert _builtin_sum(classify_args("A1"), lookup) == 4

    def test_no_arguments(self) -> None:
        assert _builtin_sum([], _lookup({})) == 0

    def test_non_numeric_bare_argument(self) -> None:
        with pytest.raises(FormulaArgumentError):
            _builtin_sum(classify_args("abc"), _lookup({}))

    def test_string_argument_rejected(self) -> None:
        with pytest.raises(FormulaArgumentError):
            _builtin_sum(classify_args('"5"'), _lookup({}))

    def test_error_cell_counts_zero(self) -> None:
        lookup = _lookup({"A1": 1.0, "A2": CellError.ERROR})
        assert _builtin_sum(classify_args("A1:A2"), lookup) == 1
        assert _builtin_sum(classify_args("A2, 3"), lookup) == 3

    def test_circular_cell_aborts(self) -> None:
        lookup = _lookup({"A1": 1.0, "A2": CellError.CIRCULAR})
        with pytest.raises(ErrorValueReference) as exc_info:
            _builtin_sum(classify_args("A1:A2"), lookup)
        assert exc_info.value.error is CellError.CIRCULAR
        assert exc_info.value.ref == "A2"


class TestParseCriterion:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            (">10", (">", 10.0)),
            ("<2.5", ("<", 2.5)),
            ("=15", ("=", 15.0)),
            ("15", ("=", 15.0)),
            ('">10"', ("=", 10.0)),
            (">=5", (">", 5.0)),
        ],
    )
    def test_leading_comparator(self, text: str, expected: tuple[str, float]) -> None:
        assert _parse_criterion(text) == expected

    def test_unparsable(self) -> None:
        with pytest.raises(FormulaArgumentError):
            _parse_criterion("abc")


class TestBuiltinSUMIF:
    def test_with_sum_range(self) -> None:
        args = classify_args('A1:A3, ">10", B1:B3')
        assert _builtin_sumif(args, _lookup(SUMIF_CELLS)) == 5

    def test_without_sum_range(self) -> None:
        args = classify_args('A1:A3, ">10"')
        assert _builtin_sumif(args, _lookup(SUMIF_CELLS)) == 35

    def test_less_than(self) -> None:
        args = classify_args('A1:A3, "<10", B1:B3')
        assert _builtin_sumif(args, _lookup(SUMIF_CELLS)) == 1

    def test_bare_number_means_equality(self) -> None:
        args = classify_args("A1:A3, 15, B1:B3")
        assert _builtin_sumif(args, _lookup(SUMIF_CELLS)) == 2

    def test_unquoted_criterion(self) -> None:
        args = classify_args("A1:A3, >10, B1:B3")
        assert _builtin_sumif(args, _lookup(SUMIF_CELLS)) == 5

    def test_greater_equal_is_strict(self) -> None:
        args = classify_args('A1:A3, ">=15", B1:B3')
        assert _builtin_sumif(args, _lookup(SUMIF_CELLS)) == 3

    def test_cell_ref_criterion(self) -> None:
        cells = dict(SUMIF_CELLS, C1=">10", C2=15.0)
        assert _builtin_sumif(classify_args("A1:A3, C1, B1:B3"), _lookup(cells)) == 5
        assert _builtin_sumif(classify_args("A1:A3, C2, B1:B3"), _lookup(cells)) == 2

    def test_single_cell_ranges(self) -> None:
        args = classify_args('A2, ">10", B2')
        assert _builtin_sumif(args, _lookup(SUMIF_CELLS)) == 2

    def test_non_numeric_pairs_skipped(self) -> None:
        cells = dict(SUMIF_CELLS, A2="x", B3="")
        args = classify_args('A1:A3, ">0", B1:B3')
        assert _builtin_sumif(args, _lookup(cells)) == 1

    def test_shorter_sum_range_truncates(self) -> None:
        args = classify_args('A1:A3, ">0", B1:B2')
        assert _builtin_sumif(args, _lookup(SUMIF_CELLS)) == 3

    @pytest.mark.parametrize("args_str", ["A1:A3", 'A1:A3, ">1", B1:B3, C1:C3'])
    def test_wrong_arity(self, args_str: str) -> None:
        with pytest.raises(FormulaArityError):
            _builtin_sumif(classify_args(args_str), _lookup(SUMIF_CELLS))

    def test_invalid_criterion(self) -> None:
        with pytest.raises(FormulaArgumentError):
            _builtin_sumif(classify_args('A1:A3, "abc"'), _lookup(SUMIF_CELLS))

    def test_range_criterion_rejected(self) -> None:
        with pytest.raises(FormulaArgumentError):
            _builtin_sumif(classify_args("A1:A3, B1:B3"), _lookup(SUMIF_CELLS))

    def test_number_as_range_rejected(self) -> None:
        with pytest.raises(FormulaArgumentError):
            _builtin_sumif(classify_args('5, ">1"'), _lookup(SUMIF_CELLS))

    def test_error_cell_in_criterion_range_skipped(self) -> None:
        cells = dict(SUMIF_CELLS, A2=CellError.ERROR)
        assert _builtin_sumif(classify_args('A1:A3, ">0", B1:B3'), _lookup(cells)) == 4

    def test_error_cell_in_sum_range_skipped(self) -> None:
        cells = dict(SUMIF_CELLS, B3=CellError.ERROR)
        assert _builtin_sumif(classify_args('A1:A3, ">10", B1:B3'), _lookup(cells)) == 2

    def test_size_mismatch_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        args = classify_args('A1:A3, ">0", B1:B2')
        with caplog.at_level(logging.DEBUG, logger="gridcalc.calc._functions"):
            assert _builtin_sumif(args, _lookup(SUMIF_CELLS)) == 3
        assert "differ in size" in caplog.text

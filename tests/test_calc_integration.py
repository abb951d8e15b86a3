"""Integration tests: end-to-end grid scenarios through the public API."""

from __future__ import annotations

import gridcalc
from gridcalc import Grid, GridEvaluator
from gridcalc.calc import CellError, expand_range, resolve_formula

# ---------------------------------------------------------------------------
# Golden grid builders
# ---------------------------------------------------------------------------


def _build_scores() -> Grid:
    """Name/Score/Team table with a SUM total in B4."""
    return Grid({
        "A1": "Name", "B1": "Score", "C1": "Team",
        "A2": "John", "B2": "30", "C2": "Red",
        "A3": "Alice", "B3": "25", "C3": "Blue",
        "A4": "Total", "B4": "=SUM(B2:B3)",
    })


def _build_sumif() -> Grid:
    """A=[5,15,20], B=[1,2,3], C1 sums B where A>10."""
    return Grid({
        "A1": "5", "A2": "15", "A3": "20",
        "B1": "1", "B2": "2", "B3": "3",
        "C1": '=SUMIF(A1:A3, ">10", B1:B3)',
    })


class TestScenarios:
    def test_sum_total(self) -> None:
        assert GridEvaluator(_build_scores()).value("B4") == 55

    def test_sumif_total(self) -> None:
        assert GridEvaluator(_build_sumif()).value("C1") == 5

    def test_precedence(self) -> None:
        ev = GridEvaluator(Grid({"A1": "=2+3*4", "A2": "=(2+3)*4"}))
        assert ev.value("A1") == 14
        assert ev.value("A2") == 20

    def test_unset_cell_is_empty_string(self) -> None:
        assert GridEvaluator(_build_scores()).value("J20") == ""

    def test_malformed_formula(self) -> None:
        ev = GridEvaluator(Grid({"A1": "=SUM("}))
        assert ev.value("A1") == "#ERROR!"

    def test_sumif_arity(self) -> None:
        grid = _build_sumif()
        grid["D1"] = "=SUMIF(A1:A3)"
        grid["D2"] = '=SUMIF(A1:A3, ">1", B1:B3, B1:B3)'
        ev = GridEvaluator(grid)
        assert ev.value("D1") is CellError.ERROR
        assert ev.value("D2") is CellError.ERROR

    def test_idempotent_reads(self) -> None:
        grid = _build_scores()
        assert GridEvaluator(grid).value("B4") == GridEvaluator(grid).value("B4")
        assert resolve_formula("=2*3", lambda ref: "") == resolve_formula("=2*3", lambda ref: "")

    def test_range_order(self) -> None:
        assert expand_range("A1:B2") == ["A1", "A2", "B1", "B2"]


class TestEditing:
    def test_total_follows_edits(self) -> None:
        grid = _build_scores()
        ev = GridEvaluator(grid)
        grid["B3"] = "=B2*2"
        assert ev.value("B4") == 90

    def test_recalculate_reports_total(self) -> None:
        ev = GridEvaluator(_build_scores())
        result = ev.recalculate({"B2": "40"})
        assert [(d.cell_ref, d.new_value) for d in result.deltas] == [("B4", 65)]

    def test_introducing_a_cycle(self) -> None:
        grid = _build_scores()
        ev = GridEvaluator(grid)
        grid["B2"] = "=B4"
        assert ev.value("B4") is CellError.CIRCULAR
        assert ev.value("B2") is CellError.CIRCULAR
        assert ev.value("A1") == "Name"


class TestPackage:
    def test_version(self) -> None:
        assert gridcalc.__version__ == "0.1.0"

    def test_public_api(self) -> None:
        for name in gridcalc.__all__:
            assert hasattr(gridcalc, name)

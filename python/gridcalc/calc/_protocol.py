"""Host-facing protocols and recalculation result dataclasses."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from gridcalc._grid import CellRecord


@runtime_checkable
class CellStore(Protocol):
    """Cell value provider: the host grid's stored literals and formulas."""

    @property
    def version(self) -> int:
        """Counter bumped on every mutation; evaluators drop memoized values when it moves."""
        ...

    def record(self, ref: str) -> CellRecord | None:
        """Stored record at *ref*, or None for an empty cell."""
        ...

    def formula_cells(self) -> Iterable[tuple[str, str]]:
        """``(ref, formula)`` for every cell holding a formula."""
        ...


@dataclass(frozen=True)
class CellDelta:
    """A single cell's value change from recalculation."""

    cell_ref: str
    old_value: Any
    new_value: Any
    formula: str | None = None  # the formula that produced new_value


@dataclass(frozen=True)
class RecalcResult:
    """Result of an edit-driven recalculation."""

    edits: dict[str, str]  # cell_ref -> new stored text
    deltas: tuple[CellDelta, ...]  # formula cells whose value changed
    total_formula_cells: int = 0
    propagated_cells: int = 0
    max_chain_depth: int = 0  # longest dependency chain from edited cells

    @property
    def propagation_ratio(self) -> float:
        if self.total_formula_cells == 0:
            return 0.0
        return self.propagated_cells / self.total_formula_cells


@runtime_checkable
class CalcEngine(Protocol):
    """Resolved value producer: turns stored cells into displayed values."""

    def load(self, store: CellStore) -> None:
        """Attach a cell store."""
        ...

    def value(self, cell_ref: str) -> Any:
        """Displayed value of one cell."""
        ...

    def calculate(self) -> dict[str, Any]:
        """Evaluate all formulas.

        Returns a dict of cell_ref -> computed value for all formula cells.
        """
        ...

    def recalculate(self, edits: dict[str, str], tolerance: float = 1e-10) -> RecalcResult:
        """Apply edits to the store and report which formula cells changed."""
        ...


@runtime_checkable
class EditableCellStore(CellStore, Protocol):
    """A cell store that accepts writes (needed for recalculation)."""

    def set(self, ref: str, text: str) -> None:
        ...

"""Grid: sparse in-memory store of cell literals and formulas."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from gridcalc._utils import a1_to_rowcol


@dataclass(frozen=True)
class CellRecord:
    """What a cell stores: exactly one of a literal or a formula."""

    literal: str | None = None
    formula: str | None = None

    def __post_init__(self) -> None:
        if (self.literal is None) == (self.formula is None):
            raise ValueError("CellRecord holds exactly one of literal or formula")
        if self.formula is not None and not self.formula.startswith("="):
            raise ValueError(f"Formula must start with '=': {self.formula!r}")

    @classmethod
    def from_input(cls, text: str) -> CellRecord:
        """Build a record from user-typed text; ``=...`` is a formula."""
        if text.startswith("="):
            return cls(formula=text)
        return cls(literal=text)

    @property
    def is_formula(self) -> bool:
        return self.formula is not None

    @property
    def text(self) -> str:
        """The stored text as the user typed it."""
        return self.formula if self.formula is not None else self.literal  # type: ignore[return-value]


class Grid:
    """Sparse mapping of A1 refs to :class:`CellRecord`.

    Usage::

        grid = Grid()
        grid["B2"] = "30"
        grid["B4"] = "=SUM(B2:B3)"

    Every write replaces the whole record, so a cell never holds both a
    literal and a formula. Unset cells are absent.
    """

    __slots__ = ("_cells", "_version")

    def __init__(self, cells: Mapping[str, str] | None = None) -> None:
        self._cells: dict[str, CellRecord] = {}
        self._version = 0
        if cells:
            for ref, text in cells.items():
                self.set(ref, text)

    @classmethod
    def from_dict(cls, cells: Mapping[str, str]) -> Grid:
        return cls(cells)

    @property
    def version(self) -> int:
        return self._version

    # ------------------------------------------------------------------
    # Cell access
    # ------------------------------------------------------------------

    def set(self, ref: str, text: str) -> None:
        """Store *text* at *ref*. Empty text clears the cell.

        Raises ValueError for refs that are not a single column letter plus
        a row number.
        """
        a1_to_rowcol(ref)
        if text == "":
            self.clear(ref)
            return
        self._cells[ref] = CellRecord.from_input(text)
        self._version += 1

    def clear(self, ref: str) -> None:
        if self._cells.pop(ref, None) is not None:
            self._version += 1

    def record(self, ref: str) -> CellRecord | None:
        return self._cells.get(ref)

    def raw(self, ref: str) -> str:
        """Stored text at *ref* (formula or literal), ``""`` if unset."""
        rec = self._cells.get(ref)
        return rec.text if rec is not None else ""

    def __getitem__(self, ref: str) -> str:
        return self.raw(ref)

    def __setitem__(self, ref: str, text: str) -> None:
        self.set(ref, text)

    def __delitem__(self, ref: str) -> None:
        self.clear(ref)

    def __contains__(self, ref: object) -> bool:
        return ref in self._cells

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._cells, key=a1_to_rowcol))

    def __len__(self) -> int:
        return len(self._cells)

    def formula_cells(self) -> Iterator[tuple[str, str]]:
        for ref in self:
            rec = self._cells[ref]
            if rec.formula is not None:
                yield ref, rec.formula

"""Formula resolution.

:func:`resolve_formula` is the stateless entry point: it parses a formula
once into its variant and evaluates it against a caller-supplied lookup.
It has no cycle guard of its own; a lookup that re-enters it for a cell on
a reference cycle recurses until the interpreter's limit.

:class:`GridEvaluator` wraps a :class:`~gridcalc.calc._protocol.CellStore`
with a lookup that is memoized per store version and cycle-safe: reference
cycles are found up front and show as ``#CIRCULAR!``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from gridcalc.calc._arith import evaluate_arithmetic
from gridcalc.calc._errors import ErrorValueReference, FormulaError, FormulaEvaluationError
from gridcalc.calc._functions import get_function
from gridcalc.calc._graph import DependencyGraph
from gridcalc.calc._parser import (
    CELL_REF_RE,
    Arithmetic,
    Literal,
    ParsedFormula,
    SumCall,
    SumIfCall,
    parse_formula,
)
from gridcalc.calc._protocol import CellDelta, CellStore, EditableCellStore, RecalcResult
from gridcalc.calc._values import (
    CellError,
    CellValue,
    coerce_literal,
    format_number,
    is_circular,
    to_number,
)

logger = logging.getLogger(__name__)

Lookup = Callable[[str], Any]


# ---------------------------------------------------------------------------
# Stateless resolution
# ---------------------------------------------------------------------------


def _substitute_refs(expression: str, lookup: Lookup) -> str:
    """Replace every cell ref with its numeric value.

    Text, empty cells and ``#ERROR!`` cells substitute as ``0``.
    """

    def replace(m: Any) -> str:
        ref = m.group(0)
        value = lookup(ref)
        if is_circular(value):
            raise ErrorValueReference(ref, value)
        number = to_number(value)
        if number is None:
            return "0"
        try:
            return format_number(number)
        except ValueError as exc:
            raise FormulaEvaluationError(f"{ref} is not a finite number") from exc

    return CELL_REF_RE.sub(replace, expression)


def evaluate_parsed(parsed: ParsedFormula, lookup: Lookup) -> CellValue:
    """Evaluate an already-parsed formula. Raises FormulaError on failure."""
    if isinstance(parsed, Literal):
        return parsed.text
    if isinstance(parsed, SumIfCall):
        return get_function("SUMIF")(list(parsed.args), lookup)
    if isinstance(parsed, SumCall):
        return get_function("SUM")(list(parsed.args), lookup)
    if isinstance(parsed, Arithmetic):
        return evaluate_arithmetic(_substitute_refs(parsed.expression, lookup))
    raise TypeError(f"Unknown formula variant: {parsed!r}")


def resolve_formula(formula: str, lookup: Lookup) -> CellValue:
    """Displayed value of *formula*.

    Text not starting with ``=`` is returned unchanged. Formulas that fail to
    parse or evaluate give ``#ERROR!``. A formula reading a cell on a
    reference cycle gives ``#CIRCULAR!``; any other error cell reads as 0.
    """
    try:
        return evaluate_parsed(parse_formula(formula), lookup)
    except ErrorValueReference as e:
        return e.error  # type: ignore[return-value]
    except FormulaError as e:
        logger.debug("Cannot evaluate formula %r: %s", formula, e)
        return CellError.ERROR


def _values_differ(a: Any, b: Any, tolerance: float) -> bool:
    """Check if two values differ beyond tolerance."""
    if isinstance(a, float) and isinstance(b, float):
        return abs(a - b) > tolerance
    if type(a) is not type(b):
        return True
    return a != b


# ---------------------------------------------------------------------------
# Grid evaluator
# ---------------------------------------------------------------------------


class GridEvaluator:
    """Resolves displayed values for every cell of a cell store.

    Usage::

        evaluator = GridEvaluator()
        evaluator.load(grid)
        evaluator.value("B4")
        results = evaluator.calculate()
        recalc = evaluator.recalculate({"B2": "40"})

    Values are memoized until the store's ``version`` changes. Each rebuild
    re-scans the store into a :class:`DependencyGraph` and marks the cells
    that sit on reference cycles.
    """

    def __init__(self, store: CellStore | None = None) -> None:
        self._store: CellStore | None = None
        self._graph = DependencyGraph()
        self._cyclic: set[str] = set()
        self._cache: dict[str, CellValue] = {}
        self._version: int | None = None
        if store is not None:
            self.load(store)

    def load(self, store: CellStore) -> None:
        """Attach *store*; the next read builds the dependency graph."""
        self._store = store
        self._version = None
        self._cache.clear()

    @property
    def graph(self) -> DependencyGraph:
        self._refresh()
        return self._graph

    @property
    def circular_cells(self) -> frozenset[str]:
        self._refresh()
        return frozenset(self._cyclic)

    def _refresh(self) -> CellStore:
        store = self._store
        if store is None:
            raise RuntimeError("Call load() before evaluating")
        if self._version == store.version:
            return store

        self._graph = DependencyGraph.from_store(store)
        self._cyclic = self._graph.cells_in_cycles()
        self._cache.clear()
        self._version = store.version
        logger.debug(
            "Rebuilt dependency graph: %d formula cells at version %d",
            len(self._graph.formulas), store.version,
        )
        if self._cyclic:
            logger.warning("Circular references detected: %s", ", ".join(sorted(self._cyclic)))
        return store

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def value(self, cell_ref: str) -> CellValue:
        """Displayed value of *cell_ref*; ``""`` for an empty cell."""
        store = self._refresh()
        if cell_ref in self._cache:
            return self._cache[cell_ref]
        rec = store.record(cell_ref)
        if rec is None:
            return ""
        if rec.formula is None:
            return coerce_literal(rec.literal or "")
        if cell_ref in self._cyclic:
            return CellError.CIRCULAR

        for ref in self._graph.evaluation_order([cell_ref], skip=self._cyclic):
            self._cache[ref] = resolve_formula(self._graph.formulas[ref], self._lookup)
        return self._cache[cell_ref]

    def _lookup(self, cell_ref: str) -> CellValue:
        if cell_ref in self._cache:
            return self._cache[cell_ref]
        return self.value(cell_ref)

    def resolve(self, formula: str) -> CellValue:
        """Evaluate *formula* as if typed into a cell of the attached store."""
        self._refresh()
        return resolve_formula(formula, self._lookup)

    def calculate(self) -> dict[str, CellValue]:
        """Evaluate all formulas.

        Returns dict of cell_ref -> computed value for formula cells.
        """
        self._refresh()
        formulas = sorted(self._graph.formulas)
        for ref in self._graph.evaluation_order(formulas, skip=self._cyclic):
            if ref not in self._cache:
                self._cache[ref] = resolve_formula(self._graph.formulas[ref], self._lookup)
        return {ref: self.value(ref) for ref in formulas}

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def recalculate(
        self,
        edits: dict[str, str],
        tolerance: float = 1e-10,
    ) -> RecalcResult:
        """Write *edits* to the store and report formula cells whose value changed."""
        store = self._refresh()
        if not isinstance(store, EditableCellStore):
            raise TypeError(f"{type(store).__name__} does not accept edits")

        old_values = self.calculate()

        for cell_ref, text in edits.items():
            store.set(cell_ref, text)
        self._refresh()

        affected = self._graph.affected_cells(set(edits))
        edited_formulas = [r for r in edits if r in self._graph.formulas and r not in affected]

        deltas: list[CellDelta] = []
        for cell_ref in edited_formulas + affected:
            old_val = old_values.get(cell_ref)
            new_val = self.value(cell_ref)
            if _values_differ(old_val, new_val, tolerance):
                deltas.append(CellDelta(
                    cell_ref=cell_ref,
                    old_value=old_val,
                    new_value=new_val,
                    formula=self._graph.formulas.get(cell_ref),
                ))

        return RecalcResult(
            edits=dict(edits),
            deltas=tuple(deltas),
            total_formula_cells=len(self._graph.formulas),
            propagated_cells=len(deltas),
            max_chain_depth=self._graph.max_depth(set(edits)),
        )

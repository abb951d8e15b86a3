"""Dependency graph for formula cells: cycle detection and evaluation ordering."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from gridcalc.calc._errors import CircularReferenceError, FormulaError
from gridcalc.calc._parser import all_references

if TYPE_CHECKING:
    from gridcalc.calc._protocol import CellStore

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Tracks which cells each formula cell reads.

    All cell references use plain A1 form (``"B4"``).
    """

    __slots__ = ("dependencies", "dependents", "formulas")

    def __init__(self) -> None:
        # cell -> set of cells it reads from
        self.dependencies: dict[str, set[str]] = {}
        # cell -> set of cells that read from it (reverse edges)
        self.dependents: dict[str, set[str]] = {}
        # cell -> formula string
        self.formulas: dict[str, str] = {}

    def add_formula(self, cell_ref: str, formula: str) -> None:
        """Register a formula cell and its dependencies.

        A formula that does not parse has no dependencies; evaluating it
        yields the error value anyway.
        """
        self.formulas[cell_ref] = formula
        try:
            refs = all_references(formula)
        except FormulaError as e:
            logger.debug("No dependencies for %s (%r): %s", cell_ref, formula, e)
            refs = []

        self.dependencies[cell_ref] = set(refs)

        for ref in refs:
            if ref not in self.dependents:
                self.dependents[ref] = set()
            self.dependents[ref].add(cell_ref)

    def _formula_deps(self, cell: str) -> list[str]:
        return sorted(d for d in self.dependencies.get(cell, ()) if d in self.formulas)

    # ------------------------------------------------------------------
    # Cycle detection
    # ------------------------------------------------------------------

    def find_cycles(self) -> list[list[str]]:
        """Groups of formula cells that read each other in a cycle.

        Tarjan's strongly connected components, run with an explicit stack.
        A component is a cycle when it has more than one cell or its only
        cell reads itself. Every cell that can reach itself through its
        dependencies lands in exactly one returned group, so skipping all of
        them leaves an acyclic graph.
        """
        index: dict[str, int] = {}
        lowlink: dict[str, int] = {}
        on_stack: set[str] = set()
        component_stack: list[str] = []
        cycles: list[list[str]] = []

        def enter(cell: str) -> tuple[str, Iterator[str]]:
            index[cell] = lowlink[cell] = len(index)
            component_stack.append(cell)
            on_stack.add(cell)
            return cell, iter(self._formula_deps(cell))

        for root in sorted(self.formulas):
            if root in index:
                continue
            stack = [enter(root)]
            while stack:
                cell, deps = stack[-1]
                for dep in deps:
                    if dep not in index:
                        stack.append(enter(dep))
                        break
                    if dep in on_stack:
                        lowlink[cell] = min(lowlink[cell], index[dep])
                else:
                    stack.pop()
                    if stack:
                        parent = stack[-1][0]
                        lowlink[parent] = min(lowlink[parent], lowlink[cell])
                    if lowlink[cell] != index[cell]:
                        continue
                    component: list[str] = []
                    while True:
                        member = component_stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == cell:
                            break
                    if len(component) > 1 or cell in self.dependencies.get(cell, ()):
                        cycles.append(sorted(component))

        return sorted(cycles)

    def cells_in_cycles(self) -> set[str]:
        cells: set[str] = set()
        for cycle in self.find_cycles():
            cells.update(cycle)
        return cells

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def topological_order(self) -> list[str]:
        """Return formula cells in evaluation order (Kahn's algorithm).

        Raises CircularReferenceError if a circular reference is detected.
        """
        formula_cells = set(self.formulas.keys())
        if not formula_cells:
            return []

        # Only count deps that are themselves formula cells
        in_degree: dict[str, int] = {}
        for cell in formula_cells:
            deps = self.dependencies.get(cell, set())
            in_degree[cell] = len(deps & formula_cells)

        queue: deque[str] = deque(sorted(c for c in formula_cells if in_degree[c] == 0))

        order: list[str] = []
        while queue:
            cell = queue.popleft()
            order.append(cell)
            for dep in sorted(self.dependents.get(cell, set())):
                if dep in formula_cells:
                    in_degree[dep] -= 1
                    if in_degree[dep] == 0:
                        queue.append(dep)

        if len(order) != len(formula_cells):
            missing = formula_cells - set(order)
            raise CircularReferenceError(sorted(missing))

        return order

    def evaluation_order(self, roots: Iterable[str], skip: set[str] | None = None) -> list[str]:
        """Formula cells needed for *roots*, dependencies first.

        Cells in *skip* are neither returned nor descended into. Uses an
        explicit stack, so chain length is not bounded by the recursion limit.

        Raises CircularReferenceError if a cycle remains after skipping.
        """
        skip = skip or set()
        visiting: set[str] = set()
        done: set[str] = set()
        order: list[str] = []

        for root in roots:
            if root not in self.formulas or root in skip or root in done:
                continue
            visiting.add(root)
            stack: list[tuple[str, Iterator[str]]] = [(root, iter(self._formula_deps(root)))]
            while stack:
                cell, deps = stack[-1]
                for dep in deps:
                    if dep in skip or dep in done:
                        continue
                    if dep in visiting:
                        raise CircularReferenceError([c for c, _ in stack])
                    visiting.add(dep)
                    stack.append((dep, iter(self._formula_deps(dep))))
                    break
                else:
                    stack.pop()
                    visiting.discard(cell)
                    done.add(cell)
                    order.append(cell)

        return order

    def affected_cells(self, changed_cells: set[str]) -> list[str]:
        """Find all formula cells affected by changes, in evaluation order.

        Uses BFS on the dependents graph. Cells on a cycle come last.
        """
        affected: set[str] = set()
        queue: deque[str] = deque(changed_cells)
        visited: set[str] = set(changed_cells)

        while queue:
            cell = queue.popleft()
            for dep in self.dependents.get(cell, set()):
                if dep not in visited:
                    visited.add(dep)
                    queue.append(dep)
                    if dep in self.formulas:
                        affected.add(dep)

        cyclic = self.cells_in_cycles()
        ordered = [c for c in self.evaluation_order(sorted(affected), skip=cyclic) if c in affected]
        return ordered + sorted(affected & cyclic)

    def max_depth(self, roots: set[str]) -> int:
        """Longest dependency chain from root cells through formula cells."""
        if not roots:
            return 0

        depth: dict[str, int] = {r: 0 for r in roots}
        queue: deque[str] = deque(roots)
        max_d = 0
        limit = len(self.formulas)

        while queue:
            cell = queue.popleft()
            current_depth = depth[cell]
            for dep in self.dependents.get(cell, set()):
                if dep in self.formulas:
                    new_depth = current_depth + 1
                    # Depth beyond the number of formulas only happens on a cycle
                    if new_depth > limit:
                        continue
                    if dep not in depth or new_depth > depth[dep]:
                        depth[dep] = new_depth
                        max_d = max(max_d, new_depth)
                        queue.append(dep)

        return max_d

    @classmethod
    def from_store(cls, store: CellStore) -> DependencyGraph:
        """Build a dependency graph from every formula cell in *store*."""
        graph = cls()
        for cell_ref, formula in store.formula_cells():
            graph.add_formula(cell_ref, formula)
        return graph

"""gridcalc: spreadsheet-style formula evaluation over a sparse cell grid.

Usage::

    from gridcalc import Grid, GridEvaluator

    grid = Grid({"B2": "30", "B3": "25", "B4": "=SUM(B2:B3)"})
    ev = GridEvaluator(grid)
    ev.value("B4")  # 55.0

    grid["B3"] = "=B2*2"
    ev.value("B4")  # 90.0
"""

from gridcalc._grid import CellRecord, Grid
from gridcalc._utils import a1_to_rowcol, column_index, column_letter, rowcol_to_a1
from gridcalc.calc import CellError, GridEvaluator, resolve_formula

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CellError",
    "CellRecord",
    "Grid",
    "GridEvaluator",
    "a1_to_rowcol",
    "column_index",
    "column_letter",
    "resolve_formula",
    "rowcol_to_a1",
]

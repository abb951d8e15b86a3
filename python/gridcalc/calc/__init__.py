"""gridcalc.calc - Formula evaluation engine for gridcalc grids."""

from gridcalc.calc._arith import evaluate_arithmetic, tokenize
from gridcalc.calc._errors import (
    ArithmeticSyntaxError,
    CalcError,
    CircularReferenceError,
    FormulaArgumentError,
    FormulaArityError,
    FormulaError,
    FormulaEvaluationError,
    FormulaSyntaxError,
)
from gridcalc.calc._evaluator import GridEvaluator, resolve_formula
from gridcalc.calc._functions import is_supported
from gridcalc.calc._graph import DependencyGraph
from gridcalc.calc._parser import (
    SUPPORTED_FUNCTIONS,
    ArgKind,
    Argument,
    all_references,
    classify_args,
    expand_range,
    parse_formula,
)
from gridcalc.calc._protocol import CalcEngine, CellDelta, CellStore, RecalcResult
from gridcalc.calc._values import CellError, CellValue, ValueKind, classify, is_error

__all__ = [
    "ArgKind",
    "Argument",
    "ArithmeticSyntaxError",
    "CalcEngine",
    "CalcError",
    "CellDelta",
    "CellError",
    "CellStore",
    "CellValue",
    "CircularReferenceError",
    "DependencyGraph",
    "FormulaArgumentError",
    "FormulaArityError",
    "FormulaError",
    "FormulaEvaluationError",
    "FormulaSyntaxError",
    "GridEvaluator",
    "RecalcResult",
    "SUPPORTED_FUNCTIONS",
    "ValueKind",
    "all_references",
    "classify",
    "classify_args",
    "evaluate_arithmetic",
    "expand_range",
    "is_error",
    "is_supported",
    "parse_formula",
    "resolve_formula",
    "tokenize",
]

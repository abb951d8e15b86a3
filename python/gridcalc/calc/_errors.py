"""Exception hierarchy for formula parsing and evaluation."""

from __future__ import annotations


class CalcError(ValueError):
    """Base class for every error raised by the calc engine."""


class FormulaError(CalcError):
    """A formula could not be parsed or evaluated.

    Caught at the resolver boundary and shown as ``#ERROR!``.
    """


class FormulaSyntaxError(FormulaError):
    pass


class ArithmeticSyntaxError(FormulaSyntaxError):
    """Malformed arithmetic: unbalanced parentheses, missing operands."""


class FormulaArityError(FormulaError):
    pass


class FormulaArgumentError(FormulaError):
    pass


class FormulaEvaluationError(FormulaError):
    """Well-formed formula whose evaluation failed (e.g. division by zero)."""


class CircularReferenceError(CalcError):
    """A formula depends on itself, directly or transitively."""

    def __init__(self, cells: list[str]) -> None:
        self.cells = list(cells)
        super().__init__(f"Circular reference detected involving: {', '.join(self.cells)}")


class ErrorValueReference(CalcError):
    """A referenced cell sits on a reference cycle.

    Raised during evaluation so the error reaches the resolver boundary,
    where the referencing formula takes on the same error.
    """

    def __init__(self, ref: str, error: object) -> None:
        self.ref = ref
        self.error = error
        super().__init__(f"{ref} holds {error}")

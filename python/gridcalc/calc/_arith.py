"""Tokenizer and shunting-yard evaluator for ``+ - * / ( )`` arithmetic.

Input has all cell references already substituted by numbers, e.g.
``"(30+25)*2"``. Anything that is not a number, operator or parenthesis is
dropped by the tokenizer.
"""

from __future__ import annotations

import operator
import re
from typing import Callable

from gridcalc.calc._errors import ArithmeticSyntaxError, FormulaEvaluationError

_TOKEN_RE = re.compile(
    r"\d+\.?\d*(?:[eE][+-]?\d+)?"
    r"|\.\d+(?:[eE][+-]?\d+)?"
    r"|[-+*/()]"
)

_PRECEDENCE: dict[str, int] = {"+": 1, "-": 1, "*": 2, "/": 2}

_OPS: dict[str, Callable[[float, float], float]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
}


def _is_number(token: str) -> bool:
    return token not in _PRECEDENCE and token not in ("(", ")")


def tokenize(expression: str) -> list[str]:
    """Split *expression* into number, operator and parenthesis tokens.

    A sign in operand position (start of input, after an operator or ``(``)
    that is directly followed by a number is folded into that number, so
    ``"2*-5"`` yields ``["2", "*", "-5"]``.
    """
    raw = _TOKEN_RE.findall(expression)
    tokens: list[str] = []
    i = 0
    while i < len(raw):
        tok = raw[i]
        prev = tokens[-1] if tokens else None
        in_operand_position = prev is None or prev == "(" or prev in _PRECEDENCE
        if (
            tok in ("+", "-")
            and in_operand_position
            and i + 1 < len(raw)
            and _is_number(raw[i + 1])
        ):
            tokens.append(tok + raw[i + 1] if tok == "-" else raw[i + 1])
            i += 2
            continue
        tokens.append(tok)
        i += 1
    return tokens


def _apply(output: list[float], op: str) -> None:
    if len(output) < 2:
        raise ArithmeticSyntaxError(f"Operator {op!r} is missing an operand")
    b = output.pop()
    a = output.pop()
    try:
        output.append(_OPS[op](a, b))
    except ZeroDivisionError as exc:
        raise FormulaEvaluationError("Division by zero") from exc


def evaluate_arithmetic(expression: str) -> float:
    """Evaluate an arithmetic expression with the usual precedence.

    ``*`` and ``/`` bind tighter than ``+`` and ``-``; equal precedence
    applies left to right.

    Raises:
        ArithmeticSyntaxError: empty or malformed expression.
        FormulaEvaluationError: division by zero.
    """
    tokens = tokenize(expression)
    if not tokens:
        raise ArithmeticSyntaxError("Empty expression")

    output: list[float] = []
    operators: list[str] = []

    for token in tokens:
        if token == "(":
            operators.append(token)
        elif token == ")":
            while operators and operators[-1] != "(":
                _apply(output, operators.pop())
            if not operators:
                raise ArithmeticSyntaxError("Unmatched ')'")
            operators.pop()  # discard the '('
        elif token in _PRECEDENCE:
            while (
                operators
                and operators[-1] != "("
                and _PRECEDENCE[operators[-1]] >= _PRECEDENCE[token]
            ):
                _apply(output, operators.pop())
            operators.append(token)
        else:
            output.append(float(token))

    while operators:
        op = operators.pop()
        if op == "(":
            raise ArithmeticSyntaxError("Unmatched '('")
        _apply(output, op)

    if len(output) != 1:
        raise ArithmeticSyntaxError(
            f"Expected a single result, got {len(output)} operands"
        )
    return output[0]

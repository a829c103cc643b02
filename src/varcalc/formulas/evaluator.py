"""Stack evaluator for arithmetic expressions.

Supports ``+ - * /`` with standard precedence and parentheses over
non-negative decimal literals. No unary minus, exponentiation or functions.
"""

from __future__ import annotations

import re

from varcalc.formulas.errors import (
    DivisionByZeroError,
    InvalidCharacterError,
    InvalidExpressionError,
)
from varcalc.formulas.lexer import Token, TokenKind, merge_literals, tokenize
from varcalc.formulas.parser import to_postfix

_WS_RE = re.compile(r"\s+")
_DISALLOWED_RE = re.compile(r"[^0-9+\-*/().]")


def evaluate(text: str) -> float:
    """Evaluate a purely numeric arithmetic expression.

    Args:
        text: Expression such as ``"(2 + 3) * 4"``.

    Returns:
        The computed value.

    Raises:
        EvaluationError: ``InvalidCharacterError`` for characters outside
            digits, ``.``, operators and parentheses; otherwise whatever
            :func:`evaluate_tokens` raises.
    """
    sanitized = _WS_RE.sub("", text)
    bad = _DISALLOWED_RE.search(sanitized)
    if bad:
        raise InvalidCharacterError(bad.start())
    return evaluate_tokens(tokenize(sanitized))


def evaluate_tokens(tokens: list[Token]) -> float:
    """Evaluate an already-tokenized expression.

    All identifiers and placeholders must have been substituted by NUMBER
    tokens beforehand.  Adjacent literal numbers are joined first.
    """
    return evaluate_postfix(to_postfix(merge_literals(tokens)))


def evaluate_postfix(postfix: list[Token]) -> float:
    """Evaluate tokens in postfix order with a numeric stack.

    Raises:
        InvalidExpressionError: On a malformed number, an operator short of
            operands, or anything but exactly one value left at the end.
        DivisionByZeroError: When the right operand of ``/`` is ``0``.
    """
    stack: list[float] = []

    for token in postfix:
        if token.kind is TokenKind.NUMBER:
            stack.append(_number_value(token))
            continue
        if token.kind is not TokenKind.OPERATOR:
            raise InvalidCharacterError(token.position)
        if len(stack) < 2:
            raise InvalidExpressionError()
        right = stack.pop()
        left = stack.pop()
        stack.append(_apply(token.text, left, right))

    if len(stack) != 1:
        raise InvalidExpressionError()
    return stack[0]


def _number_value(token: Token) -> float:
    if token.value is not None:
        return token.value
    try:
        return float(token.text)
    except ValueError:
        raise InvalidExpressionError("Invalid token.") from None


def _apply(op: str, left: float, right: float) -> float:
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if op == "/":
        if right == 0:
            raise DivisionByZeroError()
        return left / right
    raise InvalidExpressionError(f"Unknown operator: {op!r}")

"""Arithmetic expression lexing, parsing and evaluation.

Public API::

    from varcalc.formulas import evaluate, tokenize, EvaluationError
"""

from varcalc.formulas.errors import (
    CircularDependencyError,
    DivisionByZeroError,
    ErrorKind,
    EvaluationError,
    InvalidCharacterError,
    InvalidConstantError,
    InvalidContextValueError,
    InvalidExpressionError,
    MismatchedParenthesesError,
    MissingContextValueError,
    UnknownVariableError,
    VariableHasErrorError,
)
from varcalc.formulas.evaluator import evaluate, evaluate_postfix, evaluate_tokens
from varcalc.formulas.lexer import Token, TokenKind, merge_literals, number_token, tokenize
from varcalc.formulas.parser import to_postfix

__all__ = [
    "CircularDependencyError",
    "DivisionByZeroError",
    "ErrorKind",
    "EvaluationError",
    "InvalidCharacterError",
    "InvalidConstantError",
    "InvalidContextValueError",
    "InvalidExpressionError",
    "MismatchedParenthesesError",
    "MissingContextValueError",
    "Token",
    "TokenKind",
    "UnknownVariableError",
    "VariableHasErrorError",
    "evaluate",
    "evaluate_postfix",
    "evaluate_tokens",
    "merge_literals",
    "number_token",
    "to_postfix",
    "tokenize",
]

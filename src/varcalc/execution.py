"""Formula execution: bind runtime context and resolved variables, then evaluate."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping

from varcalc.formulas.errors import (
    InvalidContextValueError,
    MissingContextValueError,
    UnknownVariableError,
    VariableHasErrorError,
)
from varcalc.formulas.evaluator import evaluate_tokens
from varcalc.formulas.lexer import Token, TokenKind, number_token, tokenize

_CONTEXT_VALUE_RE = re.compile(r"^[0-9.]+$")
_PLACEHOLDER_RE = re.compile(r"\{\{#([^}]+)\}\}")


@dataclass(frozen=True)
class Formula:
    """A named formula over variables and ``{{#name}}`` placeholders."""

    name: str
    expression: str


def extract_context_names(expression: str) -> list[str]:
    """Return distinct placeholder names in order of first appearance.

    Example::

        >>> extract_context_names("GROSS * {{#bonus_percentage}} / 100")
        ['bonus_percentage']
    """
    names: list[str] = []
    for match in _PLACEHOLDER_RE.finditer(expression):
        if match.group(1) not in names:
            names.append(match.group(1))
    return names


def execute(
    expression: str,
    context: Mapping[str, str],
    values: Mapping[str, float],
    errors: Mapping[str, str],
) -> float:
    """Execute a formula expression.

    Contextual placeholders are bound first, then variable names, then the
    resulting numeric expression is evaluated.

    Args:
        expression: Formula text, e.g. ``"(GROSS / 30) * {{#num_of_days}}"``.
        context: Placeholder name to user-supplied text.
        values: Resolved variable values.
        errors: Variable name to error message for variables that failed.

    Returns:
        The formula result.

    Raises:
        MissingContextValueError: A placeholder has no non-blank binding.
        InvalidContextValueError: A binding is not made of digits and ``.``.
        VariableHasErrorError: A referenced variable failed to resolve.
        UnknownVariableError: A referenced name is not a variable.
        EvaluationError: Any evaluation failure, unchanged.
    """
    tokens = tokenize(expression)
    tokens = _bind_context(tokens, context)
    tokens = _bind_variables(tokens, values, errors)
    return evaluate_tokens(tokens)


def _bind_context(tokens: list[Token], context: Mapping[str, str]) -> list[Token]:
    out: list[Token] = []
    for token in tokens:
        if token.kind is not TokenKind.PLACEHOLDER:
            out.append(token)
            continue
        name = token.placeholder_name
        raw = (context.get(name) or "").strip()
        if not raw:
            raise MissingContextValueError(name)
        if not _CONTEXT_VALUE_RE.match(raw):
            raise InvalidContextValueError(name, raw)
        # Literal text; joins neighbouring digits and is parsed at evaluation time.
        out.append(Token(TokenKind.NUMBER, raw, None, token.position))
    return out


def _bind_variables(
    tokens: list[Token],
    values: Mapping[str, float],
    errors: Mapping[str, str],
) -> list[Token]:
    out: list[Token] = []
    for token in tokens:
        if token.kind is not TokenKind.IDENTIFIER:
            out.append(token)
            continue
        name = token.text
        if name in errors:
            raise VariableHasErrorError(name, errors[name])
        if name not in values:
            raise UnknownVariableError(name)
        out.append(number_token(values[name], token.position))
    return out

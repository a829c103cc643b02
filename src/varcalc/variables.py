"""On-demand memoized resolver for named variables.

Resolves every variable in a collection depth-first: a dynamic variable is
computed only after each variable it references, and each successful value
is cached for the duration of one resolution pass.  Detects cycles and
reports the cycle path.  A failure is contained to the variable it occurs
in; unrelated variables still resolve.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from varcalc.formulas.errors import (
    CircularDependencyError,
    EvaluationError,
    InvalidCharacterError,
    InvalidConstantError,
    InvalidExpressionError,
    UnknownVariableError,
)
from varcalc.formulas.evaluator import evaluate_tokens
from varcalc.formulas.lexer import Token, TokenKind, number_token, tokenize


class VariableKind(str, Enum):
    CONSTANT = "CONSTANT"
    DYNAMIC = "DYNAMIC"

    @classmethod
    def parse(cls, raw: str) -> VariableKind:
        """Parse a kind name case-insensitively (``"constant"`` -> CONSTANT)."""
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).strip().upper())
        except ValueError:
            raise ValueError(
                f"Unknown variable kind {raw!r}. Expected one of: "
                f"{', '.join(k.value.lower() for k in cls)}"
            ) from None


@dataclass(frozen=True)
class Variable:
    """A named variable definition.

    Attributes:
        name: Uppercase identifier, e.g. ``"GROSS"``.
        kind: Constant literal or dynamic expression.
        expression: A numeric literal (constant) or an arithmetic expression
            over other variable names (dynamic).
    """

    name: str
    kind: VariableKind
    expression: str


@dataclass
class ResolutionResult:
    """Outcome of one resolution pass.

    Every input variable name appears in exactly one of ``values`` and
    ``errors``.
    """

    values: dict[str, float] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)


def dependencies(variable: Variable) -> list[str]:
    """Variable names referenced by a dynamic variable, in first-use order.

    Constants have no dependencies.  Unparseable expressions report none.
    """
    if variable.kind == VariableKind.CONSTANT:
        return []
    try:
        tokens = tokenize(variable.expression)
    except EvaluationError:
        return []
    names: list[str] = []
    for token in tokens:
        if token.kind is TokenKind.IDENTIFIER and token.text not in names:
            names.append(token.text)
    return names


def resolve(variables: Iterable[Variable]) -> ResolutionResult:
    """Resolve every variable in the collection.

    Args:
        variables: Variable definitions.  Names should be unique; on a
            duplicate the last definition wins.

    Returns:
        A :class:`ResolutionResult` with one entry per distinct name.
    """
    definitions = {v.name: v for v in variables}
    pass_ = _ResolutionPass(definitions)
    result = ResolutionResult()

    for name in definitions:
        try:
            result.values[name] = pass_.resolve_name(name)
        except EvaluationError as exc:
            result.errors[name] = str(exc)
        except RecursionError:
            result.errors[name] = str(
                InvalidExpressionError(f'Dependency chain of "{name}" is too deep.')
            )

    return result


class _ResolutionPass:
    """State for a single :func:`resolve` call.

    Never shared across calls, so each call starts with an empty cache and
    an empty in-progress set.
    """

    def __init__(self, definitions: dict[str, Variable]) -> None:
        self._definitions = definitions
        self._cache: dict[str, float] = {}
        self._in_progress: set[str] = set()
        self._eval_stack: list[str] = []

    def resolve_name(self, name: str) -> float:
        """Resolve one variable, with memoization and cycle detection.

        Raises:
            CircularDependencyError: If *name* is already being resolved
                further up the stack.
            EvaluationError: Any failure of this variable or of one of its
                dependencies, propagated unchanged.
        """
        if name in self._cache:
            return self._cache[name]

        if name in self._in_progress:
            cycle_start = self._eval_stack.index(name)
            raise CircularDependencyError(name, self._eval_stack[cycle_start:] + [name])

        variable = self._definitions[name]
        try:
            kind = VariableKind.parse(variable.kind)
        except ValueError as exc:
            raise InvalidExpressionError(str(exc)) from None

        self._in_progress.add(name)
        self._eval_stack.append(name)
        try:
            if kind is VariableKind.CONSTANT:
                value = self._constant_value(variable)
            else:
                value = self._dynamic_value(variable)
            self._cache[name] = value
            return value
        finally:
            self._in_progress.discard(name)
            if self._eval_stack and self._eval_stack[-1] == name:
                self._eval_stack.pop()

    def _constant_value(self, variable: Variable) -> float:
        try:
            value = float(variable.expression.strip())
        except ValueError:
            raise InvalidConstantError(variable.name) from None
        if not math.isfinite(value):
            raise InvalidConstantError(variable.name)
        return value

    def _dynamic_value(self, variable: Variable) -> float:
        substituted: list[Token] = []
        for token in tokenize(variable.expression):
            if token.kind is TokenKind.IDENTIFIER:
                if token.text not in self._definitions:
                    raise UnknownVariableError(token.text, referenced_by=variable.name)
                value = self.resolve_name(token.text)
                substituted.append(number_token(value, token.position))
            elif token.kind is TokenKind.PLACEHOLDER:
                # Placeholders are bound per formula execution, never in variables.
                raise InvalidCharacterError(token.position)
            else:
                substituted.append(token)
        return evaluate_tokens(substituted)

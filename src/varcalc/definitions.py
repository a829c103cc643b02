"""Validation of variable and formula definitions before they enter a workbook."""

from __future__ import annotations

import re
from typing import Iterable

from varcalc.execution import Formula
from varcalc.variables import Variable, VariableKind

NAME_RE = re.compile(r"^[A-Z][A-Z0-9_]*$")

_CONSTANT_EXPR_RE = re.compile(r"^[0-9.\s]+$")
_DYNAMIC_EXPR_RE = re.compile(r"^[0-9A-Z_+\-*/().\s]+$")
_FORMULA_EXPR_RE = re.compile(r"^[0-9A-Za-z_+\-*/(){}#\s.]+$")


def normalize_name(raw: str) -> str:
    """Trim and upper-case a user-entered name."""
    return str(raw).strip().upper()


def _check_name(name: str, label: str) -> str | None:
    if not name:
        return f"{label} name is required."
    if not NAME_RE.match(name):
        return (
            f"{label} name must start with a letter and contain only "
            "A-Z, 0-9, and underscore."
        )
    return None


def validate_variable(variable: Variable, existing: Iterable[str] = ()) -> str | None:
    """Check a single variable definition.

    Args:
        variable: The definition to check.
        existing: Names already taken by other variables.

    Returns:
        An error message, or ``None`` if the definition is acceptable.
    """
    error = _check_name(variable.name, "Variable")
    if error:
        return error
    expression = variable.expression.strip()
    if not expression:
        return "Expression / value is required."
    pattern = _CONSTANT_EXPR_RE if variable.kind is VariableKind.CONSTANT else _DYNAMIC_EXPR_RE
    if not pattern.match(expression):
        return "Expression contains invalid characters."
    if variable.name in set(existing):
        return "Variable name already exists."
    return None


def validate_formula(formula: Formula, existing: Iterable[str] = ()) -> str | None:
    """Check a single formula definition.

    Returns:
        An error message, or ``None`` if the definition is acceptable.
    """
    error = _check_name(formula.name, "Formula")
    if error:
        return error
    expression = formula.expression.strip()
    if not expression:
        return "Expression is required."
    if not _FORMULA_EXPR_RE.match(expression):
        return "Expression contains invalid characters."
    if formula.name in set(existing):
        return "Formula name already exists."
    return None


def validate_variables(variables: Iterable[Variable]) -> list[str]:
    """Validate a whole variable collection.

    Returns:
        One ``"NAME: message"`` entry per invalid definition, in input order.
    """
    seen: set[str] = set()
    problems: list[str] = []
    for variable in variables:
        error = validate_variable(variable, seen)
        if error:
            problems.append(f"{variable.name or '<unnamed>'}: {error}")
        seen.add(variable.name)
    return problems


def validate_formulas(formulas: Iterable[Formula]) -> list[str]:
    """Validate a whole formula collection (see :func:`validate_variables`)."""
    seen: set[str] = set()
    problems: list[str] = []
    for formula in formulas:
        error = validate_formula(formula, seen)
        if error:
            problems.append(f"{formula.name or '<unnamed>'}: {error}")
        seen.add(formula.name)
    return problems

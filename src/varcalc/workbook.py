"""Workbook: a project's variable and formula definitions.

A workbook is defined by a YAML spec (``workbook.yaml``) and orchestrates
variable resolution and formula execution, emitting structured events for
each pass.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Mapping

import yaml

from varcalc.definitions import normalize_name, validate_formulas, validate_variables
from varcalc.execution import Formula, execute, extract_context_names
from varcalc.formulas.errors import EvaluationError
from varcalc.logging.events import (
    FORMULA_EXEC_ERROR,
    VARIABLE_RESOLVE_ERROR,
    EventType,
    emit_error,
    emit_info,
    emit_warning,
)
from varcalc.project import load_project_config
from varcalc.variables import ResolutionResult, Variable, VariableKind, resolve

logger = logging.getLogger(__name__)


def format_number(value: float, precision: int = 10) -> str:
    """Format a value for display.

    Integral values print without a fractional part (``15000``); others use
    ``precision`` significant digits.
    """
    if math.isfinite(value) and value == int(value):
        return str(int(value))
    return f"{value:.{precision}g}"


def parse_variables(raw: Any) -> list[Variable]:
    """Build variable records from the ``variables:`` block of a workbook spec."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError("'variables' must be a list of {name, kind, expression} entries")
    out: list[Variable] = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValueError(f"variables[{i}] must be a mapping")
        try:
            kind = VariableKind.parse(entry.get("kind", "constant"))
        except ValueError as exc:
            raise ValueError(f"variables[{i}]: {exc}") from None
        out.append(
            Variable(
                name=normalize_name(entry.get("name", "")),
                kind=kind,
                expression=str(entry.get("expression", "")),
            )
        )
    return out


def parse_formulas(raw: Any) -> list[Formula]:
    """Build formula records from the ``formulas:`` block of a workbook spec."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError("'formulas' must be a list of {name, expression} entries")
    out: list[Formula] = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValueError(f"formulas[{i}] must be a mapping")
        out.append(
            Formula(
                name=normalize_name(entry.get("name", "")),
                expression=str(entry.get("expression", "")),
            )
        )
    return out


class Workbook:
    """Loads a workbook spec and runs resolution and formula execution.

    Usage::

        wb = Workbook(Path("my_project"))
        result = wb.resolve()
        print(result.values, result.errors)
        wb.execute("MONTHLY_SALARY", {"num_of_days": "30"})
    """

    def __init__(
        self,
        project_dir: Path,
        config: dict[str, Any] | None = None,
    ) -> None:
        """Initialize a Workbook from a project directory.

        Args:
            project_dir: Path to the project root containing ``workbook.yaml``.
            config: Configuration overriding ``varcalc.yaml``.

        Raises:
            FileNotFoundError: If ``workbook.yaml`` is missing.
            ValueError: If the spec is malformed, or (with
                ``strict_definitions``) any definition is invalid.
        """
        self.project_dir = project_dir.resolve()
        self.spec_path = self.project_dir / "workbook.yaml"
        if not self.spec_path.exists():
            raise FileNotFoundError(f"No workbook.yaml found in {self.project_dir}")

        spec = yaml.safe_load(self.spec_path.read_text()) or {}
        if not isinstance(spec, dict):
            raise ValueError(f"{self.spec_path} must contain a mapping")

        self.config = config if config is not None else load_project_config(self.project_dir)
        self.variables = parse_variables(spec.get("variables"))
        self.formula_defs = parse_formulas(spec.get("formulas"))

        problems = validate_variables(self.variables) + validate_formulas(self.formula_defs)
        if problems:
            if self.config.get("strict_definitions", True):
                raise ValueError("Invalid definitions:\n  " + "\n  ".join(problems))
            for problem in problems:
                logger.warning("Invalid definition in %s: %s", self.spec_path, problem)

    @property
    def precision(self) -> int:
        return int(self.config.get("display_precision", 10))

    def formulas(self) -> list[Formula]:
        """Formula definitions sorted by name."""
        return sorted(self.formula_defs, key=lambda f: f.name)

    def get_formula(self, name: str) -> Formula:
        """Look up a formula by (case-insensitive) name.

        Raises:
            KeyError: If no formula has that name.
        """
        wanted = normalize_name(name)
        for formula in self.formula_defs:
            if formula.name == wanted:
                return formula
        raise KeyError(f"Unknown formula: {wanted!r}")

    def context_names(self, name: str) -> list[str]:
        """Placeholder names a formula needs at execution time."""
        return extract_context_names(self.get_formula(name).expression)

    def resolve(self) -> ResolutionResult:
        """Resolve all variables (full recompute on every call)."""
        result = resolve(self.variables)
        logger.debug(
            "Resolved %d variables (%d errors)", len(result.values), len(result.errors)
        )

        for name, message in result.errors.items():
            emit_warning(
                EventType.variable_error,
                message,
                {"variable": name},
                error_code=VARIABLE_RESOLVE_ERROR,
            )
        emit_info(
            EventType.resolve_completed,
            f"Resolved {len(result.values)} of {len(self.variables)} variables",
            {
                "variable_count": len(self.variables),
                "error_count": len(result.errors),
            },
        )
        return result

    def execute(self, name: str, context: Mapping[str, str] | None = None) -> float:
        """Execute a formula against freshly resolved variables.

        Args:
            name: Formula name.
            context: Placeholder bindings, e.g. ``{"num_of_days": "30"}``.

        Returns:
            The formula result.

        Raises:
            KeyError: If the formula does not exist.
            EvaluationError: If execution fails.
        """
        formula = self.get_formula(name)
        result = self.resolve()
        try:
            value = execute(formula.expression, context or {}, result.values, result.errors)
        except EvaluationError as exc:
            emit_error(
                EventType.formula_failed,
                str(exc),
                {"formula": formula.name, "kind": exc.kind.value},
                error_code=FORMULA_EXEC_ERROR,
            )
            raise

        emit_info(
            EventType.formula_executed,
            f"{formula.name} = {format_number(value, self.precision)}",
            {"formula": formula.name, "context_names": extract_context_names(formula.expression)},
        )
        return value

"""Project service backing the JSON API.

Wraps a :class:`Workbook` and shapes its results into JSON-ready dicts.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from varcalc import __version__
from varcalc.formulas import EvaluationError, evaluate
from varcalc.logging import EventType, emit_info, set_project_dir
from varcalc.variables import dependencies
from varcalc.workbook import Workbook, format_number


class ProjectService:
    """Read/compute operations over one project directory."""

    def __init__(self, project_dir: Path) -> None:
        self.project_dir = project_dir.resolve()
        self.workbook = Workbook(self.project_dir)
        set_project_dir(self.project_dir)

    def reload(self) -> None:
        """Re-read ``workbook.yaml`` (definitions may have been edited)."""
        self.workbook = Workbook(self.project_dir)

    def get_project_info(self) -> dict[str, Any]:
        return {
            "project_dir": str(self.project_dir),
            "engine_version": __version__,
            "variable_count": len(self.workbook.variables),
            "formula_count": len(self.workbook.formula_defs),
        }

    def list_variables(self) -> list[dict[str, Any]]:
        """Variable definitions with their resolved value or error."""
        result = self.workbook.resolve()
        rows: list[dict[str, Any]] = []
        for variable in self.workbook.variables:
            row: dict[str, Any] = {
                "name": variable.name,
                "kind": variable.kind.value,
                "expression": variable.expression,
                "depends_on": dependencies(variable),
            }
            if variable.name in result.values:
                value = result.values[variable.name]
                row["value"] = value
                row["display"] = format_number(value, self.workbook.precision)
            else:
                row["error"] = result.errors[variable.name]
            rows.append(row)
        return rows

    def list_formulas(self) -> list[dict[str, Any]]:
        """Formula definitions sorted by name, with required context names."""
        return [
            {
                "name": f.name,
                "expression": f.expression,
                "context_names": self.workbook.context_names(f.name),
            }
            for f in self.workbook.formulas()
        ]

    def execute_formula(self, name: str, context: dict[str, str]) -> dict[str, Any]:
        """Execute a formula; failures are returned, not raised.

        Raises:
            KeyError: If the formula does not exist.
        """
        try:
            value = self.workbook.execute(name, context)
        except EvaluationError as exc:
            return {"formula": name.upper(), "error": str(exc), "kind": exc.kind.value}
        return {
            "formula": name.upper(),
            "result": value,
            "display": format_number(value, self.workbook.precision),
        }

    def evaluate_expression(self, text: str) -> dict[str, Any]:
        """Evaluate a bare numeric expression."""
        try:
            value = evaluate(text)
        except EvaluationError as exc:
            return {"error": str(exc), "kind": exc.kind.value}
        emit_info(
            EventType.expression_evaluated,
            f"{text} = {format_number(value)}",
            {"expression": text},
        )
        return {"result": value, "display": format_number(value, self.workbook.precision)}

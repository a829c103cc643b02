"""varcalc: named-variable arithmetic with dependency resolution and formula execution.

Public API::

    from varcalc import evaluate, resolve, execute, Variable, VariableKind
"""

from varcalc.execution import Formula, execute, extract_context_names
from varcalc.formulas import EvaluationError, evaluate
from varcalc.variables import ResolutionResult, Variable, VariableKind, resolve

__version__ = "0.1.0"

__all__ = [
    "EvaluationError",
    "Formula",
    "ResolutionResult",
    "Variable",
    "VariableKind",
    "__version__",
    "evaluate",
    "execute",
    "extract_context_names",
    "resolve",
]

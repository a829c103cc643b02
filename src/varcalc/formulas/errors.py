"""Error types for expression evaluation, variable resolution and formula execution."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    InvalidCharacter = "InvalidCharacter"
    MismatchedParentheses = "MismatchedParentheses"
    InvalidExpression = "InvalidExpression"
    DivisionByZero = "DivisionByZero"
    InvalidConstant = "InvalidConstant"
    UnknownVariable = "UnknownVariable"
    CircularDependency = "CircularDependency"
    MissingContextValue = "MissingContextValue"
    InvalidContextValue = "InvalidContextValue"
    VariableHasError = "VariableHasError"


class EvaluationError(Exception):
    """Base class for all evaluation errors.

    The message is meant to be shown to the user verbatim.

    Attributes:
        kind: Machine-readable error kind.
    """

    kind: ErrorKind

    @property
    def message(self) -> str:
        return str(self)


class InvalidCharacterError(EvaluationError):
    """Expression text contains a character outside the allowed set.

    Attributes:
        position: Character position of the offending text, if known.
    """

    kind = ErrorKind.InvalidCharacter

    def __init__(self, position: int | None = None) -> None:
        self.position = position
        super().__init__("Expression contains invalid characters.")


class MismatchedParenthesesError(EvaluationError):
    kind = ErrorKind.MismatchedParentheses

    def __init__(self) -> None:
        super().__init__("Mismatched parentheses.")


class InvalidExpressionError(EvaluationError):
    kind = ErrorKind.InvalidExpression

    def __init__(self, message: str = "Invalid expression.") -> None:
        super().__init__(message)


class DivisionByZeroError(EvaluationError):
    kind = ErrorKind.DivisionByZero

    def __init__(self) -> None:
        super().__init__("Division by zero.")


class InvalidConstantError(EvaluationError):
    """A constant variable's expression is not a numeric literal.

    Attributes:
        name: The constant variable.
    """

    kind = ErrorKind.InvalidConstant

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Invalid constant value for "{name}". Expected numeric.')


class UnknownVariableError(EvaluationError):
    """Reference to a name that is not a defined variable.

    Attributes:
        ref_name: The unresolved reference.
        referenced_by: Variable whose expression holds the reference, or
            ``None`` when the reference comes from a formula.
    """

    kind = ErrorKind.UnknownVariable

    def __init__(self, ref_name: str, referenced_by: str | None = None) -> None:
        self.ref_name = ref_name
        self.referenced_by = referenced_by
        if referenced_by is None:
            msg = f'Unknown variable "{ref_name}" in formula.'
        else:
            msg = f'Unknown variable "{ref_name}" in expression of "{referenced_by}".'
        super().__init__(msg)


class CircularDependencyError(EvaluationError):
    """Raised when a cycle is detected during variable resolution.

    Attributes:
        name: The variable that was re-entered.
        cycle_path: Variable names along the cycle, first and last equal.
    """

    kind = ErrorKind.CircularDependency

    def __init__(self, name: str, cycle_path: list[str] | None = None) -> None:
        self.name = name
        self.cycle_path = cycle_path or [name, name]
        super().__init__(
            f'Circular dependency detected at "{name}" ({" -> ".join(self.cycle_path)}).'
        )


class MissingContextValueError(EvaluationError):
    kind = ErrorKind.MissingContextValue

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Context value for "{name}" is required.')


class InvalidContextValueError(EvaluationError):
    kind = ErrorKind.InvalidContextValue

    def __init__(self, name: str, value: str) -> None:
        self.name = name
        self.value = value
        super().__init__(f'Context value for "{name}" must be numeric.')


class VariableHasErrorError(EvaluationError):
    """A formula references a variable that failed to resolve.

    Attributes:
        name: The failing variable.
        underlying: The variable's own error message.
    """

    kind = ErrorKind.VariableHasError

    def __init__(self, name: str, underlying: str) -> None:
        self.name = name
        self.underlying = underlying
        super().__init__(f'Variable "{name}" has error: {underlying}')

"""Structured event logging for varcalc.

Provides the event schema, the filesystem NDJSON sink, and emit helpers
that never raise.
"""

from varcalc.logging.events import (
    FORMULA_EXEC_ERROR,
    REQUIRED_CONTEXT,
    VARIABLE_RESOLVE_ERROR,
    EventLevel,
    EventType,
    VarcalcEvent,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    reset_sink,
    set_project_dir,
)
from varcalc.logging.sink import EventSink

__all__ = [
    "FORMULA_EXEC_ERROR",
    "REQUIRED_CONTEXT",
    "VARIABLE_RESOLVE_ERROR",
    "EventLevel",
    "EventSink",
    "EventType",
    "VarcalcEvent",
    "emit",
    "emit_error",
    "emit_info",
    "emit_warning",
    "reset_sink",
    "set_project_dir",
]

"""Event schema for resolution and formula runs, plus module-level emitters.

Every event names what it is about in ``context``: a ``variable`` or a
``formula`` (the event's *subject*), or pass-wide counts for
``resolve_completed``.  Timestamps are UTC ISO-8601 with a ``Z`` suffix.

``emit()`` and friends never raise; a failing write is reported through
the module logger at most once a minute.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class EventLevel(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"


class EventType(str, Enum):
    resolve_completed = "resolve_completed"
    variable_error = "variable_error"
    formula_executed = "formula_executed"
    formula_failed = "formula_failed"
    expression_evaluated = "expression_evaluated"


VARIABLE_RESOLVE_ERROR = "variable_resolve_error"
FORMULA_EXEC_ERROR = "formula_exec_error"

# Context keys each event type must carry.
REQUIRED_CONTEXT: dict[EventType, tuple[str, ...]] = {
    EventType.resolve_completed: ("variable_count", "error_count"),
    EventType.variable_error: ("variable",),
    EventType.formula_executed: ("formula",),
    EventType.formula_failed: ("formula", "kind"),
    EventType.expression_evaluated: ("expression",),
}

_SUBJECT_KEYS = ("formula", "variable")


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class VarcalcEvent(BaseModel):
    """A single structured log event."""

    schema_version: int = 1
    ts: str = Field(default_factory=_utc_now)
    level: EventLevel
    event_type: EventType
    context: dict[str, Any] = Field(default_factory=dict)
    message: str = ""
    error_code: str | None = None

    @property
    def subject(self) -> str | None:
        """The formula or variable this event is about, if any."""
        return event_subject(self.context)

    def missing_context(self) -> list[str]:
        return [k for k in REQUIRED_CONTEXT.get(self.event_type, ()) if k not in self.context]

    def checked(self) -> VarcalcEvent:
        """Return the event as it should be written.

        Missing required context keys are listed under ``_missing_context``.
        An ``info`` event missing keys is raised to ``warning`` so it stands
        out in the log; warnings and errors keep their level.
        """
        missing = self.missing_context()
        if not missing:
            return self
        update: dict[str, Any] = {"context": {**self.context, "_missing_context": missing}}
        if self.level is EventLevel.info:
            update["level"] = EventLevel.warning
        return self.model_copy(update=update)


def event_subject(context: dict[str, Any]) -> str | None:
    for key in _SUBJECT_KEYS:
        if key in context:
            return str(context[key])
    return None


# ---------------------------------------------------------------------------
# Module-level sink
# ---------------------------------------------------------------------------

_sink: Any = None  # EventSink | None


def set_project_dir(project_dir: Path | str) -> None:
    """Route events to ``<project_dir>/logs/events.ndjson``.

    Honors the project's ``logging_*`` settings; with
    ``logging_enabled: false`` events are discarded.
    """
    global _sink
    from varcalc.logging.sink import EventSink
    from varcalc.project import load_project_config

    project_dir = Path(project_dir)
    cfg = load_project_config(project_dir)
    if not cfg.get("logging_enabled", True):
        _sink = None
        return
    _sink = EventSink(
        project_dir,
        fsync=bool(cfg.get("logging_fsync", False)),
        tail_bytes=cfg.get("logging_tail_bytes"),
    )


def reset_sink() -> None:
    """Detach the module-level sink (events are discarded afterwards)."""
    global _sink
    _sink = None


_last_failure_report = 0.0
_FAILURE_REPORT_INTERVAL = 60.0


def _report_failure() -> None:
    global _last_failure_report
    now = time.monotonic()
    if now - _last_failure_report < _FAILURE_REPORT_INTERVAL:
        return
    _last_failure_report = now
    logger.warning("Failed to write event log", exc_info=True)


def emit(event: VarcalcEvent) -> None:
    """Write an event to the project event log.  Never raises."""
    if _sink is None:
        return
    try:
        _sink.write(event.checked())
    except Exception:
        _report_failure()


def _emit(
    level: EventLevel,
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None,
    error_code: str | None,
) -> None:
    emit(
        VarcalcEvent(
            level=level,
            event_type=event_type,
            message=message,
            context=context or {},
            error_code=error_code,
        )
    )


def emit_info(event_type: EventType, message: str, context: dict[str, Any] | None = None) -> None:
    _emit(EventLevel.info, event_type, message, context, None)


def emit_warning(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
) -> None:
    _emit(EventLevel.warning, event_type, message, context, error_code)


def emit_error(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
) -> None:
    _emit(EventLevel.error, event_type, message, context, error_code)

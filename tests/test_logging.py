"""Tests for the varcalc structured event logging system."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from varcalc.formulas import MissingContextValueError
from varcalc.logging import (
    REQUIRED_CONTEXT,
    EventLevel,
    EventSink,
    EventType,
    VarcalcEvent,
    emit,
    emit_info,
    reset_sink,
    set_project_dir,
)
from varcalc.project import scaffold_project
from varcalc.workbook import Workbook


@pytest.fixture(autouse=True)
def _detach_sink():
    yield
    reset_sink()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    return scaffold_project(tmp_path / "proj")


class TestVarcalcEvent:
    def test_event_defaults(self) -> None:
        evt = VarcalcEvent(
            level=EventLevel.info,
            event_type=EventType.resolve_completed,
            message="hello",
        )
        assert evt.schema_version == 1
        assert evt.ts.endswith("Z")
        assert evt.level == "info"
        assert evt.event_type == "resolve_completed"
        assert evt.context == {}
        assert evt.error_code is None

    def test_subject(self) -> None:
        evt = VarcalcEvent(
            level=EventLevel.warning,
            event_type=EventType.variable_error,
            context={"variable": "GROSS"},
        )
        assert evt.subject == "GROSS"
        assert VarcalcEvent(level=EventLevel.info, event_type=EventType.resolve_completed).subject is None

    def test_complete_event_unchanged(self) -> None:
        evt = VarcalcEvent(
            level=EventLevel.error,
            event_type=EventType.formula_failed,
            context={"formula": "BONUS", "kind": "MissingContextValue"},
        )
        assert evt.checked() is evt

    def test_info_missing_context_raised_to_warning(self) -> None:
        evt = VarcalcEvent(level=EventLevel.info, event_type=EventType.resolve_completed, context={"variable_count": 3})
        checked = evt.checked()
        assert checked.level is EventLevel.warning
        assert checked.context["_missing_context"] == ["error_count"]

    def test_error_missing_context_keeps_level(self) -> None:
        evt = VarcalcEvent(level=EventLevel.error, event_type=EventType.formula_failed, context={"formula": "BONUS"})
        checked = evt.checked()
        assert checked.level is EventLevel.error
        assert checked.context["_missing_context"] == ["kind"]

    def test_every_type_has_required_context(self) -> None:
        assert set(REQUIRED_CONTEXT) == set(EventType)


class TestEventSink:
    def test_write_and_read(self, tmp_path: Path) -> None:
        sink = EventSink(tmp_path)
        sink.write(VarcalcEvent(level=EventLevel.info, event_type=EventType.resolve_completed, message="one"))
        sink.write(VarcalcEvent(level=EventLevel.error, event_type=EventType.formula_failed, message="two"))

        lines = sink.path.read_text().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["message"] == "one"

        events = sink.read_events()
        assert [e["message"] for e in events] == ["two", "one"]

    def test_filters(self, tmp_path: Path) -> None:
        sink = EventSink(tmp_path)
        sink.write(VarcalcEvent(level=EventLevel.info, event_type=EventType.resolve_completed))
        sink.write(VarcalcEvent(level=EventLevel.error, event_type=EventType.formula_failed))
        assert len(sink.read_events(level="error")) == 1
        assert len(sink.read_events(event_type="resolve_completed")) == 1
        assert len(sink.read_events(limit=1)) == 1

    def test_subject_filter(self, tmp_path: Path) -> None:
        sink = EventSink(tmp_path)
        sink.write(VarcalcEvent(level=EventLevel.info, event_type=EventType.formula_executed, context={"formula": "BONUS"}))
        sink.write(VarcalcEvent(level=EventLevel.warning, event_type=EventType.variable_error, context={"variable": "GROSS"}))
        assert [e["context"] for e in sink.read_events(subject="gross")] == [{"variable": "GROSS"}]
        assert len(sink.read_events(subject="BONUS")) == 1
        assert sink.read_events(subject="NET") == []

    def test_reads_only_tail(self, tmp_path: Path) -> None:
        sink = EventSink(tmp_path)
        for i in range(3):
            sink.write(VarcalcEvent(level=EventLevel.info, event_type=EventType.expression_evaluated, message=f"m{i}"))
        last_line = sink.path.read_bytes().splitlines(keepends=True)[-1]

        # Window holds the last line plus a fragment of the one before it.
        tailed = EventSink(tmp_path, tail_bytes=len(last_line) + 5)
        assert [e["message"] for e in tailed.read_events()] == ["m2"]

    def test_tail_larger_than_file(self, tmp_path: Path) -> None:
        sink = EventSink(tmp_path, tail_bytes=10_000)
        sink.write(VarcalcEvent(level=EventLevel.info, event_type=EventType.expression_evaluated, message="only"))
        assert [e["message"] for e in sink.read_events()] == ["only"]

    def test_corrupt_lines_skipped(self, tmp_path: Path) -> None:
        sink = EventSink(tmp_path)
        sink.logs_dir.mkdir()
        sink.path.write_text('not json\n{"message": "ok"}\n\n')
        assert sink.read_events() == [{"message": "ok"}]

    def test_missing_log(self, tmp_path: Path) -> None:
        assert EventSink(tmp_path).read_events() == []
        assert not (tmp_path / "logs").exists()


class TestEmit:
    def test_no_sink_discards(self, tmp_path: Path) -> None:
        emit_info(EventType.expression_evaluated, "nothing configured", {"expression": "1"})
        assert not (tmp_path / "logs" / "events.ndjson").exists()

    def test_missing_context_recorded(self, project_dir: Path) -> None:
        set_project_dir(project_dir)
        emit(VarcalcEvent(level=EventLevel.info, event_type=EventType.formula_executed, message="x"))
        events = EventSink(project_dir).read_events()
        assert events[0]["level"] == "warning"
        assert events[0]["context"]["_missing_context"] == ["formula"]

    def test_logging_disabled(self, project_dir: Path) -> None:
        (project_dir / "varcalc.yaml").write_text("logging_enabled: false\n")
        set_project_dir(project_dir)
        emit_info(EventType.expression_evaluated, "dropped", {"expression": "1"})
        assert EventSink(project_dir).read_events() == []

    def test_tail_bytes_from_config(self, project_dir: Path) -> None:
        (project_dir / "varcalc.yaml").write_text("logging_tail_bytes: 4096\n")
        set_project_dir(project_dir)
        from varcalc.logging import events as events_module

        assert events_module._sink._tail_bytes == 4096

    def test_emit_never_raises(self, project_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        set_project_dir(project_dir)

        def broken_write(self, event) -> None:
            raise OSError("disk full")

        monkeypatch.setattr(EventSink, "write", broken_write)
        emit_info(EventType.expression_evaluated, "lost", {"expression": "1"})


class TestWorkbookEvents:
    def test_resolve_and_execute_events(self, project_dir: Path) -> None:
        set_project_dir(project_dir)
        wb = Workbook(project_dir)
        wb.execute("NET_SALARY")
        with pytest.raises(MissingContextValueError):
            wb.execute("MONTHLY_SALARY")

        events = EventSink(project_dir).read_events()
        types = [e["event_type"] for e in events]
        assert types[0] == "formula_failed"
        assert "formula_executed" in types
        assert "resolve_completed" in types
        assert all("_missing_context" not in e["context"] for e in events)

        failed = events[0]
        assert failed["level"] == "error"
        assert failed["context"] == {"formula": "MONTHLY_SALARY", "kind": "MissingContextValue"}
        assert failed["error_code"] == "formula_exec_error"

    def test_variable_error_event(self, tmp_path: Path) -> None:
        project = tmp_path / "p"
        project.mkdir()
        (project / "workbook.yaml").write_text(
            "variables:\n  - {name: X, kind: dynamic, expression: Y + 1}\n"
        )
        set_project_dir(project)
        Workbook(project).resolve()
        events = EventSink(project).read_events(event_type="variable_error")
        assert events[0]["context"] == {"variable": "X"}
        assert events[0]["level"] == "warning"

"""NDJSON event log for a project: ``<project>/logs/events.ndjson``.

One JSON object per line, keys sorted.  Appends hold an exclusive
``fcntl.flock`` and reads a shared one, so a CLI run and the API server
can log to the same project.  Reads only look at the last
``tail_bytes`` of the file.
"""

from __future__ import annotations

import json
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, BinaryIO, Iterator

from varcalc.logging.events import VarcalcEvent, event_subject

try:
    import fcntl
except ImportError:  # Windows: no advisory locks
    fcntl = None  # type: ignore[assignment]

DEFAULT_TAIL_BYTES = 2 * 1024 * 1024
MAX_READ_LIMIT = 2000


@contextmanager
def _locked(path: Path, mode: str, *, exclusive: bool) -> Iterator[BinaryIO]:
    with open(path, mode) as f:
        if fcntl is None:
            yield f
            return
        fcntl.flock(f.fileno(), fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
        try:
            yield f
        finally:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)


class EventSink:
    """Append-only writer and filtered reader for one project's event log."""

    def __init__(
        self,
        project_dir: Path,
        *,
        fsync: bool = False,
        tail_bytes: int | None = None,
    ) -> None:
        self.logs_dir = project_dir / "logs"
        self.path = self.logs_dir / "events.ndjson"
        self._fsync = fsync
        self._tail_bytes = int(tail_bytes) if tail_bytes is not None else DEFAULT_TAIL_BYTES

    def write(self, event: VarcalcEvent) -> None:
        line = json.dumps(event.model_dump(mode="json"), sort_keys=True) + "\n"
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        with _locked(self.path, "ab", exclusive=True) as f:
            f.write(line.encode("utf-8"))
            if self._fsync:
                f.flush()
                os.fsync(f.fileno())

    def read_events(
        self,
        *,
        level: str | None = None,
        event_type: str | None = None,
        subject: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]:
        """Most-recent-first events from the log tail.

        Args:
            level: Keep only this level.
            event_type: Keep only this event type.
            subject: Keep only events about this formula or variable
                (case-insensitive).
            limit: At most this many events (capped at 2000).
        """
        wanted = subject.upper() if subject else None
        out: list[dict[str, Any]] = []
        for event in reversed(self._tail_events()):
            if level and event.get("level") != level:
                continue
            if event_type and event.get("event_type") != event_type:
                continue
            if wanted and event_subject(event.get("context") or {}) != wanted:
                continue
            out.append(event)
            if len(out) >= min(limit, MAX_READ_LIMIT):
                break
        return out

    def _tail_events(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        with _locked(self.path, "rb", exclusive=False) as f:
            size = f.seek(0, os.SEEK_END)
            start = max(0, size - self._tail_bytes)
            f.seek(start)
            data = f.read()
        if start > 0:
            # First line is cut by the tail window.
            data = data.partition(b"\n")[2]

        events: list[dict[str, Any]] = []
        for line in data.decode("utf-8", errors="replace").splitlines():
            if not line.strip():
                continue
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return events

# src/worktimer/timing/models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


def parse_instant(raw: Any) -> float | None:
    """
    Wire instant -> epoch seconds.

    Accepts ISO-8601 strings (including a trailing "Z"), numbers (epoch seconds)
    and datetime objects. Empty values map to None.
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise ValueError(f"invalid instant: {raw!r}")
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, datetime):
        dt = raw
    else:
        s = str(raw).strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def format_instant(ts: float | None) -> str | None:
    if ts is None:
        return None
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _num(raw: Any, default: float | None = 0.0) -> float | None:
    # Postgres numeric columns come back as strings.
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


@dataclass(slots=True, frozen=True)
class TimeEntry:
    """
    One continuous-with-gaps span of tracked work on a task.

    end_time is None while the entry is active (running or paused).
    """

    id: str
    task_id: str
    start_time: float
    end_time: float | None = None
    is_paused: bool = False
    last_resumed_at: float | None = None
    accumulated_duration: float = 0.0
    duration: float | None = None
    notes: str | None = None

    # Display extras some backends join in (task/project names).
    task_title: str | None = None
    project_id: str | None = None
    project_name: str | None = None

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    @property
    def is_running(self) -> bool:
        return self.end_time is None and not self.is_paused

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> TimeEntry:
        """Decode the backend's camelCase JSON object. Raises ValueError on malformed payloads."""
        if not isinstance(data, dict):
            raise ValueError(f"time entry must be an object, got {type(data).__name__}")

        entry_id = data.get("id")
        task_id = data.get("taskId")
        if entry_id is None or str(entry_id) == "":
            raise ValueError("time entry without id")
        if task_id is None or str(task_id) == "":
            raise ValueError(f"time entry {entry_id} without taskId")

        start_time = parse_instant(data.get("startTime"))
        if start_time is None:
            raise ValueError(f"time entry {entry_id} without startTime")

        end_time = parse_instant(data.get("endTime"))
        project_id = data.get("projectId")

        return cls(
            id=str(entry_id),
            task_id=str(task_id),
            start_time=start_time,
            end_time=end_time,
            # Pause state is meaningless once finalized.
            is_paused=bool(data.get("isPaused")) and end_time is None,
            last_resumed_at=parse_instant(data.get("lastResumedAt")),
            accumulated_duration=_num(data.get("accumulatedDuration")) or 0.0,
            duration=_num(data.get("duration"), None),
            notes=data.get("notes"),
            task_title=data.get("taskTitle"),
            project_id=None if project_id is None else str(project_id),
            project_name=data.get("projectName"),
        )

    def to_wire(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "taskId": self.task_id,
            "startTime": format_instant(self.start_time),
            "endTime": format_instant(self.end_time),
            "isPaused": self.is_paused,
            "lastResumedAt": format_instant(self.last_resumed_at),
            "accumulatedDuration": self.accumulated_duration,
            "duration": self.duration,
            "notes": self.notes,
        }
        if self.task_title is not None:
            out["taskTitle"] = self.task_title
        if self.project_id is not None:
            out["projectId"] = self.project_id
        if self.project_name is not None:
            out["projectName"] = self.project_name
        return out


# Editable fields for update(): python name -> wire name.
EDITABLE_FIELDS: dict[str, str] = {
    "start_time": "startTime",
    "end_time": "endTime",
    "duration": "duration",
    "notes": "notes",
}


def changes_to_wire(changes: dict[str, Any]) -> dict[str, Any]:
    """Encode a partial update. Unknown keys raise ValueError."""
    out: dict[str, Any] = {}
    for key, value in changes.items():
        wire_key = EDITABLE_FIELDS.get(key)
        if wire_key is None:
            raise ValueError(f"field {key!r} is not editable")
        if key in ("start_time", "end_time"):
            value = format_instant(value)
        out[wire_key] = value
    return out

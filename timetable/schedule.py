"""Schedule projection: start/end propagation, buffer time and progress."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from timetable.parser import Task, current_task, document_order
from timetable.settings import ScheduleSettings

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
BUFFER_TIME_NAME = "Buffer Time"
LATE = "late"
ON_TIME = "on-time"
COMPLETED = "completed"


@dataclass
class ScheduleRow:
    kind: str
    task: Task | None = None
    buffer_minutes: int | None = None
    status: str | None = None
    is_current: bool = False

    def to_dict(self) -> dict[str, Any]:
        if self.kind == "buffer":
            return {
                "kind": "buffer",
                "name": BUFFER_TIME_NAME,
                "bufferMinutes": self.buffer_minutes,
                "status": self.status,
            }
        data = {"kind": "task", **self.task.to_dict()}
        data["bufferMinutes"] = self.buffer_minutes
        data["status"] = self.status
        data["isCurrent"] = self.is_current
        return data


@dataclass
class Schedule:
    tasks: list[Task]
    rows: list[ScheduleRow] = field(default_factory=list)
    current: Task | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": [row.to_dict() for row in self.rows],
            "current": self.current.to_dict() if self.current else None,
        }


def project_schedule(
    tasks: list[Task],
    session_start: datetime | None = None,
    document_modified: datetime | None = None,
) -> dict[int, int | None]:
    """Assign computed start/end times in document order.

    Returns buffer minutes keyed by ``sequence_index`` for every uncompleted,
    non-current task that carries an explicit start time.
    """
    previous_end: datetime | None = None
    first_uncompleted_found = False
    buffers: dict[int, int | None] = {}

    for task in document_order(tasks):
        if not task.is_completed and not first_uncompleted_found:
            task.computed_start_time = (
                session_start
                or previous_end
                or task.explicit_start_time
                or document_modified
            )
            first_uncompleted_found = True
        elif task.explicit_start_time is not None:
            if not task.is_completed:
                buffers[task.sequence_index] = buffer_minutes(
                    previous_end, task.explicit_start_time
                )
            task.computed_start_time = task.explicit_start_time
        else:
            task.computed_start_time = previous_end

        if task.estimate_minutes is not None and task.computed_start_time is not None:
            task.computed_end_time = task.computed_start_time + timedelta(
                minutes=task.estimate_minutes
            )
            previous_end = task.computed_end_time
        else:
            task.computed_end_time = None

    return buffers


def buffer_minutes(anchor_end: datetime | None, start: datetime | None) -> int | None:
    if anchor_end is None or start is None:
        return None
    return math.ceil((start - anchor_end).total_seconds() / 60)


def classify(task: Task, buffer: int | None) -> str | None:
    if task.is_completed:
        return COMPLETED
    if buffer is None:
        return None
    return LATE if buffer < 0 else ON_TIME


def build_schedule(
    tasks: list[Task],
    settings: ScheduleSettings,
    session_start: datetime | None = None,
    document_modified: datetime | None = None,
) -> Schedule:
    """Project ``tasks`` and lay out presentation rows in parse order."""
    buffers = project_schedule(tasks, session_start, document_modified)
    current = current_task(tasks)
    schedule = Schedule(tasks=tasks, current=current)

    for task in tasks:
        if task.is_completed and not settings.show_completed_tasks:
            continue
        buffer = buffers.get(task.sequence_index)
        status = classify(task, buffer)
        if settings.show_buffer_time and buffer:
            schedule.rows.append(
                ScheduleRow(kind="buffer", buffer_minutes=buffer, status=status)
            )
        schedule.rows.append(
            ScheduleRow(
                kind="task",
                task=task,
                buffer_minutes=buffer,
                status=status,
                is_current=task is current,
            )
        )

    logger.debug(
        "Projected %d tasks into %d rows", len(tasks), len(schedule.rows)
    )
    return schedule


@dataclass(frozen=True)
class Progress:
    task: Task
    elapsed_minutes: float
    estimate_minutes: int

    @property
    def ratio(self) -> float:
        if self.estimate_minutes <= 0:
            return 1.0
        return min(self.elapsed_minutes / self.estimate_minutes, 1.0)

    @property
    def overdue(self) -> bool:
        return self.elapsed_minutes >= self.estimate_minutes

    def to_dict(self) -> dict[str, Any]:
        return {
            "task": self.task.to_dict(),
            "elapsedMinutes": round(self.elapsed_minutes, 2),
            "estimateMinutes": self.estimate_minutes,
            "ratio": round(self.ratio, 4),
            "overdue": self.overdue,
        }


def compute_progress(schedule: Schedule, now: datetime) -> Progress | None:
    """Progress of the current task; read-only."""
    task = schedule.current
    if task is None or task.computed_start_time is None:
        return None
    if task.estimate_minutes is None:
        return None
    return Progress(
        task=task,
        elapsed_minutes=raw_elapsed_minutes(task.computed_start_time, now),
        estimate_minutes=task.estimate_minutes,
    )


def raw_elapsed_minutes(start: datetime, now: datetime) -> float:
    """Minutes since ``start``; a negative span is read as the same clock time tomorrow."""
    minutes = (now - start).total_seconds() / 60
    if minutes < 0:
        minutes += MINUTES_PER_DAY
    return minutes

"""Task lifecycle: complete or interrupt the current task by rewriting its line."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from timetable.estimates import HistoricalEstimateRecord, record_duration
from timetable.grammar import LineGrammar
from timetable.parser import Task
from timetable.schedule import raw_elapsed_minutes
from timetable.session import TimetableSession, set_session_start

logger = logging.getLogger(__name__)

COMPLETE = "complete_task"
INTERRUPT = "interrupt_task"

NO_DOCUMENT = "NO_DOCUMENT"
NO_CURRENT_TASK = "NO_CURRENT_TASK"
MISSING_ESTIMATE = "MISSING_ESTIMATE"
LINE_NOT_FOUND = "LINE_NOT_FOUND"


@dataclass
class LifecycleOutcome:
    operation: str
    updated: bool
    text: str | None
    reason: str | None = None
    task: Task | None = None
    elapsed_minutes: int | None = None
    remaining_minutes: int | None = None
    actual_start: datetime | None = None
    line_number: int | None = None
    estimates_text: str | None = None
    history: HistoricalEstimateRecord | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "updated": self.updated,
            "reason": self.reason,
            "task": self.task.to_dict() if self.task else None,
            "elapsedMinutes": self.elapsed_minutes,
            "remainingMinutes": self.remaining_minutes,
            "actualStart": (
                self.actual_start.isoformat() if self.actual_start else None
            ),
            "lineNumber": self.line_number,
            "history": self.history.to_dict() if self.history else None,
        }


def elapsed_minutes(start: datetime | None, now: datetime) -> int:
    """Whole minutes since ``start``; a negative span rolls over to the next day."""
    if start is None:
        return 0
    return max(0, math.floor(raw_elapsed_minutes(start, now)))


def complete_task(
    session: TimetableSession,
    now: datetime | None = None,
    estimates_text: str | None = None,
    task: Task | None = None,
) -> LifecycleOutcome:
    """Mark the current task done with its actual elapsed minutes.

    ``estimates_text`` is the historical store; pass ``None`` to skip
    recording. ``task`` defaults to the current task of the session; a task
    taken from an older snapshot is matched against the session text as is.
    The returned outcome holds the new document text, or the
    unchanged text with a ``reason`` when nothing could be rewritten.
    """
    return _finish_current_task(session, COMPLETE, now, estimates_text, task)


def interrupt_task(
    session: TimetableSession,
    now: datetime | None = None,
    estimates_text: str | None = None,
    task: Task | None = None,
) -> LifecycleOutcome:
    """Close the current task with the time spent and queue the remainder after it."""
    return _finish_current_task(session, INTERRUPT, now, estimates_text, task)


def _finish_current_task(
    session: TimetableSession,
    operation: str,
    now: datetime | None,
    estimates_text: str | None,
    task: Task | None,
) -> LifecycleOutcome:
    now = now or datetime.now()
    if not session.has_document:
        return _skipped(operation, session.text, NO_DOCUMENT)

    if task is None:
        task = session.schedule().current
    if task is None:
        return _skipped(operation, session.text, NO_CURRENT_TASK)
    if task.estimate_minutes is None:
        return _skipped(operation, session.text, MISSING_ESTIMATE, task)

    elapsed = elapsed_minutes(task.computed_start_time, now)
    actual_start = now - timedelta(minutes=elapsed)
    remaining = None
    if operation == INTERRUPT:
        remaining = max(0, math.ceil(task.estimate_minutes - elapsed))

    grammar = LineGrammar(session.settings)
    lines = session.text.split("\n")
    line_index = locate_task_line(lines, task, grammar)
    if line_index is None:
        return _skipped(operation, session.text, LINE_NOT_FOUND, task)

    replacement = rewrite_task_line(
        lines[line_index], grammar, elapsed, actual_start, now, remaining
    )
    lines[line_index : line_index + 1] = replacement
    text = set_session_start("\n".join(lines), now)

    outcome = LifecycleOutcome(
        operation=operation,
        updated=True,
        text=text,
        task=task,
        elapsed_minutes=elapsed,
        remaining_minutes=remaining,
        actual_start=actual_start,
        line_number=line_index,
    )
    if estimates_text is not None:
        outcome.estimates_text, outcome.history = record_duration(
            estimates_text,
            task.base_name,
            task.display_name,
            elapsed,
            session.settings.task_estimate_delimiter,
        )
    logger.info(
        "%s: %r took %d minutes (line %d)",
        operation,
        task.base_name,
        elapsed,
        line_index,
    )
    return outcome


def _skipped(
    operation: str, text: str | None, reason: str, task: Task | None = None
) -> LifecycleOutcome:
    logger.warning("%s skipped: %s", operation, reason)
    return LifecycleOutcome(
        operation=operation, updated=False, text=text, reason=reason, task=task
    )


def task_line_pattern(task: Task, grammar: LineGrammar) -> re.Pattern[str]:
    """Pattern for the pending source line of ``task``."""
    settings = grammar.settings
    annotations = [rf"{re.escape(settings.start_time_delimiter)}"]
    if task.estimate_minutes is not None:
        annotations.insert(
            0,
            rf"{re.escape(settings.task_estimate_delimiter)}\s*"
            rf"{task.estimate_minutes}(?!\d)",
        )
    return re.compile(
        rf"^\s*[-+*]\s*\[ \]\s*{re.escape(task.source_name)}"
        rf"\s*(?:{'|'.join(annotations)})"
    )


def locate_task_line(
    lines: list[str], task: Task, grammar: LineGrammar
) -> int | None:
    """Index of the line to rewrite; the parsed line number is tried first."""
    pattern = task_line_pattern(task, grammar)
    if 0 <= task.line_number < len(lines) and pattern.match(lines[task.line_number]):
        return task.line_number
    for index, line in enumerate(lines):
        if pattern.match(line):
            return index
    return None


def rewrite_task_line(
    line: str,
    grammar: LineGrammar,
    elapsed: int,
    actual_start: datetime,
    now: datetime,
    remaining: int | None = None,
) -> list[str]:
    """Completed form of ``line``, followed by the remainder line on interrupt."""
    settings = grammar.settings
    ending = "\r" if line.endswith("\r") else ""
    item = grammar.checklist_item(line.rstrip("\r"))
    name, tail = grammar.split_annotations(item.body)
    suffix = f" {tail}" if tail else ""

    completed = (
        f"{item.indent}{item.bullet} [x] {name} "
        f"{settings.task_estimate_delimiter} {elapsed} "
        f"{settings.start_time_delimiter} {format_start(actual_start, now)}"
        f"{suffix}{ending}"
    )
    if remaining is None:
        return [completed]
    pending = (
        f"{item.indent}{item.bullet} [ ] {name} "
        f"{settings.task_estimate_delimiter} {remaining}{suffix}{ending}"
    )
    return [completed, pending]


def format_start(actual_start: datetime, now: datetime) -> str:
    if actual_start.date() != now.date():
        return actual_start.strftime("%Y-%m-%dT%H:%M")
    return actual_start.strftime("%H:%M")

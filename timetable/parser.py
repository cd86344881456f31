"""Task parser: document text to ordered task records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from timetable.grammar import LineGrammar, resolve_links
from timetable.settings import ScheduleSettings

logger = logging.getLogger(__name__)


@dataclass
class Task:
    raw_name: str
    display_name: str
    base_name: str
    source_name: str
    estimate_minutes: int | None
    explicit_start_time: datetime | None
    is_completed: bool
    categories: list[str] = field(default_factory=list)
    sequence_index: int = 0
    line_number: int = 0
    day_offset: int = 0
    computed_start_time: datetime | None = None
    computed_end_time: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.display_name,
            "rawName": self.raw_name,
            "baseName": self.base_name,
            "estimate": self.estimate_minutes,
            "explicitStartTime": _isoformat(self.explicit_start_time),
            "startTime": _isoformat(self.computed_start_time),
            "endTime": _isoformat(self.computed_end_time),
            "isCompleted": self.is_completed,
            "categories": list(self.categories),
            "sequenceIndex": self.sequence_index,
            "lineNumber": self.line_number,
        }


class TaskParser:
    """Parse checklist task lines out of a document."""

    def __init__(self, settings: ScheduleSettings | None = None) -> None:
        self.settings = settings or ScheduleSettings()
        self.grammar = LineGrammar(self.settings)

    def parse(self, content: str, today: date | None = None) -> list[Task]:
        """Return completed tasks newest-first, then uncompleted tasks in order."""
        today = today or date.today()
        completed: list[Task] = []
        uncompleted: list[Task] = []
        day_offset = 0
        seen_task = False

        for line_number, line in enumerate(content.splitlines()):
            stripped = line.strip()
            if not stripped:
                continue
            if self.grammar.is_day_delimiter(stripped):
                if seen_task:
                    day_offset += 1
                continue
            if not self.grammar.is_task_line(stripped):
                continue

            task = self.parse_line(stripped, today=today, day_offset=day_offset)
            if task is None:
                continue
            seen_task = True
            task.sequence_index = len(completed) + len(uncompleted)
            task.line_number = line_number
            if task.is_completed:
                completed.append(task)
            else:
                uncompleted.append(task)

        completed.reverse()
        logger.debug(
            "Parsed %d completed and %d pending tasks",
            len(completed),
            len(uncompleted),
        )
        return completed + uncompleted

    def parse_line(
        self, line: str, *, today: date, day_offset: int = 0
    ) -> Task | None:
        item = self.grammar.checklist_item(line)
        if item is None:
            return None

        resolved = resolve_links(item.body)
        source_name, _tail = self.grammar.split_annotations(item.body)
        start = self.grammar.start_time_of(item.body)
        return Task(
            raw_name=resolved,
            display_name=self.grammar.display_name(resolved),
            base_name=resolve_links(source_name),
            source_name=source_name,
            estimate_minutes=self.grammar.estimate_minutes(item.body),
            explicit_start_time=(
                start.resolve(today, day_offset) if start is not None else None
            ),
            is_completed=item.completed,
            categories=self.grammar.categories(resolved),
            day_offset=day_offset,
        )


def document_order(tasks: list[Task]) -> list[Task]:
    return sorted(tasks, key=lambda task: task.sequence_index)


def current_task(tasks: list[Task]) -> Task | None:
    """The first uncompleted task in document order."""
    for task in document_order(tasks):
        if not task.is_completed:
            return task
    return None


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None

"""Category performance: actual versus estimated minutes per category."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from timetable.parser import Task


@dataclass
class CategoryPerformance:
    category: str
    actual_minutes: int = 0
    estimated_minutes: int = 0

    @property
    def total(self) -> int:
        return self.actual_minutes + self.estimated_minutes

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "actualTime": self.actual_minutes,
            "estimatedTime": self.estimated_minutes,
            "total": self.total,
        }


def category_performance(tasks: Iterable[Task]) -> list[CategoryPerformance]:
    """Sum estimates per category, largest total first.

    Completed lines carry the actual minutes written back on completion, so
    they count as actual time; pending lines count as estimated time.
    """
    by_category: dict[str, CategoryPerformance] = {}
    for task in tasks:
        if task.estimate_minutes is None:
            continue
        for category in task.categories:
            entry = by_category.setdefault(category, CategoryPerformance(category))
            if task.is_completed:
                entry.actual_minutes += task.estimate_minutes
            else:
                entry.estimated_minutes += task.estimate_minutes
    return sorted(
        by_category.values(), key=lambda entry: (-entry.total, entry.category)
    )

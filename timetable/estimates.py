"""Historical estimates: rolling actual durations per task name.

The store is a plain Markdown document with one line per task name::

    Write report ; 32, Mean: 35 Median: 31 Recent: 28, Write report%%30|41|28%%

The leading ``name ; minutes`` part keeps each line readable as a task
estimate; the ``%%`` fenced suffix (a Markdown comment in most editors) holds
the recent durations, oldest first.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Iterable

MAX_RECENT_DURATIONS = 20
VALUES_PATTERN = re.compile(r"%%(?P<values>[^%]*)%%\s*$")
SUMMARY_ANCHOR = ", Mean: "
SUMMARY_PATTERN = re.compile(r"Recent: [^,]*, (?P<display>.*)$")


def median(values: Iterable[float]) -> int | None:
    ordered = sorted(values)
    if not ordered:
        return None
    middle = len(ordered) // 2
    if len(ordered) % 2:
        return math.ceil(ordered[middle])
    return math.ceil((ordered[middle - 1] + ordered[middle]) / 2)


def trimmed_mean(values: Iterable[float]) -> int | None:
    """Mean without the single highest and lowest value.

    With two samples or fewer this is the median.
    """
    ordered = sorted(values)
    if len(ordered) <= 2:
        return median(ordered)
    trimmed = ordered[1:-1]
    return math.ceil(sum(trimmed) / len(trimmed))


def mean(values: Iterable[float]) -> int | None:
    values = list(values)
    if not values:
        return None
    return math.ceil(sum(values) / len(values))


@dataclass
class HistoricalEstimateRecord:
    task_name: str
    display_name: str
    recent_durations: list[float] = field(default_factory=list)

    def add(self, minutes: float) -> None:
        self.recent_durations.append(minutes)
        overflow = len(self.recent_durations) - MAX_RECENT_DURATIONS
        if overflow > 0:
            del self.recent_durations[:overflow]

    @property
    def latest(self) -> float | None:
        return self.recent_durations[-1] if self.recent_durations else None

    @property
    def median(self) -> int | None:
        return median(self.recent_durations)

    @property
    def trimmed_mean(self) -> int | None:
        return trimmed_mean(self.recent_durations)

    @property
    def mean(self) -> int | None:
        return mean(self.recent_durations)

    def format_line(self, delimiter: str = ";") -> str:
        values = "|".join(_format_number(value) for value in self.recent_durations)
        latest = _format_number(self.latest) if self.latest is not None else ""
        return (
            f"{self.task_name} {delimiter} {self.trimmed_mean}, "
            f"Mean: {self.mean} Median: {self.median} Recent: {latest}, "
            f"{self.display_name}%%{values}%%"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "taskName": self.task_name,
            "displayName": self.display_name,
            "recentDurations": list(self.recent_durations),
            "trimmedMean": self.trimmed_mean,
            "mean": self.mean,
            "median": self.median,
            "latest": self.latest,
        }


def parse_record(line: str, delimiter: str = ";") -> HistoricalEstimateRecord | None:
    """Parse one store line; lines without the fenced values are not records.

    The name ends at the last delimiter before the ``, Mean:`` summary, so a
    name may itself contain the delimiter.
    """
    values_match = VALUES_PATTERN.search(line)
    if not values_match:
        return None
    separator = f" {delimiter} "
    head = line[: values_match.start()]
    anchor = head.find(SUMMARY_ANCHOR)
    if anchor >= 0 and separator in head[:anchor]:
        task_name, _, _ = head[:anchor].rpartition(separator)
        summary = head[len(task_name) + len(separator) :]
    elif separator in head:
        task_name, _, summary = head.partition(separator)
    else:
        return None
    task_name = task_name.strip()
    if not task_name:
        return None

    display_name = task_name
    summary_match = SUMMARY_PATTERN.search(summary)
    if summary_match:
        display_name = summary_match.group("display").strip() or task_name

    durations: list[float] = []
    for raw in values_match.group("values").split("|"):
        raw = raw.strip()
        if not raw:
            continue
        try:
            durations.append(_parse_number(raw))
        except ValueError:
            continue
    return HistoricalEstimateRecord(
        task_name=task_name,
        display_name=display_name,
        recent_durations=durations[-MAX_RECENT_DURATIONS:],
    )


def parse_records(text: str, delimiter: str = ";") -> list[HistoricalEstimateRecord]:
    records: list[HistoricalEstimateRecord] = []
    for line in text.splitlines():
        record = parse_record(line.strip(), delimiter)
        if record is not None:
            records.append(record)
    return records


def record_duration(
    text: str,
    task_name: str,
    display_name: str,
    minutes: float,
    delimiter: str = ";",
) -> tuple[str, HistoricalEstimateRecord]:
    """Append ``minutes`` to the record for ``task_name`` and return the new store text.

    Lines that are not records for ``task_name`` are kept verbatim, and the
    store keeps its line endings.
    """
    lines = text.split("\n") if text else []
    for index, line in enumerate(lines):
        record = parse_record(line.strip(), delimiter)
        if record is None or record.task_name != task_name:
            continue
        record.display_name = display_name or record.display_name
        record.add(minutes)
        ending = "\r" if line.endswith("\r") else ""
        lines[index] = record.format_line(delimiter) + ending
        return "\n".join(lines), record

    record = HistoricalEstimateRecord(
        task_name=task_name, display_name=display_name or task_name
    )
    record.add(minutes)
    ending = "\r" if lines and lines[0].endswith("\r") else ""
    if lines and lines[-1] == "":
        lines.insert(len(lines) - 1, record.format_line(delimiter) + ending)
    else:
        if lines and ending and not lines[-1].endswith("\r"):
            lines[-1] += ending
        lines.append(record.format_line(delimiter) + ending)
        lines.append("")
    return "\n".join(lines), record


def _parse_number(raw: str) -> float:
    value = float(raw)
    return int(value) if value.is_integer() else value


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"

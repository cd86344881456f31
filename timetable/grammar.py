"""Checklist line grammar.

The grammar is a fixed sequence of named matchers compiled once per
``ScheduleSettings``. Each matcher returns an optional capture; the parser and
the lifecycle engine only talk to the grammar, never to raw patterns.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from timetable.settings import ScheduleSettings

CHECKLIST_PATTERN = re.compile(
    r"^(?P<bullet>[-+*])\s*\[(?P<mark>[ xX])\]\s*(?P<body>.*)$"
)
WIKI_LINK_PATTERN = re.compile(r"\[\[(?:[^\[\]|]*\|)?(?P<label>[^\[\]|]+)\]\]")
MARKDOWN_LINK_PATTERN = re.compile(r"\[(?P<label>[^\[\]]+)\]\([^()\s]+\)")
CATEGORY_PATTERN = re.compile(
    r"(?<!\S)#(?P<name>[^\s#!\"$%&'()*+,./:;<=>?@\[\\\]^`{|}~]+)"
)
WHITESPACE_PATTERN = re.compile(r"\s{2,}")


@dataclass(frozen=True)
class ChecklistItem:
    """A line that carries a checklist marker."""

    indent: str
    bullet: str
    completed: bool
    body: str


@dataclass(frozen=True)
class StartTimeMatch:
    hour: int
    minute: int
    day: date | None

    def resolve(self, today: date, day_offset: int) -> datetime:
        anchor = self.day or today + timedelta(days=day_offset)
        return datetime.combine(anchor, time(self.hour, self.minute))


class LineGrammar:
    """Named matchers for one settings configuration."""

    def __init__(self, settings: ScheduleSettings) -> None:
        self.settings = settings
        estimate = re.escape(settings.task_estimate_delimiter)
        start = re.escape(settings.start_time_delimiter)

        self.estimate = re.compile(rf"{estimate}\s*(?P<minutes>\d+)")
        self.estimate_text = re.compile(rf"\s*{estimate}\s*\d+")
        self.start_datetime = re.compile(
            rf"{start}\s*(?P<date>\d{{4}}-\d{{2}}-\d{{2}})T"
            rf"(?P<hour>\d{{1,2}}):(?P<minute>\d{{2}})"
        )
        self.start_time = re.compile(
            rf"{start}\s*(?P<hour>\d{{1,2}}):?(?P<minute>\d{{2}})(?![-\d])"
        )
        self.start_text = re.compile(
            rf"\s*{start}\s*(?:(?P<date>\d{{4}}-\d{{2}}-\d{{2}})T)?"
            rf"(?P<hour>\d{{1,2}}):?(?P<minute>\d{{2}})(?![-\d])"
        )
        self.date_delimiter = (
            re.compile(settings.date_delimiter) if settings.date_delimiter else None
        )

    def checklist_item(self, line: str) -> ChecklistItem | None:
        stripped = line.strip()
        match = CHECKLIST_PATTERN.match(stripped)
        if not match:
            return None
        indent = line[: len(line) - len(line.lstrip())]
        return ChecklistItem(
            indent=indent,
            bullet=match.group("bullet"),
            completed=match.group("mark") in {"x", "X"},
            body=match.group("body").strip(),
        )

    def is_task_line(self, line: str) -> bool:
        """True for a checklist line carrying an estimate or start delimiter."""
        if self.checklist_item(line) is None:
            return False
        return (
            self.settings.task_estimate_delimiter in line
            or self.settings.start_time_delimiter in line
        )

    def is_day_delimiter(self, line: str) -> bool:
        if self.date_delimiter is None:
            return False
        return self.date_delimiter.search(line) is not None

    def estimate_minutes(self, text: str) -> int | None:
        match = self.estimate.search(text)
        if not match:
            return None
        return int(match.group("minutes"))

    def start_time_of(self, text: str) -> StartTimeMatch | None:
        match = self.start_datetime.search(text)
        if match:
            try:
                day = date.fromisoformat(match.group("date"))
            except ValueError:
                return None
            return _time_match(match, day)

        match = self.start_time.search(text)
        if match:
            return _time_match(match, None)
        return None

    def categories(self, text: str) -> list[str]:
        found: list[str] = []
        for match in CATEGORY_PATTERN.finditer(text):
            name = match.group("name")
            if not re.search(r"[^\W_]", name):
                continue
            if name not in found:
                found.append(name)
        return found

    def annotation_start(self, text: str) -> int | None:
        """Offset of the first estimate or start-time annotation."""
        offsets = [
            match.start()
            for match in (self.estimate_text.search(text), self.start_text.search(text))
            if match
        ]
        return min(offsets) if offsets else None

    def split_annotations(self, body: str) -> tuple[str, str]:
        """Split a checklist body into its name and the text after the annotations."""
        cut = self.annotation_start(body)
        if cut is None:
            return body.strip(), ""
        tail = self.start_text.sub("", self.estimate_text.sub("", body[cut:]))
        return body[:cut].strip(), collapse_whitespace(tail)

    def display_name(self, resolved: str) -> str:
        settings = self.settings
        name = resolved
        if settings.show_start_time_in_task_name:
            name = self.start_text.sub(self._normalized_start, name)
        else:
            name = self.start_text.sub("", name)
        if not settings.show_estimate_in_task_name:
            name = self.estimate_text.sub("", name)
        if not settings.show_category_names_in_task:
            name = CATEGORY_PATTERN.sub(_drop_category, name)
        return collapse_whitespace(name)

    def _normalized_start(self, match: re.Match[str]) -> str:
        hour = int(match.group("hour"))
        minute = int(match.group("minute"))
        return f" {self.settings.start_time_delimiter}{hour:02d}:{minute:02d}"


def resolve_links(text: str) -> str:
    """Replace wiki links and Markdown links with their visible label."""
    text = WIKI_LINK_PATTERN.sub(lambda match: match.group("label"), text)
    text = MARKDOWN_LINK_PATTERN.sub(lambda match: match.group("label"), text)
    return text.strip()


def collapse_whitespace(text: str) -> str:
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def _drop_category(match: re.Match[str]) -> str:
    if re.search(r"[^\W_]", match.group("name")):
        return ""
    return match.group(0)


def _time_match(match: re.Match[str], day: date | None) -> StartTimeMatch | None:
    hour = int(match.group("hour"))
    minute = int(match.group("minute"))
    if hour > 23 or minute > 59:
        return None
    return StartTimeMatch(hour=hour, minute=minute, day=day)

"""Explicit session context: a snapshot of the target document.

Every core operation receives a ``TimetableSession`` instead of reading
ambient state. The snapshot records the content hash it was read at so the
write layer can refuse to clobber an external edit.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path

from timetable.parser import Task, TaskParser
from timetable.schedule import Schedule, build_schedule
from timetable.settings import ScheduleSettings

FRONTMATTER_FENCE = "---"
SESSION_START_KEY = "startTime"
SESSION_START_PATTERN = re.compile(
    rf"^(?P<indent>\s*){SESSION_START_KEY}\s*:\s*(?P<value>.*?)\s*$"
)


@dataclass
class TimetableSession:
    settings: ScheduleSettings
    text: str | None
    path: Path | None = None
    modified_at: datetime | None = None
    today: date = field(default_factory=date.today)

    @classmethod
    def from_file(
        cls,
        path: Path | None,
        settings: ScheduleSettings,
        today: date | None = None,
    ) -> TimetableSession:
        """Snapshot ``path``; a missing file yields a session without a document."""
        today = today or date.today()
        if path is None or not path.is_file():
            return cls(settings=settings, text=None, path=path, today=today)
        return cls(
            settings=settings,
            text=read_document(path),
            path=path,
            modified_at=datetime.fromtimestamp(path.stat().st_mtime),
            today=today,
        )

    @property
    def has_document(self) -> bool:
        return self.text is not None

    @property
    def content_hash(self) -> str | None:
        if self.text is None:
            return None
        return content_hash(self.text)

    @property
    def session_start(self) -> datetime | None:
        if self.text is None:
            return None
        return read_session_start(self.text, self.today)

    def parse_tasks(self) -> list[Task]:
        if self.text is None:
            return []
        return TaskParser(self.settings).parse(self.text, today=self.today)

    def schedule(self) -> Schedule:
        return build_schedule(
            self.parse_tasks(),
            self.settings,
            session_start=self.session_start,
            document_modified=self.modified_at,
        )


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def read_document(path: Path) -> str:
    """Read ``path`` keeping its line endings as stored."""
    return path.read_bytes().decode("utf-8")


def _frontmatter_bounds(lines: list[str]) -> tuple[int, int] | None:
    if not lines or lines[0].strip() != FRONTMATTER_FENCE:
        return None
    for index in range(1, len(lines)):
        if lines[index].strip() == FRONTMATTER_FENCE:
            return 0, index
    return None


def read_session_start(text: str, today: date) -> datetime | None:
    """Read ``startTime`` from the leading frontmatter block."""
    lines = text.splitlines()
    bounds = _frontmatter_bounds(lines)
    if bounds is None:
        return None
    for line in lines[bounds[0] + 1 : bounds[1]]:
        match = SESSION_START_PATTERN.match(line)
        if match:
            return parse_session_start(match.group("value"), today)
    return None


def parse_session_start(value: str, today: date) -> datetime | None:
    value = value.strip().strip("'\"")
    if not value:
        return None
    try:
        if "T" in value or "-" in value:
            parsed = datetime.fromisoformat(value)
            return parsed.replace(tzinfo=None) if parsed.tzinfo else parsed
        return datetime.combine(today, time.fromisoformat(value))
    except ValueError:
        return None


def set_session_start(text: str, now: datetime) -> str:
    """Return ``text`` with the frontmatter ``startTime`` set to ``now``.

    Inserted lines follow the line ending of the first line.
    """
    marker = f"{SESSION_START_KEY}: {now.replace(microsecond=0).isoformat()}"
    lines = text.split("\n")
    ending = "\r" if lines[0].endswith("\r") else ""
    bounds = _frontmatter_bounds(lines)
    if bounds is None:
        header = [FRONTMATTER_FENCE, marker, FRONTMATTER_FENCE]
        return "\n".join([*(line + ending for line in header), *lines])

    start, end = bounds
    for index in range(start + 1, end):
        match = SESSION_START_PATTERN.match(lines[index])
        if match:
            line_ending = "\r" if lines[index].endswith("\r") else ""
            lines[index] = match.group("indent") + marker + line_ending
            return "\n".join(lines)
    lines.insert(end, marker + ending)
    return "\n".join(lines)

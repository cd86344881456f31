from datetime import date, datetime

from timetable.session import (
    TimetableSession,
    content_hash,
    parse_session_start,
    read_session_start,
    set_session_start,
)
from timetable.settings import ScheduleSettings

TODAY = date(2026, 10, 18)


def test_from_file_reads_snapshot(tmp_path):
    document = tmp_path / "today.md"
    document.write_text("- [ ] A ; 10\n", encoding="utf-8")

    session = TimetableSession.from_file(document, ScheduleSettings(), today=TODAY)

    assert session.has_document is True
    assert session.content_hash == content_hash("- [ ] A ; 10\n")
    assert session.modified_at is not None
    assert [task.display_name for task in session.parse_tasks()] == ["A"]


def test_from_file_missing_document(tmp_path):
    session = TimetableSession.from_file(
        tmp_path / "missing.md", ScheduleSettings(), today=TODAY
    )

    assert session.has_document is False
    assert session.content_hash is None
    assert session.parse_tasks() == []
    assert session.schedule().current is None


def test_schedule_uses_file_mtime_without_session_start(tmp_path):
    document = tmp_path / "today.md"
    document.write_text("- [ ] A ; 10\n", encoding="utf-8")

    session = TimetableSession.from_file(document, ScheduleSettings(), today=TODAY)

    assert session.schedule().current.computed_start_time == session.modified_at


def test_read_session_start_formats():
    assert read_session_start(
        "---\nstartTime: 2026-10-17T22:15:00\n---\n", TODAY
    ) == datetime(2026, 10, 17, 22, 15)
    assert read_session_start("---\nstartTime: '08:30:00'\n---\n", TODAY) == datetime(
        2026, 10, 18, 8, 30
    )
    assert read_session_start("---\ntitle: x\n---\n", TODAY) is None
    assert read_session_start("startTime: 08:30:00\n", TODAY) is None
    assert read_session_start("---\nstartTime: 08:30:00\n", TODAY) is None


def test_parse_session_start_rejects_garbage():
    assert parse_session_start("soon", TODAY) is None
    assert parse_session_start("", TODAY) is None


def test_set_session_start_replaces_existing_marker():
    text = "---\ntitle: Plan\nstartTime: 08:00:00\n---\nbody"

    updated = set_session_start(text, datetime(2026, 10, 18, 9, 30, 12, 500))

    assert updated == "---\ntitle: Plan\nstartTime: 2026-10-18T09:30:12\n---\nbody"


def test_set_session_start_inserts_into_frontmatter():
    text = "---\ntitle: Plan\n---\nbody"

    updated = set_session_start(text, datetime(2026, 10, 18, 9, 30))

    assert updated == "---\ntitle: Plan\nstartTime: 2026-10-18T09:30:00\n---\nbody"


def test_set_session_start_prepends_frontmatter():
    updated = set_session_start("body\n", datetime(2026, 10, 18, 9, 30))

    assert updated == "---\nstartTime: 2026-10-18T09:30:00\n---\nbody\n"


def test_set_session_start_follows_crlf_endings():
    updated = set_session_start("# Plan\r\nbody\r\n", datetime(2026, 10, 18, 9, 30))

    assert updated == "---\r\nstartTime: 2026-10-18T09:30:00\r\n---\r\n# Plan\r\nbody\r\n"


def test_from_file_keeps_crlf(tmp_path):
    document = tmp_path / "today.md"
    document.write_bytes(b"- [ ] A ; 10\r\n")

    session = TimetableSession.from_file(document, ScheduleSettings(), today=TODAY)

    assert session.text == "- [ ] A ; 10\r\n"

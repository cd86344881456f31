from datetime import date, datetime

from timetable.parser import TaskParser
from timetable.schedule import (
    LATE,
    ON_TIME,
    build_schedule,
    compute_progress,
    project_schedule,
)
from timetable.settings import ScheduleSettings

TODAY = date(2026, 10, 18)


def _tasks(content: str, **settings):
    return TaskParser(ScheduleSettings(**settings)).parse(content, today=TODAY)


def _by_name(tasks):
    return {task.display_name: task for task in tasks}


def test_chains_end_time_into_next_start():
    tasks = _tasks("- [ ] A ; 20\n- [ ] B ; 10")

    project_schedule(tasks, session_start=datetime(2026, 10, 18, 9, 0))

    a, b = tasks
    assert a.computed_end_time == datetime(2026, 10, 18, 9, 20)
    assert b.computed_start_time == datetime(2026, 10, 18, 9, 20)
    assert b.computed_end_time == datetime(2026, 10, 18, 9, 30)


def test_explicit_start_time_takes_precedence():
    tasks = _tasks("- [ ] A ; 20\n- [ ] Foo ; 30 @ 14:00\n- [ ] Bar ; 5")

    buffers = project_schedule(tasks, session_start=datetime(2026, 10, 18, 9, 0))

    named = _by_name(tasks)
    assert named["Foo"].computed_start_time == datetime(2026, 10, 18, 14, 0)
    assert named["Bar"].computed_start_time == datetime(2026, 10, 18, 14, 30)
    assert buffers[named["Foo"].sequence_index] == 280


def test_buffer_is_negative_when_running_late():
    tasks = _tasks("- [ ] A ; 20\n- [ ] B ; 10 @ 09:10")

    schedule = build_schedule(
        tasks, ScheduleSettings(), session_start=datetime(2026, 10, 18, 9, 0)
    )

    kinds = [row.kind for row in schedule.rows]
    assert kinds == ["task", "buffer", "task"]
    buffer_row = schedule.rows[1]
    assert buffer_row.buffer_minutes == -10
    assert buffer_row.status == LATE
    assert schedule.rows[2].status == LATE
    assert schedule.rows[0].is_current is True


def test_positive_buffer_is_on_time_and_rows_can_be_hidden():
    tasks = _tasks("- [ ] A ; 20\n- [ ] B ; 10 @ 10:00")

    schedule = build_schedule(
        tasks,
        ScheduleSettings(show_buffer_time=False),
        session_start=datetime(2026, 10, 18, 9, 0),
    )

    assert [row.kind for row in schedule.rows] == ["task", "task"]
    assert schedule.rows[1].buffer_minutes == 40
    assert schedule.rows[1].status == ON_TIME


def test_buffer_rounds_up_partial_minutes():
    tasks = _tasks("- [ ] A ; 20\n- [ ] B ; 10 @ 09:30")

    buffers = project_schedule(
        tasks, session_start=datetime(2026, 10, 18, 9, 0, 30)
    )

    assert buffers[1] == 10


def test_first_task_falls_back_to_document_mtime():
    tasks = _tasks("- [ ] A ; 20")
    modified = datetime(2026, 10, 18, 7, 45)

    project_schedule(tasks, document_modified=modified)

    assert tasks[0].computed_start_time == modified
    assert tasks[0].computed_end_time == datetime(2026, 10, 18, 8, 5)


def test_current_task_uses_its_own_start_without_other_anchor():
    tasks = _tasks("- [ ] A ; 20 @ 10:00")

    project_schedule(tasks, document_modified=datetime(2026, 10, 18, 7, 45))

    assert tasks[0].computed_start_time == datetime(2026, 10, 18, 10, 0)


def test_current_task_starts_when_last_completed_task_ended():
    tasks = _tasks("- [x] A ; 15 @ 08:00\n- [ ] B ; 30 @ 11:00")

    project_schedule(tasks, document_modified=datetime(2026, 10, 18, 7, 0))

    named = _by_name(tasks)
    assert named["A"].computed_end_time == datetime(2026, 10, 18, 8, 15)
    assert named["B"].computed_start_time == datetime(2026, 10, 18, 8, 15)


def test_session_start_overrides_previous_end():
    tasks = _tasks("- [x] A ; 15 @ 08:00\n- [ ] B ; 30")

    project_schedule(tasks, session_start=datetime(2026, 10, 18, 8, 40))

    assert _by_name(tasks)["B"].computed_start_time == datetime(2026, 10, 18, 8, 40)


def test_tasks_without_anchor_stay_unscheduled():
    tasks = _tasks("- [x] Old ; 10\n- [ ] Call @ later\n- [ ] B ; 10")

    project_schedule(tasks)

    named = _by_name(tasks)
    assert named["Old"].computed_start_time is None
    assert named["Old"].computed_end_time is None
    assert named["Call @ later"].computed_start_time is None
    assert named["B"].computed_start_time is None


def test_end_time_requires_estimate():
    tasks = _tasks("- [ ] A ; 20\n- [ ] Call @ later\n- [ ] B ; 10")

    project_schedule(tasks, session_start=datetime(2026, 10, 18, 9, 0))

    named = _by_name(tasks)
    assert named["Call @ later"].computed_start_time == datetime(2026, 10, 18, 9, 20)
    assert named["Call @ later"].computed_end_time is None
    assert named["B"].computed_start_time == datetime(2026, 10, 18, 9, 20)


def test_day_delimiter_schedules_next_day():
    tasks = _tasks(
        "- [ ] A ; 30\n## Tomorrow\n- [ ] B ; 30 @ 08:00",
        date_delimiter=r"^## ",
    )

    buffers = project_schedule(tasks, session_start=datetime(2026, 10, 18, 22, 0))

    assert tasks[1].computed_start_time == datetime(2026, 10, 19, 8, 0)
    assert buffers[1] == 570


def test_hidden_completed_tasks_still_anchor_the_schedule():
    tasks = _tasks("- [x] A ; 15 @ 08:00\n- [ ] B ; 30")

    schedule = build_schedule(tasks, ScheduleSettings(show_completed_tasks=False))

    assert [row.task.display_name for row in schedule.rows] == ["B"]
    assert schedule.current.computed_start_time == datetime(2026, 10, 18, 8, 15)


def test_completed_rows_are_classified_completed():
    tasks = _tasks("- [x] A ; 15 @ 08:00\n- [ ] B ; 30")

    schedule = build_schedule(tasks, ScheduleSettings())

    assert [row.status for row in schedule.rows] == ["completed", None]
    payload = schedule.to_dict()
    assert payload["current"]["name"] == "B"
    assert payload["rows"][1]["startTime"] == "2026-10-18T08:15:00"


def test_progress_of_current_task():
    tasks = _tasks("- [ ] A ; 20")
    schedule = build_schedule(
        tasks, ScheduleSettings(), session_start=datetime(2026, 10, 18, 9, 0)
    )

    halfway = compute_progress(schedule, datetime(2026, 10, 18, 9, 10))
    overdue = compute_progress(schedule, datetime(2026, 10, 18, 9, 30))

    assert halfway.elapsed_minutes == 10
    assert halfway.ratio == 0.5
    assert halfway.overdue is False
    assert overdue.ratio == 1.0
    assert overdue.overdue is True


def test_progress_rolls_negative_span_to_next_day():
    tasks = _tasks("- [ ] A ; 20")
    schedule = build_schedule(
        tasks, ScheduleSettings(), session_start=datetime(2026, 10, 18, 23, 50)
    )

    progress = compute_progress(schedule, datetime(2026, 10, 18, 0, 5))

    assert progress.elapsed_minutes == 15
    assert progress.overdue is False


def test_progress_without_current_task():
    tasks = _tasks("- [x] A ; 20 @ 08:00")
    schedule = build_schedule(tasks, ScheduleSettings())

    assert compute_progress(schedule, datetime(2026, 10, 18, 9, 0)) is None

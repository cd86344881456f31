from datetime import date, datetime

from timetable.parser import TaskParser, current_task
from timetable.settings import ScheduleSettings

TODAY = date(2026, 10, 18)


def _parse(content: str, **settings):
    return TaskParser(ScheduleSettings(**settings)).parse(content, today=TODAY)


def test_parses_name_and_estimate():
    (task,) = _parse("- [ ] Foo ; 30")

    assert task.display_name == "Foo"
    assert task.estimate_minutes == 30
    assert task.explicit_start_time is None
    assert task.is_completed is False


def test_parses_bare_start_time_as_today():
    (task,) = _parse("- [ ] Foo ; 30 @ 14:00")

    assert task.display_name == "Foo"
    assert task.explicit_start_time == datetime(2026, 10, 18, 14, 0)


def test_parses_compact_start_times():
    tasks = _parse("- [ ] Early ; 10 @ 930\n- [ ] Late ; 10 @1400")

    assert [task.explicit_start_time for task in tasks] == [
        datetime(2026, 10, 18, 9, 30),
        datetime(2026, 10, 18, 14, 0),
    ]


def test_full_date_time_wins_over_bare_time():
    (task,) = _parse("- [ ] Trip ; 90 @ 2026-10-20T08:15")

    assert task.explicit_start_time == datetime(2026, 10, 20, 8, 15)


def test_out_of_range_start_time_is_ignored():
    (task,) = _parse("- [ ] Odd ; 10 @ 25:99")

    assert task.explicit_start_time is None
    assert task.estimate_minutes == 10


def test_start_time_only_line_is_a_task_without_estimate():
    (task,) = _parse("- [ ] Call Bob @ 10:00")

    assert task.estimate_minutes is None
    assert task.explicit_start_time == datetime(2026, 10, 18, 10, 0)
    assert task.display_name == "Call Bob"


def test_ignores_lines_without_marker_or_delimiter():
    content = "\n".join(
        [
            "# Today",
            "Plain ; 30",
            "- [ ] No estimate here",
            "- bullet ; 5",
            "+ [ ] Plus ; 5",
            "* [X] Star ; 5 @ 08:00",
        ]
    )

    tasks = _parse(content)

    assert [task.display_name for task in tasks] == ["Star", "Plus"]
    assert [task.is_completed for task in tasks] == [True, False]


def test_resolves_wiki_and_markdown_links():
    (task,) = _parse(
        "- [ ] Read [[notes/Book|the book]] and [docs](https://example.com/a) "
        "with [[Inbox]] ; 15"
    )

    assert task.display_name == "Read the book and docs with Inbox"
    assert task.base_name == "Read the book and docs with Inbox"
    assert task.source_name == (
        "Read [[notes/Book|the book]] and [docs](https://example.com/a) with [[Inbox]]"
    )
    assert task.raw_name.endswith("; 15")


def test_display_toggles_keep_annotations():
    (task,) = _parse(
        "- [ ] Foo ; 30 @ 930",
        show_estimate_in_task_name=True,
        show_start_time_in_task_name=True,
    )

    assert task.display_name == "Foo ; 30 @09:30"


def test_show_start_time_only():
    (task,) = _parse("- [ ] Foo ; 30 @ 14:00", show_start_time_in_task_name=True)

    assert task.display_name == "Foo @14:00"


def test_extracts_categories():
    (task,) = _parse(
        "- [ ] Write #work #deep-focus see http://example.com/#frag \\#esc #_ ; 45"
    )

    assert task.categories == ["work", "deep-focus"]
    assert task.display_name == "Write see http://example.com/#frag \\#esc #_"


def test_category_names_can_stay_in_display_name():
    (task,) = _parse("- [ ] Write #work ; 45", show_category_names_in_task=True)

    assert task.display_name == "Write #work"
    assert task.categories == ["work"]


def test_completed_tasks_come_first_newest_first():
    content = "\n".join(
        [
            "- [x] A ; 10 @ 08:00",
            "- [x] B ; 10 @ 08:10",
            "- [ ] C ; 10",
            "- [ ] D ; 10",
        ]
    )

    tasks = _parse(content)

    assert [task.display_name for task in tasks] == ["B", "A", "C", "D"]
    assert [task.sequence_index for task in tasks] == [1, 0, 2, 3]
    assert current_task(tasks).display_name == "C"


def test_day_delimiter_moves_later_start_times_to_next_day():
    content = "\n".join(
        [
            "---",
            "startTime: 09:00:00",
            "---",
            "- [ ] A ; 30 @ 09:00",
            "---",
            "- [ ] B ; 30 @ 08:00",
            "- [ ] C ; 30 @ 2026-10-18T10:00",
        ]
    )

    a, b, c = _parse(content, date_delimiter=r"^---$")

    assert a.explicit_start_time == datetime(2026, 10, 18, 9, 0)
    assert b.explicit_start_time == datetime(2026, 10, 19, 8, 0)
    assert b.day_offset == 1
    assert c.explicit_start_time == datetime(2026, 10, 18, 10, 0)


def test_records_line_numbers():
    tasks = _parse("# Plan\n\n- [ ] A ; 5\nnote\n- [ ] B ; 5")

    assert [task.line_number for task in tasks] == [2, 4]


def test_custom_delimiters():
    (task,) = _parse(
        "- [ ] Foo | 25 at 7:05",
        task_estimate_delimiter="|",
        start_time_delimiter="at",
    )

    assert task.estimate_minutes == 25
    assert task.explicit_start_time == datetime(2026, 10, 18, 7, 5)
    assert task.display_name == "Foo"

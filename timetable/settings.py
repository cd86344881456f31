"""Schedule settings recognized by the parser, projector and lifecycle engine."""

from __future__ import annotations

import re
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

from timetable.errors import TimetableError, invalid_setting

DEFAULT_HEADER_NAMES = ("Tasks", "Estimate", "Start", "End")


@dataclass(frozen=True)
class ScheduleSettings:
    task_estimate_delimiter: str = ";"
    start_time_delimiter: str = "@"
    date_delimiter: str | None = None
    show_estimate_in_task_name: bool = False
    show_start_time_in_task_name: bool = False
    show_category_names_in_task: bool = False
    show_completed_tasks: bool = True
    show_buffer_time: bool = True
    header_names: tuple[str, ...] = DEFAULT_HEADER_NAMES

    def __post_init__(self) -> None:
        for name in ("task_estimate_delimiter", "start_time_delimiter"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                key = _camel_case(name)
                raise invalid_setting(key, f"{key} must be a non-empty string.")
        if self.date_delimiter is not None:
            try:
                re.compile(self.date_delimiter)
            except re.error as exc:
                raise invalid_setting(
                    "dateDelimiter",
                    "dateDelimiter must be a valid regular expression.",
                    reason=str(exc),
                ) from exc

    def with_overrides(self, overrides: Mapping[str, Any] | None) -> ScheduleSettings:
        """Return a copy with camelCase overrides from a request payload."""
        if not overrides:
            return self
        if not isinstance(overrides, Mapping):
            raise TimetableError(
                "INVALID_TYPE",
                "settings must be an object.",
                {"settings": str(overrides)},
            )

        by_camel = {_camel_case(item.name): item for item in fields(self)}
        unknown = sorted(set(overrides) - set(by_camel))
        if unknown:
            raise TimetableError(
                "UNKNOWN_FIELD",
                "Unknown settings are not allowed.",
                {"fields": unknown},
            )

        changes: dict[str, Any] = {}
        for key, value in overrides.items():
            name = by_camel[key].name
            changes[name] = _coerce_setting(name, key, value)
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data = {_camel_case(item.name): getattr(self, item.name) for item in fields(self)}
        data["headerNames"] = list(self.header_names)
        return data


def _coerce_setting(name: str, key: str, value: Any) -> Any:
    if name.startswith("show_"):
        if not isinstance(value, bool):
            raise invalid_setting(key, f"{key} must be a boolean.")
        return value
    if name == "header_names":
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise invalid_setting(key, "headerNames must be a list of strings.")
        merged = list(DEFAULT_HEADER_NAMES)
        for index, header in enumerate(value[: len(merged)]):
            if header:
                merged[index] = header
        return tuple(merged)
    if name == "date_delimiter" and value in (None, ""):
        return None
    if not isinstance(value, str):
        raise invalid_setting(key, f"{key} must be a string.")
    return value if name == "date_delimiter" else value.strip()


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)

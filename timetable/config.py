"""Configuration loading for the timetable service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from timetable.errors import TimetableError
from timetable.settings import ScheduleSettings

DEFAULT_ESTIMATES_PATH = "timetable/estimates.md"


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class AppConfig:
    library_path: Path
    service_token: str | None
    default_document: str | None
    estimates_path: str
    git_commits: bool
    settings: ScheduleSettings


def _read_dotenv_value(dotenv_path: Path, key: str) -> str | None:
    """Read a single key from a .env file without mutating the environment."""
    if not dotenv_path.is_file():
        return None
    try:
        content = dotenv_path.read_text(encoding="utf-8")
    except OSError:
        return None

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith("export "):
            stripped = stripped[len("export ") :].strip()
        if "=" not in stripped:
            continue
        name, value = stripped.split("=", 1)
        if name.strip() != key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        return value or None
    return None


def _read_value(dotenv_path: Path, key: str) -> str | None:
    raw_value = os.environ.get(key)
    if raw_value is None:
        raw_value = _read_dotenv_value(dotenv_path, key)
    if raw_value is None:
        return None
    raw_value = raw_value.strip()
    return raw_value or None


def _read_bool(raw_value: str | None, *, default: bool, key: str) -> bool:
    if raw_value is None:
        return default
    normalized = raw_value.strip().lower()
    if not normalized:
        return default
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"{key} must be a boolean value.")


def _load_settings(dotenv_path: Path) -> ScheduleSettings:
    defaults = ScheduleSettings()
    overrides: dict[str, object] = {}

    for key, env_key in (
        ("taskEstimateDelimiter", "TIMETABLE_TASK_ESTIMATE_DELIMITER"),
        ("startTimeDelimiter", "TIMETABLE_START_TIME_DELIMITER"),
        ("dateDelimiter", "TIMETABLE_DATE_DELIMITER"),
    ):
        value = _read_value(dotenv_path, env_key)
        if value is not None:
            overrides[key] = value

    for key, env_key, default in (
        (
            "showEstimateInTaskName",
            "TIMETABLE_SHOW_ESTIMATE_IN_TASK_NAME",
            defaults.show_estimate_in_task_name,
        ),
        (
            "showStartTimeInTaskName",
            "TIMETABLE_SHOW_START_TIME_IN_TASK_NAME",
            defaults.show_start_time_in_task_name,
        ),
        (
            "showCategoryNamesInTask",
            "TIMETABLE_SHOW_CATEGORY_NAMES_IN_TASK",
            defaults.show_category_names_in_task,
        ),
        (
            "showCompletedTasks",
            "TIMETABLE_SHOW_COMPLETED_TASKS",
            defaults.show_completed_tasks,
        ),
        ("showBufferTime", "TIMETABLE_SHOW_BUFFER_TIME", defaults.show_buffer_time),
    ):
        overrides[key] = _read_bool(
            _read_value(dotenv_path, env_key), default=default, key=env_key
        )

    try:
        return defaults.with_overrides(overrides)
    except TimetableError as exc:
        raise ConfigError(exc.error.message) from exc


def load_config() -> AppConfig:
    """Load required configuration from the environment."""
    dotenv_path = Path.cwd() / ".env"

    env_key = "TIMETABLE_LIBRARY_PATH"
    raw_path = _read_value(dotenv_path, env_key)
    if not raw_path:
        raise ConfigError(
            "TIMETABLE_LIBRARY_PATH is required; set it to the library root path."
        )

    git_key = "TIMETABLE_GIT_COMMITS"
    git_commits = _read_bool(
        _read_value(dotenv_path, git_key), default=True, key=git_key
    )

    return AppConfig(
        library_path=Path(raw_path).resolve(),
        service_token=_read_value(dotenv_path, "TIMETABLE_SERVICE_TOKEN"),
        default_document=_read_value(dotenv_path, "TIMETABLE_DEFAULT_DOCUMENT"),
        estimates_path=(
            _read_value(dotenv_path, "TIMETABLE_ESTIMATES_PATH")
            or DEFAULT_ESTIMATES_PATH
        ),
        git_commits=git_commits,
        settings=_load_settings(dotenv_path),
    )

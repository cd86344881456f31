"""Activity log of task lifecycle mutations."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path

from timetable.lifecycle import LifecycleOutcome

ACTIVITY_LOG_FILENAME = "activity.log"


def _activity_log_path(library_root: Path) -> Path:
    return library_root / ACTIVITY_LOG_FILENAME


def _append_activity_log(library_root: Path, entry: dict[str, object]) -> None:
    log_path = _activity_log_path(library_root)
    payload = json.dumps(entry, sort_keys=True, separators=(",", ":"))
    with log_path.open("a", encoding="utf-8") as log_file:
        log_file.write(payload + "\n")
        log_file.flush()
        os.fsync(log_file.fileno())


def _format_activity_summary(outcome: LifecycleOutcome) -> str:
    """``complete task: Write report (12 min)``, plus the queued remainder on interrupt."""
    verb = outcome.operation.replace("_", " ")
    summary = f"{verb}: {outcome.task.base_name} ({outcome.elapsed_minutes} min)"
    if outcome.remaining_minutes is not None:
        summary += f", {outcome.remaining_minutes} min left"
    return summary


def _build_activity_entry(
    outcome: LifecycleOutcome,
    relative_path: Path,
    commit_sha: str | None,
) -> dict[str, object]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "operation": outcome.operation,
        "path": relative_path.as_posix(),
        "summary": _format_activity_summary(outcome),
        "task": outcome.task.base_name,
        "elapsedMinutes": outcome.elapsed_minutes,
        "remainingMinutes": outcome.remaining_minutes,
        "commitSha": commit_sha,
    }

"""Timetable tool endpoints."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from fastapi import Request

from timetable.activity import _append_activity_log, _build_activity_entry
from timetable.config import AppConfig
from timetable.errors import (
    CONFIG_MISSING,
    FILE_NOT_FOUND,
    GIT_ERROR,
    NO_DOCUMENT,
    TimetableError,
    conflict_error,
    success_response,
)
from timetable.estimates import parse_records
from timetable.git import _commit_changes, _ensure_git_repo, _rollback_change
from timetable.lifecycle import LifecycleOutcome, complete_task, interrupt_task
from timetable.paths import validate_document_path, validate_path
from timetable.payload import (
    _ensure_payload_dict,
    _optional_content_hash,
    _optional_string,
    _reject_unknown_fields,
)
from timetable.router import timetable_router
from timetable.schedule import compute_progress
from timetable.session import TimetableSession, content_hash
from timetable.statistics import category_performance
from timetable.storage import _atomic_write, _read_text, _write_if_unchanged

logger = logging.getLogger(__name__)

READ_FIELDS = {"path", "settings"}
LIFECYCLE_FIELDS = {"path", "settings", "expectedHash"}


def _now() -> datetime:
    return datetime.now()


@timetable_router.post("/tool:get_schedule")
def get_schedule(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Parse the task document and project its schedule."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, READ_FIELDS)

    config = _request_config(request)
    session = _load_existing_session(payload, config, request)
    schedule = session.schedule()
    data = schedule.to_dict()
    data.update(
        {
            "path": _relative(session.path, config.library_path),
            "headers": list(session.settings.header_names),
            "sessionStart": _isoformat(session.session_start),
            "contentHash": session.content_hash,
        }
    )
    return success_response(data)


@timetable_router.post("/tool:get_progress")
def get_progress(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Report elapsed time of the current task against its estimate."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, READ_FIELDS)

    config = _request_config(request)
    session = _load_existing_session(payload, config, request)
    progress = compute_progress(session.schedule(), _now())
    return success_response(
        {"progress": progress.to_dict() if progress is not None else None}
    )


@timetable_router.post("/tool:category_performance")
def get_category_performance(
    payload: dict[str, Any], request: Request
) -> dict[str, Any]:
    """Summarize actual and estimated minutes per category."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, READ_FIELDS)

    config = _request_config(request)
    session = _load_existing_session(payload, config, request)
    entries = category_performance(session.parse_tasks())
    return success_response({"categories": [entry.to_dict() for entry in entries]})


@timetable_router.post("/tool:get_estimates")
def get_estimates(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """List historical estimate records, optionally for a single task name."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"name"})
    name = _optional_string(payload, "name")

    config = _request_config(request)
    library_root = get_request_library_root(request)
    store_path = validate_path(library_root, config.estimates_path)
    records = parse_records(
        _read_text(store_path) or "", config.settings.task_estimate_delimiter
    )
    if name is not None:
        records = [record for record in records if record.task_name == name]
    return success_response({"estimates": [record.to_dict() for record in records]})


@timetable_router.post("/tool:complete_task")
def complete_current_task(
    payload: dict[str, Any], request: Request
) -> dict[str, Any]:
    """Mark the current task complete with its actual duration."""
    return _run_lifecycle(payload, request, complete_task)


@timetable_router.post("/tool:interrupt_task")
def interrupt_current_task(
    payload: dict[str, Any], request: Request
) -> dict[str, Any]:
    """Close the current task and queue its remaining estimate."""
    return _run_lifecycle(payload, request, interrupt_task)


def _run_lifecycle(
    payload: dict[str, Any],
    request: Request,
    operation: Callable[..., LifecycleOutcome],
) -> dict[str, Any]:
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, LIFECYCLE_FIELDS)
    expected_hash = _optional_content_hash(payload, "expectedHash")

    config = _request_config(request)
    library_root = get_request_library_root(request)
    now = _now()
    session = _load_session(payload, config, request, now)
    if (
        expected_hash is not None
        and session.has_document
        and session.content_hash != expected_hash
    ):
        raise conflict_error(
            _relative(session.path, library_root), expected_hash, session.content_hash
        )

    store_path = validate_path(library_root, config.estimates_path)
    original_store = _read_text(store_path)
    outcome = operation(session, now=now, estimates_text=original_store or "")
    data = outcome.to_dict()
    data["path"] = _relative(session.path, library_root)
    if not outcome.updated:
        data.update({"commitSha": None, "contentHash": session.content_hash})
        return success_response(data)

    document_path = session.path
    _write_if_unchanged(document_path, outcome.text, session.content_hash)
    if outcome.estimates_text is not None:
        store_path.parent.mkdir(parents=True, exist_ok=True)
        _atomic_write(store_path, outcome.estimates_text)

    relative_document = document_path.relative_to(library_root)
    relative_store = store_path.relative_to(library_root)
    commit_sha = None
    if config.git_commits:
        commit_sha = _commit_outcome(
            library_root,
            outcome,
            [(document_path, relative_document, session.text)],
            [(store_path, relative_store, original_store)],
        )

    entry = _build_activity_entry(outcome, relative_document, commit_sha)
    _append_activity_log(library_root, entry)

    data.update({"commitSha": commit_sha, "contentHash": content_hash(outcome.text)})
    return success_response(data)


def _commit_outcome(
    library_root: Path,
    outcome: LifecycleOutcome,
    documents: list[tuple[Path, Path, str | None]],
    stores: list[tuple[Path, Path, str | None]],
) -> str:
    changed = documents + (stores if outcome.estimates_text is not None else [])
    try:
        repo = _ensure_git_repo(library_root)
    except TimetableError:
        for target, relative, original in changed:
            _rollback_change(None, target, relative, original)
        raise

    try:
        commit_sha = _commit_changes(
            repo,
            [relative for _target, relative, _original in changed],
            outcome.operation,
            documents[0][1],
        )
    except Exception as exc:
        for target, relative, original in changed:
            _rollback_change(repo, target, relative, original)
        raise TimetableError(
            GIT_ERROR,
            "Git commit failed; mutation rolled back.",
            {"path": documents[0][1].as_posix(), "operation": outcome.operation},
        ) from exc
    logger.info("%s committed as %s", outcome.operation, commit_sha)
    return commit_sha


def _request_config(request: Request) -> AppConfig:
    config = getattr(request.app.state, "config", None)
    if config is None:
        raise TimetableError(
            CONFIG_MISSING, "Service configuration is not loaded.", {}
        )
    return config


def get_request_library_root(request: Request) -> Path:
    """Resolve and create the library root for a request."""
    library_root = Path(_request_config(request).library_path)
    library_root.mkdir(parents=True, exist_ok=True)
    return library_root


def _document_path(
    payload: dict[str, Any], config: AppConfig, library_root: Path
) -> Path | None:
    raw_path = _optional_string(payload, "path") or config.default_document
    if not raw_path:
        return None
    return validate_document_path(library_root, raw_path)


def _load_session(
    payload: dict[str, Any],
    config: AppConfig,
    request: Request,
    now: datetime | None = None,
) -> TimetableSession:
    settings = config.settings.with_overrides(payload.get("settings"))
    library_root = get_request_library_root(request)
    today = (now or _now()).date()
    return TimetableSession.from_file(
        _document_path(payload, config, library_root), settings, today=today
    )


def _load_existing_session(
    payload: dict[str, Any], config: AppConfig, request: Request
) -> TimetableSession:
    session = _load_session(payload, config, request)
    if session.path is None:
        raise TimetableError(
            NO_DOCUMENT,
            "No task document given and no default document configured.",
            {"fields": ["path"]},
        )
    if not session.has_document:
        raise TimetableError(
            FILE_NOT_FOUND,
            "Task document does not exist.",
            {"path": _relative(session.path, config.library_path)},
        )
    return session


def _relative(path: Path | None, library_root: Path) -> str | None:
    if path is None:
        return None
    try:
        return path.relative_to(library_root).as_posix()
    except ValueError:
        return path.as_posix()


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None

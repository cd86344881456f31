"""Payload validation helpers for tool endpoints."""

from __future__ import annotations

import re
from typing import Any

from timetable.errors import TimetableError

CONTENT_HASH_PATTERN = re.compile(r"[0-9a-f]{64}")


def _ensure_payload_dict(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise TimetableError(
            "INVALID_TYPE",
            "Payload must be an object.",
            {"type": type(payload).__name__},
        )
    return payload


def _reject_unknown_fields(payload: dict[str, Any], allowed_fields: set[str]) -> None:
    unknown_fields = sorted(set(payload) - allowed_fields)
    if unknown_fields:
        raise TimetableError(
            "UNKNOWN_FIELD",
            "Unknown fields are not allowed.",
            {"fields": unknown_fields},
        )


def _optional_string(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise TimetableError(
            "INVALID_TYPE",
            f"{key} must be a string.",
            {key: str(value)},
        )
    return value


def _optional_content_hash(payload: dict[str, Any], key: str) -> str | None:
    """A SHA-256 hex digest as returned in ``contentHash``."""
    value = _optional_string(payload, key)
    if value is None:
        return None
    value = value.strip().lower()
    if not CONTENT_HASH_PATTERN.fullmatch(value):
        raise TimetableError(
            "INVALID_TYPE",
            f"{key} must be a SHA-256 hex digest.",
            {key: value},
        )
    return value

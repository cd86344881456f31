"""Structured error types for timetable responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

# Codes raised by the schedule and write-back layers; path and payload
# validation codes are raised inline where they are checked.
INVALID_SETTING = "INVALID_SETTING"
NO_DOCUMENT = "NO_DOCUMENT"
FILE_NOT_FOUND = "FILE_NOT_FOUND"
CONFLICT = "CONFLICT"
GIT_ERROR = "GIT_ERROR"
CONFIG_MISSING = "CONFIG_MISSING"


@dataclass(frozen=True)
class ErrorResponse:
    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class TimetableError(RuntimeError):
    """Exception carrying a structured error response."""

    def __init__(
        self, code: str, message: str, details: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.error = ErrorResponse(
            code=code, message=message, details=dict(details or {})
        )


def conflict_error(
    path: str | None, expected_hash: str | None, current_hash: str | None
) -> TimetableError:
    """The document no longer hashes to the version a caller read."""
    return TimetableError(
        CONFLICT,
        "Document changed since it was read.",
        {"path": path, "expectedHash": expected_hash, "currentHash": current_hash},
    )


def invalid_setting(key: str, message: str, **details: Any) -> TimetableError:
    return TimetableError(INVALID_SETTING, message, {"setting": key, **details})


def success_response(payload: dict[str, Any]) -> dict[str, Any]:
    return {"ok": True, "data": payload}


def error_response(error: ErrorResponse) -> dict[str, Any]:
    return {"ok": False, "error": error.to_dict()}

"""Path validation utilities for enforcing the library boundary."""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from timetable.errors import TimetableError

ALLOWED_DOCUMENT_EXTENSIONS = {".md", ".markdown", ".txt"}


def validate_path(library_root: Path, raw_path: str) -> Path:
    """Validate a user-supplied path and return a normalized absolute path."""
    if not isinstance(raw_path, str):
        raise TimetableError(
            "INVALID_TYPE",
            "Path must be a string.",
            {"path": str(raw_path), "type": type(raw_path).__name__},
        )

    normalized = raw_path.replace("\\", "/")
    candidate = PurePosixPath(normalized)

    if candidate.is_absolute():
        raise TimetableError(
            "ABSOLUTE_PATH",
            "Absolute paths are not allowed.",
            {"path": raw_path},
        )

    if ".." in candidate.parts:
        raise TimetableError(
            "PATH_TRAVERSAL",
            "Path traversal is not allowed.",
            {"path": raw_path},
        )

    if _contains_symlink(library_root, candidate):
        raise TimetableError(
            "PATH_SYMLINK",
            "Symlinked paths are not allowed.",
            {"path": raw_path},
        )

    return library_root.joinpath(*candidate.parts)


def validate_document_path(library_root: Path, raw_path: str) -> Path:
    """Validate a task document path, which must name a text or Markdown file."""
    path = validate_path(library_root, raw_path)
    if path.suffix.lower() not in ALLOWED_DOCUMENT_EXTENSIONS:
        raise TimetableError(
            "INVALID_EXTENSION",
            "Task documents must be Markdown or text files.",
            {"path": raw_path, "allowed": sorted(ALLOWED_DOCUMENT_EXTENSIONS)},
        )
    return path


def _contains_symlink(library_root: Path, relative_path: PurePosixPath) -> bool:
    current = library_root
    for segment in relative_path.parts:
        current = current / segment
        if current.is_symlink():
            return True
    return False

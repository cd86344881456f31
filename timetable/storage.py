"""Filesystem helpers for document write-back."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from timetable.errors import conflict_error
from timetable.session import content_hash, read_document


def _atomic_write(target_path: Path, content: str) -> None:
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=target_path.parent, delete=False, newline=""
        ) as temp_file:
            temp_path = Path(temp_file.name)
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.replace(temp_path, target_path)
    finally:
        if temp_path is not None and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass


def _read_text(path: Path) -> str | None:
    if not path.is_file():
        return None
    return read_document(path)


def _write_if_unchanged(
    target_path: Path, content: str, expected_hash: str | None
) -> None:
    """Replace ``target_path`` only while it still hashes to ``expected_hash``."""
    if expected_hash is not None:
        current = _read_text(target_path)
        current_hash = content_hash(current) if current is not None else None
        if current_hash != expected_hash:
            raise conflict_error(target_path.name, expected_hash, current_hash)
    target_path.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write(target_path, content)

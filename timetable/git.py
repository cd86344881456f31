"""Git history for document mutations, backed by dulwich."""

from __future__ import annotations

import logging
from pathlib import Path

from dulwich import porcelain
from dulwich.repo import Repo

from timetable.errors import GIT_ERROR, TimetableError
from timetable.storage import _atomic_write

logger = logging.getLogger(__name__)


def _ensure_git_repo(library_root: Path) -> Repo:
    git_dir = library_root / ".git"
    try:
        if git_dir.exists():
            return Repo(str(library_root))
        return porcelain.init(str(library_root))
    except Exception as exc:
        raise TimetableError(
            GIT_ERROR,
            "Git repository could not be initialized.",
            {"path": str(library_root)},
        ) from exc


def _commit_changes(
    repo: Repo,
    relative_paths: list[Path],
    operation: str,
    target: Path,
) -> str:
    repo.get_worktree().stage([path.as_posix() for path in relative_paths])
    commit_message = f"{operation}: {target.as_posix()}"
    commit_sha = porcelain.commit(repo, message=commit_message)
    if isinstance(commit_sha, bytes):
        return commit_sha.decode("ascii")
    return str(commit_sha)


def _rollback_change(
    repo: Repo | None,
    target_path: Path,
    relative_path: Path,
    original_content: str | None,
) -> None:
    """Restore ``target_path``; ``None`` content means the file did not exist."""
    logger.warning("Rolling back %s", relative_path.as_posix())
    if original_content is None:
        try:
            if target_path.exists():
                target_path.unlink()
        except OSError:
            pass
    else:
        _atomic_write(target_path, original_content)
    if repo is None:
        return
    try:
        repo.get_worktree().stage([relative_path.as_posix()])
    except Exception:
        logger.debug("Unable to restage %s", relative_path, exc_info=True)

"""Path and provenance helpers for explanation outputs.

Environment first (TTT_SVERL_REPO_ROOT, TTT_SVERL_OUT), then the nearest git
checkout, then the current working directory.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path


def _find_git_root(start: Path) -> Path | None:
    for cur in [start] + list(start.parents)[:5]:
        if (cur / ".git").exists():
            return cur
    return None


def repo_root() -> Path:
    env = os.getenv("TTT_SVERL_REPO_ROOT")
    if env:
        return Path(env)
    git_root = _find_git_root(Path.cwd().resolve())
    return git_root if git_root is not None else Path.cwd()


def explanations_dir() -> Path:
    p = os.getenv("TTT_SVERL_OUT")
    return Path(p) if p else repo_root() / "explanations"


def _git(*args: str) -> str | None:
    try:
        return subprocess.check_output(
            ["git", "-C", str(repo_root()), *args],
            stderr=subprocess.DEVNULL,
            text=True,
            timeout=2.0,
        )
    except (OSError, subprocess.SubprocessError):
        return None


def get_git_commit() -> str | None:
    out = _git("rev-parse", "HEAD")
    return out.strip() if out else None


def get_git_is_dirty() -> bool | None:
    """True with uncommitted changes, False when clean, None outside a repo."""
    out = _git("status", "--porcelain")
    return None if out is None else len(out.strip()) > 0

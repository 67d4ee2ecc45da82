"""Git metadata queries."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

log = logging.getLogger(__name__)


def repo_toplevel(cwd: Path) -> Path | None:
    """Return the git work tree root containing *cwd*, or None outside git."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=str(cwd),
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        log.debug("git unavailable: %s", exc)
        return None

    toplevel = result.stdout.strip()
    if result.returncode != 0 or not toplevel:
        return None
    return Path(toplevel)


def repo_name(cwd: Path) -> str | None:
    """Return the directory name of the git repository containing *cwd*."""
    toplevel = repo_toplevel(cwd)
    if toplevel is None or not toplevel.name:
        return None
    return toplevel.name

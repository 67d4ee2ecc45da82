"""Explicit run context for persist mode.

Everything that would otherwise be read from the process (working
directory, environment, repository name) is captured once here and passed
down, so the chunk writer and ledger never touch global state.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from diffpod.vcs import repo_name

# Used when neither git nor the working directory yield a usable name
DEFAULT_PROJECT_ID = "default-project"

# Matches $VAR references in save paths
_ENV_VAR_RE = re.compile(r'\$([A-Z_][A-Z0-9_]*)')


def project_identifier(cwd: Path) -> str:
    """Repository name, else working directory name, else a fixed fallback."""
    name = repo_name(cwd)
    if name:
        return name
    if cwd.name:
        return cwd.name
    return DEFAULT_PROJECT_ID


@dataclass(frozen=True)
class RunContext:
    """Process-derived values for one run."""

    cwd: Path
    project_id: str = DEFAULT_PROJECT_ID
    env: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_environment(cls, cwd: Path | None = None) -> RunContext:
        root = Path(cwd) if cwd else Path.cwd()
        return cls(
            cwd=root,
            project_id=project_identifier(root),
            env=dict(os.environ),
        )

    @property
    def home(self) -> str | None:
        return self.env.get("HOME")

    def expand_path(self, raw: str) -> str:
        """Expand a leading ``~`` and ``$VAR`` references from :attr:`env`.

        Unknown variables are left in place verbatim.
        """
        expanded = raw
        home = self.home
        if home:
            if expanded == "~":
                expanded = home
            elif expanded.startswith("~/"):
                expanded = home.rstrip("/") + expanded[1:]

        def _sub(m: re.Match[str]) -> str:
            return self.env.get(m.group(1), m.group(0))

        return _ENV_VAR_RE.sub(_sub, expanded)

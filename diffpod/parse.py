"""Unified diff parsing and per-file change classification.

Foundation module used by both the minimizer (print mode) and the chunk
writer / review ledger (persist mode). Parsing is permissive: nothing in
here raises on malformed input. Lines that fall outside any recognized
``diff --git`` section are counted in :attr:`ParseResult.skipped_lines`
instead.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

log = logging.getLogger(__name__)

# Default size heuristics (overridable through the ``diff`` config section)
LARGE_FILE_CHANGES_THRESHOLD = 100
LARGE_FILE_LINES_THRESHOLD = 500

# Matches file headers: "diff --git a/src/app.py b/src/app.py"
DIFF_HEADER_RE = re.compile(r'^diff --git a/(.*?) b/(.*)$')

_HEADER_PREFIX = "diff --git a/"
# Any line with this prefix ends the current file section
_BOUNDARY_PREFIX = "diff --git"
_PATH_SEPARATOR = " b/"


class ChangeKind(str, Enum):
    """How a file was touched by the diff."""

    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"
    RENAMED = "renamed"


# Extended-header markers, checked in order on every line of a file section
_KIND_MARKERS: tuple[tuple[str, ChangeKind], ...] = (
    ("new file mode", ChangeKind.ADDED),
    ("deleted file mode", ChangeKind.DELETED),
    ("rename from", ChangeKind.RENAMED),
    ("rename to", ChangeKind.RENAMED),
)


@dataclass(frozen=True)
class FileChange:
    """One file's worth of diff content."""

    old_path: str | None
    new_path: str | None
    change_kind: ChangeKind
    content_lines: tuple[str, ...]
    change_count: int
    is_large: bool

    @property
    def path(self) -> str:
        """Display path: the new side when present, else the old side."""
        return self.new_path or self.old_path or "unknown"

    @property
    def header(self) -> str:
        """Reconstructed ``diff --git`` header line (no trailing newline)."""
        return f"diff --git a/{self.old_path or self.path} b/{self.new_path or self.path}"


@dataclass
class ParseResult:
    """Parsed file changes plus the number of unattributed input lines."""

    changes: list[FileChange] = field(default_factory=list)
    skipped_lines: int = 0

    def __len__(self) -> int:
        return len(self.changes)

    def __iter__(self):
        return iter(self.changes)


def split_lines(text: str) -> list[str]:
    """Split *text* on ``\\n`` only, dropping a trailing ``\\r`` per line.

    ``str.splitlines()`` would also break on form feeds and unicode line
    separators, which legitimately occur inside diffed file content.
    """
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def parse_header(line: str) -> tuple[str, str] | None:
    """Extract ``(old_path, new_path)`` from a ``diff --git`` header line.

    Returns None if *line* is not a file header. When both sides name the
    same path the symmetric split wins, so ``a/x b/y b/x b/y`` resolves to
    ``x b/y`` on both sides. Otherwise the first `` b/`` is the separator.
    """
    m = DIFF_HEADER_RE.match(line)
    if not m:
        return None

    rest = line[len(_HEADER_PREFIX):]
    half = (len(rest) - len(_PATH_SEPARATOR)) // 2
    if (
        half > 0
        and rest[half:half + len(_PATH_SEPARATOR)] == _PATH_SEPARATOR
        and rest[:half] == rest[half + len(_PATH_SEPARATOR):]
    ):
        return rest[:half], rest[:half]
    return m.group(1), m.group(2)


def classify_change(lines: list[str] | tuple[str, ...]) -> ChangeKind:
    """Return the change kind announced by the first extended-header marker.

    Files without any marker line are modifications.
    """
    for line in lines:
        for marker, kind in _KIND_MARKERS:
            if line.startswith(marker):
                return kind
    return ChangeKind.MODIFIED


def count_changes(lines: list[str] | tuple[str, ...]) -> int:
    """Count added/removed lines, ignoring the ``+++``/``---`` file markers."""
    total = 0
    for line in lines:
        if line.startswith("+") and not line.startswith("+++"):
            total += 1
        elif line.startswith("-") and not line.startswith("---"):
            total += 1
    return total


def is_large_change(
    change_count: int,
    line_count: int,
    *,
    changes_threshold: int = LARGE_FILE_CHANGES_THRESHOLD,
    lines_threshold: int = LARGE_FILE_LINES_THRESHOLD,
) -> bool:
    """Size heuristic: too many changed lines, or too many lines overall."""
    return change_count > changes_threshold or line_count > lines_threshold


def _build_change(
    old_path: str,
    new_path: str,
    lines: list[str],
    changes_threshold: int,
    lines_threshold: int,
) -> FileChange:
    kind = classify_change(lines)
    change_count = count_changes(lines)

    old: str | None = old_path
    new: str | None = new_path
    if kind is ChangeKind.ADDED:
        old = None
    elif kind is ChangeKind.DELETED:
        new = None

    return FileChange(
        old_path=old,
        new_path=new,
        change_kind=kind,
        content_lines=tuple(lines),
        change_count=change_count,
        is_large=is_large_change(
            change_count,
            len(lines),
            changes_threshold=changes_threshold,
            lines_threshold=lines_threshold,
        ),
    )


def parse_diff(
    text: str,
    *,
    changes_threshold: int = LARGE_FILE_CHANGES_THRESHOLD,
    lines_threshold: int = LARGE_FILE_LINES_THRESHOLD,
) -> ParseResult:
    """Split unified diff *text* into ordered :class:`FileChange` records.

    Each ``diff --git`` header opens a section that runs up to the next
    ``diff --git`` line or end of input. Files are returned in input order,
    never merged or reordered. A ``diff --git`` line whose paths cannot be
    read (quoted non-ASCII names) closes the previous section, and its own
    section is counted in ``skipped_lines``.
    """
    result = ParseResult()
    current: tuple[str, str] | None = None
    body: list[str] = []

    for line in split_lines(text):
        paths = parse_header(line)
        if paths is not None:
            if current is not None:
                result.changes.append(
                    _build_change(*current, body, changes_threshold, lines_threshold)
                )
            current = paths
            body = []
        elif line.startswith(_BOUNDARY_PREFIX):
            if current is not None:
                result.changes.append(
                    _build_change(*current, body, changes_threshold, lines_threshold)
                )
            log.debug("Skipping file section with unreadable header: %s", line)
            current = None
            body = []
            result.skipped_lines += 1
        elif current is None:
            result.skipped_lines += 1
        else:
            body.append(line)

    if current is not None:
        result.changes.append(
            _build_change(*current, body, changes_threshold, lines_threshold)
        )

    if result.skipped_lines:
        log.debug("Skipped %d lines outside any file section", result.skipped_lines)
    log.debug("Parsed %d file changes", len(result.changes))
    return result

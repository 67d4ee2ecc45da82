"""Token-efficient rendering of parsed diffs.

Deleted files collapse to a one-line summary, large files to a metadata
summary, and everything else is shown in full with long runs of blank
lines squeezed down.
"""

from __future__ import annotations

from typing import Iterable

from diffpod.parse import ChangeKind, FileChange

MAX_CONSECUTIVE_EMPTY_LINES = 2


def compact_blank_lines(
    lines: Iterable[str],
    max_run: int = MAX_CONSECUTIVE_EMPTY_LINES,
) -> list[str]:
    """Keep at most *max_run* consecutive whitespace-only lines.

    Single pass: the run counter resets on every non-blank line, and
    non-blank lines always pass through untouched.
    """
    result: list[str] = []
    run = 0
    for line in lines:
        if line.strip():
            run = 0
            result.append(line)
        else:
            run += 1
            if run <= max_run:
                result.append(line)
    return result


def format_deleted_summary(change: FileChange) -> str:
    """One-line summary for a deleted file. Deleted content is never shown."""
    return f"Deleted file: {change.old_path or change.path}\n"


def format_large_summary(change: FileChange) -> str:
    """Metadata-only summary: path, change kind and content line count."""
    return (
        f"Large file change: {change.path}\n"
        f"Change type: {change.change_kind.value}\n"
        f"Content lines: {len(change.content_lines)}\n"
    )


def format_full_diff(
    change: FileChange,
    max_blank_lines: int = MAX_CONSECUTIVE_EMPTY_LINES,
) -> str:
    """Header line plus the file's content with blank runs compacted."""
    parts = [change.header]
    parts.extend(compact_blank_lines(change.content_lines, max_blank_lines))
    return "\n".join(parts) + "\n"


def render_change(
    change: FileChange,
    max_blank_lines: int = MAX_CONSECUTIVE_EMPTY_LINES,
) -> str:
    """Render one file change according to its kind and size."""
    if change.change_kind is ChangeKind.DELETED:
        return format_deleted_summary(change)
    if change.is_large:
        return format_large_summary(change)
    return format_full_diff(change, max_blank_lines)


def minimize_diff(
    changes: Iterable[FileChange],
    *,
    max_blank_lines: int = MAX_CONSECUTIVE_EMPTY_LINES,
) -> str:
    """Concatenate per-file renderings in input order, blank line after each."""
    return "".join(
        render_change(change, max_blank_lines) + "\n" for change in changes
    )

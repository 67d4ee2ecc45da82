"""Persist mode: chunk files plus the REVIEW.md ledger.

Entry point: :func:`save_diff_chunks` parses a diff, replaces the chunk
files in the output directory and rewrites the ledger, carrying review
state over from the previous run.

The output directory assumes a single writer. Concurrent runs against the
same directory are not coordinated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from diffpod.context import RunContext
from diffpod.parse import (
    LARGE_FILE_CHANGES_THRESHOLD,
    LARGE_FILE_LINES_THRESHOLD,
    parse_diff,
)
from diffpod.save.chunks import WrittenChunk, clear_chunks, resolve_output_dir, write_chunks
from diffpod.save.ledger import (
    REVIEW_FILENAME,
    LedgerSection,
    Outcome,
    read_review,
    reconcile,
    render_review,
    write_review,
)

log = logging.getLogger(__name__)


@dataclass
class SaveResult:
    """What a persist run produced."""

    output_dir: Path
    display_dir: str
    review_path: Path
    chunks: list[WrittenChunk] = field(default_factory=list)
    sections: list[LedgerSection] = field(default_factory=list)
    removed_paths: list[str] = field(default_factory=list)
    skipped_lines: int = 0

    def count(self, outcome: Outcome) -> int:
        return sum(1 for s in self.sections if s.outcome is outcome)


def save_diff_chunks(
    diff_content: str,
    save_path: str,
    ctx: RunContext,
    *,
    context: str | None = None,
    changes_threshold: int = LARGE_FILE_CHANGES_THRESHOLD,
    lines_threshold: int = LARGE_FILE_LINES_THRESHOLD,
) -> SaveResult:
    """Write one chunk per file and reconcile REVIEW.md.

    The previous ledger is read before old chunks are cleared, and the
    ledger is rewritten last. Any I/O error aborts the run.
    """
    display = resolve_output_dir(save_path, ctx)
    output_dir = display if display.is_absolute() else ctx.cwd / display
    review_path = output_dir / REVIEW_FILENAME

    previous = read_review(review_path)
    parsed = parse_diff(
        diff_content,
        changes_threshold=changes_threshold,
        lines_threshold=lines_threshold,
    )

    output_dir.mkdir(parents=True, exist_ok=True)
    clear_chunks(output_dir)
    chunks = write_chunks(output_dir, parsed.changes)

    sections = reconcile(previous, chunks)
    current = {s.path for s in sections}
    removed = sorted(p for p in previous if p not in current)

    display_dir = str(display)
    write_review(review_path, render_review(sections, display_dir, context))

    result = SaveResult(
        output_dir=output_dir,
        display_dir=display_dir,
        review_path=review_path.resolve(),
        chunks=chunks,
        sections=sections,
        removed_paths=removed,
        skipped_lines=parsed.skipped_lines,
    )
    log.info(
        "Review ledger: %d new, %d unchanged, %d outdated, %d removed",
        result.count(Outcome.NEW),
        result.count(Outcome.UNCHANGED),
        result.count(Outcome.CHANGED),
        len(removed),
    )
    return result


__all__ = ["LedgerSection", "Outcome", "SaveResult", "WrittenChunk", "save_diff_chunks"]

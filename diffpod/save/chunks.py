"""Per-file chunk artifacts for persist mode.

Chunk names are positional: the N-th file in the diff always lands in the
N-th suffix (``aa`` … ``zz``, then ``0000`` …). Identity across runs is by
file path and lives in the review ledger, not in chunk names.
"""

from __future__ import annotations

import hashlib
import logging
import string
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from diffpod.context import RunContext
from diffpod.parse import FileChange

log = logging.getLogger(__name__)

CHUNK_PREFIX = "chunk_"
CHUNK_EXT = ".diff"
CHUNK_GLOB = f"{CHUNK_PREFIX}*{CHUNK_EXT}"

_LETTERS = string.ascii_lowercase
# aa..zz
LETTER_SUFFIX_COUNT = len(_LETTERS) ** 2


@dataclass(frozen=True)
class WrittenChunk:
    """A chunk file as written for one :class:`FileChange`."""

    index: int
    path: str
    filename: str
    file_path: Path
    body: str
    hash: str


def chunk_suffix(index: int) -> str:
    """Map a file position to its chunk suffix.

    0 → ``aa``, 25 → ``az``, 26 → ``ba``, 675 → ``zz``, then 676 → ``0000``,
    677 → ``0001`` and so on.
    """
    if index < 0:
        raise ValueError(f"chunk index must be >= 0, got {index}")
    if index < LETTER_SUFFIX_COUNT:
        first, second = divmod(index, len(_LETTERS))
        return _LETTERS[first] + _LETTERS[second]
    return f"{index - LETTER_SUFFIX_COUNT:04d}"


def chunk_filename(index: int) -> str:
    return f"{CHUNK_PREFIX}{chunk_suffix(index)}{CHUNK_EXT}"


def chunk_body(change: FileChange) -> str:
    """Full, uncompacted chunk content: header line plus every content line."""
    lines = [change.header, *change.content_lines]
    return "".join(f"{line}\n" for line in lines)


def content_hash(body: str) -> str:
    """Fingerprint of a chunk body as stored in the review ledger."""
    return hashlib.sha256(body.encode("utf-8")).hexdigest()[:16]


def resolve_output_dir(save_path: str, ctx: RunContext) -> Path:
    """Resolve the chunk directory for *save_path*.

    Relative paths are used as given (relative to the run's working
    directory). Absolute paths get the project identifier appended so
    several projects can share one output root.
    """
    expanded = Path(ctx.expand_path(save_path))
    if expanded.is_absolute():
        return expanded / ctx.project_id
    return expanded


def clear_chunks(directory: Path) -> list[Path]:
    """Delete every chunk file in *directory*; return what was removed.

    Anything not matching ``chunk_*.diff`` (notably ``REVIEW.md``) stays.
    """
    removed: list[Path] = []
    if not directory.is_dir():
        return removed
    for path in sorted(directory.glob(CHUNK_GLOB)):
        if path.is_file():
            path.unlink()
            removed.append(path)
    if removed:
        log.info("Removed %d stale chunk files from %s", len(removed), directory)
    return removed


def build_chunks(directory: Path, changes: Iterable[FileChange]) -> list[WrittenChunk]:
    """Compute chunk names, bodies and hashes without touching disk."""
    chunks: list[WrittenChunk] = []
    for index, change in enumerate(changes):
        body = chunk_body(change)
        filename = chunk_filename(index)
        chunks.append(
            WrittenChunk(
                index=index,
                path=change.path,
                filename=filename,
                file_path=directory / filename,
                body=body,
                hash=content_hash(body),
            )
        )
    return chunks


def write_chunks(directory: Path, changes: Iterable[FileChange]) -> list[WrittenChunk]:
    """Write one chunk file per change, in parse order.

    The directory is created if needed. Write failures propagate.
    """
    chunks = build_chunks(directory, changes)
    directory.mkdir(parents=True, exist_ok=True)
    for chunk in chunks:
        chunk.file_path.write_text(chunk.body, encoding="utf-8", newline="\n")
    log.info("Wrote %d chunk files to %s", len(chunks), directory)
    return chunks

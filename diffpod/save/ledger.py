"""REVIEW.md: per-file review state that survives chunk regeneration.

Each run reads the previous ledger, reconciles it against the freshly
written chunks and rewrites the whole document:

- new path → ``pending``, no comments
- same hash → status and comments carried over verbatim
- different hash → status forced to ``outdated``, comments kept
- path no longer in the diff → section dropped

The ledger is meant to be edited by hand between runs, so parsing is
lenient. Anything that does not look like a file section is ignored, and
an unparseable document simply means "no prior state".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable

from jinja2 import Environment, FileSystemLoader

from diffpod.parse import split_lines
from diffpod.save.chunks import WrittenChunk

log = logging.getLogger(__name__)

REVIEW_FILENAME = "REVIEW.md"
PLACEHOLDER = "<!-- Review comments go here -->"

GUIDELINES_HEADING = "## Guidelines"
SECTION_SEPARATOR = "---"
_HEADING_PREFIX = "## "
_META_PREFIX = "- meta:"
_HASH_PREFIX = "- meta:hash: "
_STATUS_PREFIX = "- meta:status: "

_REVIEWED_PREFIX = "reviewed@"

_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


class StatusKind(str, Enum):
    PENDING = "pending"
    OUTDATED = "outdated"
    REVIEWED = "reviewed"
    OTHER = "other"


@dataclass(frozen=True)
class ReviewStatus:
    """A review status line, tagged by the shape of its text.

    ``text`` is always what gets written back, so hand-edited values that
    match none of the known shapes round-trip untouched as ``OTHER``.
    """

    kind: StatusKind
    text: str

    @classmethod
    def parse(cls, raw: str) -> ReviewStatus:
        text = raw.strip()
        if text == StatusKind.PENDING.value:
            return cls(StatusKind.PENDING, text)
        if text == StatusKind.OUTDATED.value:
            return cls(StatusKind.OUTDATED, text)
        if text.startswith(_REVIEWED_PREFIX) and len(text) > len(_REVIEWED_PREFIX):
            return cls(StatusKind.REVIEWED, text)
        return cls(StatusKind.OTHER, text)

    @classmethod
    def pending(cls) -> ReviewStatus:
        return cls(StatusKind.PENDING, StatusKind.PENDING.value)

    @classmethod
    def outdated(cls) -> ReviewStatus:
        return cls(StatusKind.OUTDATED, StatusKind.OUTDATED.value)

    @classmethod
    def reviewed(cls, on: str) -> ReviewStatus:
        return cls(StatusKind.REVIEWED, f"{_REVIEWED_PREFIX}{on}")

    @property
    def reviewed_on(self) -> str | None:
        """Date part of ``reviewed@<date>``; None for other kinds."""
        if self.kind is not StatusKind.REVIEWED:
            return None
        return self.text[len(_REVIEWED_PREFIX):]

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class ReviewEntry:
    """Review state for one file path as read from the ledger."""

    hash: str
    status: ReviewStatus
    comments: str = ""


class Outcome(str, Enum):
    NEW = "new"
    UNCHANGED = "unchanged"
    CHANGED = "changed"


@dataclass(frozen=True)
class LedgerSection:
    """One file section of the ledger as it will be written."""

    path: str
    hash: str
    chunk_filename: str
    status: ReviewStatus
    comments: str
    outcome: Outcome


def parse_review(content: str) -> dict[str, ReviewEntry]:
    """Parse a ledger document into ``{path: ReviewEntry}``.

    A section starts at any ``## `` heading other than Guidelines. It only
    counts once both ``meta:hash`` and ``meta:status`` were seen. Comment
    lines are everything after the status line up to the ``---`` separator,
    minus the placeholder.
    """
    entries: dict[str, ReviewEntry] = {}
    path: str | None = None
    hash_: str | None = None
    status: str | None = None
    comments: list[str] = []
    in_comments = False

    def _flush() -> None:
        if path is not None and hash_ is not None and status is not None:
            entries[path] = ReviewEntry(
                hash=hash_,
                status=ReviewStatus.parse(status),
                comments="\n".join(comments).strip(),
            )

    for line in split_lines(content):
        if line.startswith(_HEADING_PREFIX):
            _flush()
            hash_, status, comments, in_comments = None, None, [], False
            if line.rstrip() == GUIDELINES_HEADING:
                path = None
            else:
                path = line[len(_HEADING_PREFIX):].strip() or None
        elif path is None:
            continue
        elif line.startswith(_HASH_PREFIX):
            hash_ = line[len(_HASH_PREFIX):].strip()
        elif line.startswith(_STATUS_PREFIX):
            status = line[len(_STATUS_PREFIX):].strip()
            in_comments = True
        elif line == SECTION_SEPARATOR:
            in_comments = False
        elif in_comments and not line.startswith(_META_PREFIX) and line != PLACEHOLDER:
            comments.append(line)

    _flush()
    return entries


def read_review(review_path: Path) -> dict[str, ReviewEntry]:
    """Read prior review state; missing or undecodable files mean none.

    Other I/O errors (permissions, a directory in the way) propagate.
    """
    try:
        content = review_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except UnicodeDecodeError as exc:
        log.warning("Ignoring unreadable review ledger %s: %s", review_path, exc)
        return {}
    entries = parse_review(content)
    log.debug("Loaded %d review entries from %s", len(entries), review_path)
    return entries


def reconcile(
    previous: dict[str, ReviewEntry],
    chunks: Iterable[WrittenChunk],
) -> list[LedgerSection]:
    """Carry review state forward onto the current chunks, in chunk order.

    Paths present in *previous* but absent from *chunks* are not returned.
    """
    sections: list[LedgerSection] = []
    for chunk in chunks:
        prior = previous.get(chunk.path)
        if prior is None:
            status, comments, outcome = ReviewStatus.pending(), "", Outcome.NEW
        elif prior.hash == chunk.hash:
            status, comments, outcome = prior.status, prior.comments, Outcome.UNCHANGED
        else:
            status, comments, outcome = ReviewStatus.outdated(), prior.comments, Outcome.CHANGED
        sections.append(
            LedgerSection(
                path=chunk.path,
                hash=chunk.hash,
                chunk_filename=chunk.filename,
                status=status,
                comments=comments,
                outcome=outcome,
            )
        )
    return sections


def _get_env() -> Environment:
    """Create a Jinja2 environment loading from diffpod/templates/."""
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def render_review(
    sections: list[LedgerSection],
    chunk_dir: str,
    context: str | None = None,
) -> str:
    """Render the full ledger: guidelines preamble, then one section per file."""
    template = _get_env().get_template("review.md.j2")
    return template.render(
        sections=sections,
        chunk_dir=chunk_dir.rstrip("/"),
        context=context,
        placeholder=PLACEHOLDER,
    )


def write_review(review_path: Path, content: str) -> None:
    """Rewrite the ledger in full with ``\\n`` line endings."""
    review_path.write_text(content, encoding="utf-8", newline="\n")

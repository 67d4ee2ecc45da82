"""diffpod: minimize git diffs for LLM context and track chunked review.

Print mode: :func:`parse_diff` → :func:`minimize_diff`.
Persist mode: :func:`diffpod.save.save_diff_chunks`.
"""

from diffpod.minimize import compact_blank_lines, minimize_diff
from diffpod.parse import ChangeKind, FileChange, ParseResult, parse_diff

__all__ = [
    "ChangeKind",
    "FileChange",
    "ParseResult",
    "compact_blank_lines",
    "minimize_diff",
    "parse_diff",
]

"""Content-analysis classification for pairs that did not merge cleanly."""

import re

from src.conflicts.models import ConflictType

WHITESPACE_PATTERN = re.compile(r'\s+')

# Marker tokens: any of these in merged output means the merge did not resolve
CONFLICT_MARKERS = ("<<<<<<<", "=======", ">>>>>>>")


def has_conflict_markers(text: str) -> bool:
    return any(marker in text for marker in CONFLICT_MARKERS)


def strip_whitespace(text: str) -> str:
    return WHITESPACE_PATTERN.sub("", text)


def strip_comments(text: str) -> str:
    """Drop comment lines and blank lines, trimming the rest."""
    kept = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        kept.append(stripped)
    return "\n".join(kept)


def classify_content(remote_text: str, local_text: str) -> ConflictType:
    """Classify the difference between two versions of a document.

    Checks run in order: whitespace-only, then comments-only, otherwise the
    pair has content changes that need a human decision.
    """
    if strip_whitespace(remote_text) == strip_whitespace(local_text):
        return ConflictType.WHITESPACE_ONLY
    if strip_comments(remote_text) == strip_comments(local_text):
        return ConflictType.COMMENTS_ONLY
    return ConflictType.CONTENT_CHANGES

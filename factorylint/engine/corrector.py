"""
Autocorrection: apply autofix edits to source text.

Edits carry byte offsets into the UTF-8 encoded source, so they are applied
to the encoded buffer, from the end of the file towards the start, and the
result is decoded again.
"""

import difflib
import logging
from typing import Iterable, List

from .errors import EditConflictError
from .types import Edit, Finding

logger = logging.getLogger(__name__)


def _check_bounds(edit: Edit, length: int) -> None:
    if edit.start_byte < 0 or edit.end_byte > length or edit.start_byte > edit.end_byte:
        raise ValueError(f"edit [{edit.start_byte}, {edit.end_byte}) outside buffer of {length} bytes")


def apply_edits(text: str, edits: Iterable[Edit]) -> str:
    """Apply non-overlapping edits to text.

    Raises:
        EditConflictError: If two edits overlap
        ValueError: If an edit lies outside the text
    """
    data = text.encode("utf-8")
    ordered = sorted(edits, key=lambda e: (e.start_byte, e.end_byte))

    for previous, current in zip(ordered, ordered[1:]):
        if current.start_byte < previous.end_byte:
            raise EditConflictError(previous, current)

    for edit in reversed(ordered):
        _check_bounds(edit, len(data))
        data = data[:edit.start_byte] + edit.replacement.encode("utf-8") + data[edit.end_byte:]
    return data.decode("utf-8")


class Corrector:
    """Collects the autofix edits of many findings for one buffer.

    Edits that overlap an already accepted edit are skipped; running the
    engine again on the corrected text picks them up.
    """

    def __init__(self, text: str):
        self.text = text
        self.accepted: List[Edit] = []
        self.skipped: List[Edit] = []

    def add(self, edit: Edit) -> bool:
        """Accept an edit unless it conflicts with one accepted earlier."""
        for other in self.accepted:
            if edit.start_byte < other.end_byte and other.start_byte < edit.end_byte:
                logger.warning("Skipping autofix at byte %d: %s", edit.start_byte, EditConflictError(other, edit))
                self.skipped.append(edit)
                return False
        self.accepted.append(edit)
        return True

    def add_finding(self, finding: Finding) -> int:
        """Add all edits of a finding; returns how many were accepted."""
        return sum(1 for edit in finding.autofix or [] if self.add(edit))

    def corrected(self) -> str:
        """The text with all accepted edits applied."""
        return apply_edits(self.text, self.accepted)


def unified_diff(original: str, corrected: str, path: str) -> str:
    """Render a unified diff between two versions of a file."""
    return "".join(difflib.unified_diff(
        original.splitlines(keepends=True),
        corrected.splitlines(keepends=True),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
    ))

from __future__ import annotations

from collections.abc import Iterable

from phpautofix.engine.types import FileEdit


class EditConflictError(ValueError):
    """Raised when two edits for the same file overlap."""

    def __init__(self, previous: FileEdit, edit: FileEdit) -> None:
        super().__init__(
            f"edit [{edit.replace_start}, {edit.replace_end}) starts before the end of "
            f"edit [{previous.replace_start}, {previous.replace_end})"
        )
        self.previous = previous
        self.edit = edit


class EditRangeError(ValueError):
    """Raised when an edit reaches past the end of the contents it applies to."""


def sort_edits(edits: Iterable[FileEdit]) -> list[FileEdit]:
    return sorted(edits, key=lambda e: (e.replace_start, e.replace_end))


def apply_edits(contents: bytes, edits: Iterable[FileEdit]) -> bytes:
    """
    Delete every edit's byte range from `contents` in a single pass.

    Edits are byte offsets into the original `contents`. Touching edits are
    fine; overlapping edits raise EditConflictError and nothing is applied.
    """

    ordered = sort_edits(edits)
    if not ordered:
        return contents

    size = len(contents)
    chunks: list[bytes] = []
    last_end = 0
    previous: FileEdit | None = None
    for edit in ordered:
        if edit.replace_start < last_end:
            assert previous is not None
            raise EditConflictError(previous, edit)
        if edit.replace_end > size:
            raise EditRangeError(f"edit [{edit.replace_start}, {edit.replace_end}) is past the end ({size} bytes)")
        chunks.append(contents[last_end : edit.replace_start])
        last_end = edit.replace_end
        previous = edit
    chunks.append(contents[last_end:])
    return b"".join(chunks)


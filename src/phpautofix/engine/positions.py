from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterator

from phpautofix.engine.context import SyntaxNode


class PositionIndex:
    """
    Map byte offsets of one exact source string to 1-based line numbers.

    Build a new index for every version of the contents; an index is only
    meaningful against the bytes it was built from.
    """

    __slots__ = ("_line_starts", "_length")

    def __init__(self, contents: bytes) -> None:
        starts = [0]
        pos = contents.find(b"\n")
        while pos != -1:
            starts.append(pos + 1)
            pos = contents.find(b"\n", pos + 1)
        self._line_starts = tuple(starts)
        self._length = len(contents)

    def line_of_offset(self, offset: int) -> int:
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")
        return bisect_right(self._line_starts, min(offset, self._length))

    def line_of(self, node: SyntaxNode) -> int:
        """Return the 1-based line on which `node` starts."""

        return self.line_of_offset(node.start_byte)


def iter_descendants(root: SyntaxNode) -> Iterator[SyntaxNode]:
    """
    Yield every named descendant of `root` (excluding `root`) depth-first, in
    document order.
    """

    stack: list[SyntaxNode] = list(reversed(root.named_children))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.named_children))


def nodes_at_line(
    contents: bytes,
    root: SyntaxNode,
    line: int,
    *,
    positions: PositionIndex | None = None,
) -> Iterator[SyntaxNode]:
    """
    Yield the descendants of `root` that start on the 1-based `line`.

    Start lines are non-decreasing in document order, so the walk stops at
    the first node past `line`. The iterator is single-pass and may be
    abandoned after any item.
    """

    index = positions if positions is not None else PositionIndex(contents)
    for node in iter_descendants(root):
        node_line = index.line_of(node)
        if node_line < line:
            continue
        if node_line > line:
            return
        yield node

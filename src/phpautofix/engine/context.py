from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol


class SyntaxNode(Protocol):
    # The subset of tree-sitter's `Node` the fixers rely on.
    type: str
    is_named: bool
    start_byte: int
    end_byte: int

    @property
    def children(self) -> Sequence[SyntaxNode]: ...

    @property
    def named_children(self) -> Sequence[SyntaxNode]: ...


class SyntaxTree(Protocol):
    # tree-sitter Tree exposes `root_node`; we treat nodes structurally.
    root_node: Any

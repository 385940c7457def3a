from __future__ import annotations

from dataclasses import dataclass

from phpautofix.engine.context import SyntaxNode
from phpautofix.engine.positions import PositionIndex
from phpautofix.engine.tree_sitter import DEFAULT_LANGUAGE, TreeSitterError
from phpautofix.engine.tree_sitter import parse as ts_parse


@dataclass(frozen=True, slots=True)
class ParsedFile:
    path: str
    contents: bytes
    root: SyntaxNode
    positions: PositionIndex

    def text(self, node: SyntaxNode) -> bytes:
        return self.contents[node.start_byte : node.end_byte]


def parse_contents(path: str, contents: bytes, *, language: str = DEFAULT_LANGUAGE) -> ParsedFile:
    """
    Parse `contents` and pair the tree with a position index over the same bytes.

    Raises TreeSitterError if no tree could be produced.
    """

    tree = ts_parse(contents, language=language)
    if tree is None:
        raise TreeSitterError(f"could not parse {path} as {language!r}")
    return ParsedFile(
        path=path,
        contents=contents,
        root=tree.root_node,
        positions=PositionIndex(contents),
    )

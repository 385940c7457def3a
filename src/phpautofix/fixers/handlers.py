from __future__ import annotations

from typing import Protocol

from phpautofix.engine.context import SyntaxNode
from phpautofix.engine.positions import nodes_at_line
from phpautofix.engine.source import ParsedFile
from phpautofix.engine.types import FileEdit, FileEditSet, IssueInstance, IssueKind
from phpautofix.fixers.matchers import USE_DECLARATION, matches_namespace_use_declaration
from phpautofix.logging_utils import NULL_TRACE, Trace


class FixHandler(Protocol):
    """Compute edits for one issue instance in one parsed file."""

    @property
    def kinds(self) -> frozenset[str]: ...

    def compute_edits(
        self,
        parsed: ParsedFile,
        issue: IssueInstance,
        *,
        trace: Trace = NULL_TRACE,
    ) -> FileEditSet | None: ...


def extend_through_line_end(contents: bytes, end: int) -> int:
    """
    Extend a deletion ending at `end` through the following newline when only
    whitespace separates them.

    Only looks forward. `\\r\\n` endings work because `\\r` is whitespace; a
    lone `\\r` is not treated as a line ending.
    """

    newline = contents.find(b"\n", end)
    if newline == -1:
        return end
    if contents[end:newline].strip() == b"":
        return newline + 1
    return end


class UnreferencedUseHandler:
    """Remove a `use` declaration that the analyzer reported as unreferenced."""

    kinds = frozenset(
        {
            IssueKind.UNREFERENCED_USE_NORMAL.value,
            IssueKind.UNREFERENCED_USE_FUNCTION.value,
            IssueKind.UNREFERENCED_USE_CONSTANT.value,
        }
    )

    def compute_edits(
        self,
        parsed: ParsedFile,
        issue: IssueInstance,
        *,
        trace: Trace = NULL_TRACE,
    ) -> FileEditSet | None:
        edits: list[FileEdit] = []
        for candidate in nodes_at_line(parsed.contents, parsed.root, issue.line, positions=parsed.positions):
            trace("Handling %s for %s", candidate.type, issue)
            if candidate.type == USE_DECLARATION:
                edit = self._maybe_remove_declaration(parsed, candidate, issue, trace=trace)
                if edit is not None:
                    edits.append(edit)
                # Only one use declaration can start on a given line.
                break
        if edits:
            return FileEditSet(tuple(edits))
        return None

    @staticmethod
    def _maybe_remove_declaration(
        parsed: ParsedFile,
        declaration: SyntaxNode,
        issue: IssueInstance,
        *,
        trace: Trace,
    ) -> FileEdit | None:
        if not matches_namespace_use_declaration(parsed, declaration, issue, trace=trace):
            return None
        end = extend_through_line_end(parsed.contents, declaration.end_byte)
        return FileEdit(declaration.start_byte, end)

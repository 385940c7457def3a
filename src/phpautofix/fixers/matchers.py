"""
Structural checks that confirm a syntax node is the one an issue refers to.

Matchers are pure predicates. They never raise for unexpected shapes: any
construct they do not understand is a no-match, reported through the trace.
"""

from __future__ import annotations

from phpautofix.engine.context import SyntaxNode
from phpautofix.engine.source import ParsedFile
from phpautofix.engine.types import IssueInstance, IssueKind
from phpautofix.logging_utils import NULL_TRACE, Trace

USE_DECLARATION = "namespace_use_declaration"
USE_CLAUSE = "namespace_use_clause"
USE_GROUP = "namespace_use_group"

_QUALIFIER_TOKENS = frozenset({"function", "const"})
_NAME_TYPES = frozenset({"qualified_name", "name"})

# Qualifier keyword expected after `use` for each unreferenced-use kind.
_EXPECTED_QUALIFIER: dict[IssueKind, str | None] = {
    IssueKind.UNREFERENCED_USE_NORMAL: None,
    IssueKind.UNREFERENCED_USE_FUNCTION: "function",
    IssueKind.UNREFERENCED_USE_CONSTANT: "const",
}


def _leading_qualifier(node: SyntaxNode) -> str | None:
    # Only anonymous tokens ahead of the first named child count.
    for child in node.children:
        if child.is_named:
            break
        if child.type.lower() in _QUALIFIER_TOKENS:
            return child.type.lower()
    return None


def use_qualifier(declaration: SyntaxNode) -> str | None:
    """
    Return `function`, `const` or None for a `use` declaration.

    The grammar attaches the keyword to the declaration in the grouped form
    (`use function A\\{b, c}`) and to the clause in the plain form
    (`use function A\\b`), so both places are checked.
    """

    qualifier = _leading_qualifier(declaration)
    if qualifier is not None:
        return qualifier
    first_clause = next((child for child in declaration.named_children if child.type == USE_CLAUSE), None)
    if first_clause is None:
        return None
    return _leading_qualifier(first_clause)


def qualified_name_to_string(parsed: ParsedFile, name: SyntaxNode) -> str:
    """
    Canonical text of a (qualified) name: its tokens concatenated, skipping
    comments and the whitespace between tokens.
    """

    parts: list[bytes] = []
    stack = [name]
    while stack:
        node = stack.pop()
        if node.type == "comment":
            continue
        children = node.children
        if not children:
            parts.append(parsed.text(node).strip())
            continue
        stack.extend(reversed(children))
    return b"".join(parts).decode("utf-8", errors="replace")


def normalize_fqsen(name: str) -> str:
    return name.strip().lstrip("\\").casefold()


def matches_namespace_use_declaration(
    parsed: ParsedFile,
    declaration: SyntaxNode,
    issue: IssueInstance,
    *,
    trace: Trace = NULL_TRACE,
) -> bool:
    kind = IssueKind.parse(issue.kind)
    if kind is None or kind not in _EXPECTED_QUALIFIER:
        trace("Unexpected kind %s in matches_namespace_use_declaration", issue.kind)
        return False
    expected_qualifier = _EXPECTED_QUALIFIER[kind]

    actual_qualifier = use_qualifier(declaration)
    if actual_qualifier != expected_qualifier:
        trace("Unexpected qualifier %s (expected %s) for %s", actual_qualifier, expected_qualifier, issue)
        return False

    if getattr(declaration, "has_error", False):
        trace("Declaration contains a syntax error for %s", issue)
        return False

    children = declaration.named_children
    if any(child.type == USE_GROUP for child in children):
        trace("Grouped use declarations are not supported for %s", issue)
        return False
    clauses = [child for child in children if child.type == USE_CLAUSE]
    if len(clauses) != 1:
        trace("Unexpected clause count %d for %s", len(clauses), issue)
        return False

    # An alias (`use A\B as C`) does not affect the match.
    name = next((child for child in clauses[0].named_children if child.type in _NAME_TYPES), None)
    if name is None:
        trace("Use clause has no plain name for %s", issue)
        return False

    if len(issue.template_parameters) < 2:
        trace("Missing fully qualified name parameter for %s", issue)
        return False

    actual_name = qualified_name_to_string(parsed, name)
    expected_name = issue.template_parameters[1]
    if normalize_fqsen(actual_name) != normalize_fqsen(expected_name):
        trace("Name %s does not match %s for %s", actual_name, expected_name, issue)
        return False
    return True

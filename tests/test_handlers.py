from __future__ import annotations

import logging

import pytest
from helpers import parse_php, unused_use

from phpautofix.edits import apply_edits
from phpautofix.engine.types import FileEdit, IssueInstance, IssueKind
from phpautofix.fixers.handlers import UnreferencedUseHandler, extend_through_line_end
from phpautofix.logging_utils import Trace


def _fix(source: str, issue: IssueInstance, *, language: str = "php") -> bytes | None:
    parsed = parse_php(source, language=language)
    edit_set = UnreferencedUseHandler().compute_edits(parsed, issue)
    if edit_set is None:
        return None
    return apply_edits(parsed.contents, edit_set.edits)


def test_removes_declaration_and_its_line_ending() -> None:
    parsed = parse_php("<?php\nuse Foo\\Bar;\n")
    edit_set = UnreferencedUseHandler().compute_edits(parsed, unused_use("test.php", 2, "\\Foo\\Bar"))

    assert edit_set is not None
    assert edit_set.edits == (FileEdit(6, 19),)
    assert apply_edits(parsed.contents, edit_set.edits) == b"<?php\n"


def test_keeps_line_ending_when_code_follows() -> None:
    fixed = _fix("<?php\nuse Foo\\Bar; echo 1;\n", unused_use("test.php", 2, "\\Foo\\Bar"))
    assert fixed == b"<?php\n echo 1;\n"


def test_keeps_trailing_comment() -> None:
    fixed = _fix("<?php\nuse Foo\\Bar; // legacy\n", unused_use("test.php", 2, "\\Foo\\Bar"))
    assert fixed == b"<?php\n // legacy\n"


def test_trailing_whitespace_is_removed_with_the_line() -> None:
    fixed = _fix("<?php\nuse Foo\\Bar;  \t\n$x = 1;\n", unused_use("test.php", 2, "\\Foo\\Bar"))
    assert fixed == b"<?php\n$x = 1;\n"


def test_crlf_line_endings() -> None:
    fixed = _fix("<?php\r\nuse Foo\\Bar;\r\n$x = 1;\r\n", unused_use("test.php", 2, "\\Foo\\Bar"))
    assert fixed == b"<?php\r\n$x = 1;\r\n"


def test_declaration_at_end_of_file_without_newline() -> None:
    fixed = _fix("<?php\nuse Foo\\Bar;", unused_use("test.php", 2, "\\Foo\\Bar"))
    assert fixed == b"<?php\n"


def test_bare_php_statements() -> None:
    fixed = _fix("use Foo\\Bar;\n", unused_use("test.php", 1, "\\Foo\\Bar"), language="php_only")
    assert fixed == b""


def test_only_the_reported_line_is_touched() -> None:
    source = "<?php\nnamespace App;\n\nuse Foo\\Bar;\nuse Foo\\Baz;\n\nnew Baz();\n"
    fixed = _fix(source, unused_use("test.php", 4, "\\Foo\\Bar"))
    assert fixed == b"<?php\nnamespace App;\n\nuse Foo\\Baz;\n\nnew Baz();\n"


def test_leading_indentation_is_left_in_place() -> None:
    source = "<?php\nnamespace App {\n    use Foo\\Bar;\n}\n"
    fixed = _fix(source, unused_use("test.php", 3, "\\Foo\\Bar"))
    assert fixed == b"<?php\nnamespace App {\n    }\n"


@pytest.mark.parametrize(
    ("source", "kind", "fqsen"),
    [
        ("<?php\nuse function Foo\\bar;\n", IssueKind.UNREFERENCED_USE_FUNCTION, "\\Foo\\bar"),
        ("<?php\nuse const Foo\\BAR;\n", IssueKind.UNREFERENCED_USE_CONSTANT, "\\Foo\\BAR"),
        ("<?php\nuse Foo\\Bar as Baz;\n", IssueKind.UNREFERENCED_USE_NORMAL, "\\Foo\\Bar"),
    ],
)
def test_removes_each_supported_form(source: str, kind: IssueKind, fqsen: str) -> None:
    assert _fix(source, unused_use("test.php", 2, fqsen, kind=kind)) == b"<?php\n"


@pytest.mark.parametrize(
    ("source", "line", "fqsen"),
    [
        ("<?php\nuse Foo\\Bar;\n", 2, "\\Foo\\Baz"),
        ("<?php\nuse Foo\\Bar;\n", 3, "\\Foo\\Bar"),
        ("<?php\nuse Foo\\{Bar, Baz};\n", 2, "\\Foo\\Bar"),
        ("<?php\nuse Foo\\Bar, Foo\\Baz;\n", 2, "\\Foo\\Bar"),
        ("<?php\n$x = 1;\n", 2, "\\Foo\\Bar"),
    ],
)
def test_no_edit_when_declaration_does_not_match(source: str, line: int, fqsen: str) -> None:
    parsed = parse_php(source)
    assert UnreferencedUseHandler().compute_edits(parsed, unused_use("test.php", line, fqsen)) is None


def test_trace_reports_visited_nodes(caplog: pytest.LogCaptureFixture) -> None:
    parsed = parse_php("<?php\nuse Foo\\Bar;\n")
    with caplog.at_level(logging.DEBUG, logger="phpautofix.trace"):
        UnreferencedUseHandler().compute_edits(parsed, unused_use("test.php", 2, "\\Foo\\Bar"), trace=Trace(True))
    assert "Handling namespace_use_declaration for test.php:2" in caplog.text


def test_handler_kinds() -> None:
    assert UnreferencedUseHandler.kinds == {k.value for k in IssueKind}


@pytest.mark.parametrize(
    ("contents", "end", "expected"),
    [
        (b"abc\ndef", 3, 4),
        (b"abc  \ndef", 3, 6),
        (b"abc \r\ndef", 3, 6),
        (b"abc x\ndef", 3, 3),
        (b"abc", 3, 3),
        (b"abc  ", 3, 3),
    ],
)
def test_extend_through_line_end(contents: bytes, end: int, expected: int) -> None:
    assert extend_through_line_end(contents, end) == expected


def test_function_import_is_kept_for_a_class_import_issue() -> None:
    parsed = parse_php("<?php\nuse function Foo\\bar;\n")
    handler = UnreferencedUseHandler()

    assert handler.compute_edits(parsed, unused_use("test.php", 2, "\\Foo\\bar")) is None
    edit_set = handler.compute_edits(
        parsed, unused_use("test.php", 2, "\\Foo\\bar", kind=IssueKind.UNREFERENCED_USE_FUNCTION)
    )
    assert edit_set is not None
    assert apply_edits(parsed.contents, edit_set.edits) == b"<?php\n"

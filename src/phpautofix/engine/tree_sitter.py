from __future__ import annotations

import threading
from collections.abc import Callable
from functools import lru_cache
from typing import Protocol, cast

import tree_sitter
import tree_sitter_php

from phpautofix.engine.context import SyntaxTree


class _ParserLike(Protocol):
    def parse(self, source: bytes) -> object: ...


# Grammar entry points shipped by `tree-sitter-php`. "php" accepts a full file
# (inline HTML + `<?php` tags); "php_only" parses bare PHP statements.
_LANGUAGE_FACTORIES: dict[str, Callable[[], object]] = {
    "php": tree_sitter_php.language_php,
    "php_only": tree_sitter_php.language_php_only,
}

DEFAULT_LANGUAGE = "php"

# Exposed for tests and for light monkeypatching in downstream tooling.
Parser: Callable[[object], _ParserLike] = cast(Callable[[object], _ParserLike], tree_sitter.Parser)


def get_language(name: str) -> object:
    factory = _LANGUAGE_FACTORIES.get(name)
    if factory is None:
        raise KeyError(name)
    return tree_sitter.Language(factory())


class TreeSitterError(RuntimeError):
    """Raised when tree-sitter cannot load the PHP grammar or parse source."""


@lru_cache(maxsize=8)
def _get_language(language: str) -> object:
    try:
        return get_language(language)
    except (AttributeError, KeyError, ValueError, TypeError) as exc:
        raise TreeSitterError(f"tree-sitter language not available: {language!r}") from exc


_PARSER_LOCAL = threading.local()


def _get_parser(language: str) -> _ParserLike:
    """
    Return a per-thread Parser instance for the requested language.

    tree-sitter Parser objects are not thread-safe; sharing a single cached
    Parser across fix workers can lead to crashes or corrupted parse output.
    """

    parsers: dict[str, _ParserLike] | None = getattr(_PARSER_LOCAL, "parsers", None)
    if parsers is None:
        parsers = {}
        _PARSER_LOCAL.parsers = parsers

    parser = parsers.get(language)
    if parser is not None:
        return parser

    parser = Parser(_get_language(language))
    parsers[language] = parser
    return parser


def parse(source: bytes, *, language: str = DEFAULT_LANGUAGE) -> SyntaxTree | None:
    """
    Parse PHP source bytes with tree-sitter.

    tree-sitter recovers from syntax errors on its own, so a tree comes back
    for any input. Returns None only if the grammar cannot be loaded or the
    binding fails unexpectedly.
    """

    try:
        parser = _get_parser(language)
        tree = parser.parse(source)
        return cast(SyntaxTree, tree)
    except (TreeSitterError, ValueError, TypeError, RuntimeError):
        return None

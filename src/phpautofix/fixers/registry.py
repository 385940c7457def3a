from __future__ import annotations

from collections.abc import Iterable, Mapping
from functools import lru_cache
from types import MappingProxyType

from phpautofix.engine.types import IssueKind
from phpautofix.fixers.handlers import FixHandler, UnreferencedUseHandler

_EXTRA_HANDLERS: tuple[FixHandler, ...] = ()
_EXTRA_GENERATION = 0


@lru_cache(maxsize=1)
def builtin_handlers() -> tuple[FixHandler, ...]:
    return (UnreferencedUseHandler(),)


def canonical_kind(kind: str) -> str:
    """Canonical spelling of an issue type identifier (`PhanUnreferencedUseNormal`)."""

    resolved = IssueKind.parse(kind)
    if resolved is not None:
        return resolved.value
    return kind.strip()


def _index_by_kind(handlers: Iterable[FixHandler]) -> dict[str, FixHandler]:
    by_kind: dict[str, FixHandler] = {}
    for handler in handlers:
        for kind in handler.kinds:
            key = canonical_kind(kind)
            if key in by_kind:
                raise RuntimeError(f"Duplicate fix handler for issue kind: {key}")
            by_kind[key] = handler
    return by_kind


def set_extra_handlers(handlers: Iterable[FixHandler]) -> None:
    """
    Register extra fix handlers for this process.

    Extra handlers may not claim an issue kind that a built-in handler
    already fixes.
    """

    global _EXTRA_HANDLERS, _EXTRA_GENERATION  # noqa: PLW0603

    extra = tuple(handlers)
    builtin_kinds = set(_index_by_kind(builtin_handlers()))
    for kind in _index_by_kind(extra):
        if kind in builtin_kinds:
            raise RuntimeError(f"Extra fix handler conflicts with built-in handler for: {kind}")

    _EXTRA_HANDLERS = extra
    _EXTRA_GENERATION += 1


def all_handlers() -> tuple[FixHandler, ...]:
    return builtin_handlers() + _EXTRA_HANDLERS


def handlers_by_kind() -> Mapping[str, FixHandler]:
    return _handlers_by_kind(_EXTRA_GENERATION)


@lru_cache(maxsize=4)
def _handlers_by_kind(extra_generation: int) -> Mapping[str, FixHandler]:
    _ = extra_generation
    return MappingProxyType(_index_by_kind(all_handlers()))


def handler_for(kind: str) -> FixHandler | None:
    return handlers_by_kind().get(canonical_kind(kind))


def fixable_kinds() -> tuple[str, ...]:
    return tuple(sorted(handlers_by_kind()))

from __future__ import annotations

import difflib
import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from phpautofix.cache import FileCache, FileCacheError
from phpautofix.config import FixerConfig
from phpautofix.edits import EditConflictError, EditRangeError, apply_edits, sort_edits
from phpautofix.engine.source import ParsedFile, parse_contents
from phpautofix.engine.tree_sitter import TreeSitterError
from phpautofix.engine.types import FileEdit, FileEditSet, IssueInstance
from phpautofix.fixers.handlers import FixHandler
from phpautofix.fixers.registry import canonical_kind, handlers_by_kind
from phpautofix.logging_utils import Trace

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".phpautofix.bak"


class FixOutcome(str, Enum):
    NO_CHANGE = "no-change"
    APPLIED = "applied"
    CONFLICT = "conflict"
    LOAD_ERROR = "load-error"
    PARSE_ERROR = "parse-error"
    MISSING_TARGET = "missing-target"
    WRITE_ERROR = "write-error"


FAILED_OUTCOMES = frozenset(
    {
        FixOutcome.CONFLICT,
        FixOutcome.LOAD_ERROR,
        FixOutcome.PARSE_ERROR,
        FixOutcome.MISSING_TARGET,
        FixOutcome.WRITE_ERROR,
    }
)


@dataclass(frozen=True, slots=True)
class BoundFixer:
    """A fix handler bound to the one issue instance it should fix."""

    handler: FixHandler
    issue: IssueInstance

    def __call__(self, parsed: ParsedFile, *, trace: Trace) -> FileEditSet | None:
        trace("Calling for %s", self.issue)
        return self.handler.compute_edits(parsed, self.issue, trace=trace)


@dataclass(frozen=True, slots=True)
class FileComputation:
    outcome: FixOutcome
    edits: tuple[FileEdit, ...] = ()
    new_contents: bytes | None = None
    message: str | None = None


@dataclass(frozen=True, slots=True)
class FileFixResult:
    path: str
    absolute_path: Path
    outcome: FixOutcome
    edits: tuple[FileEdit, ...] = ()
    diff: str = ""
    written: bool = False
    message: str | None = None

    @property
    def changed(self) -> bool:
        return self.outcome is FixOutcome.APPLIED


@dataclass(frozen=True, slots=True)
class AutoFixResult:
    file_results: tuple[FileFixResult, ...]

    @property
    def changed_files(self) -> tuple[Path, ...]:
        return tuple(fr.absolute_path for fr in self.file_results if fr.changed)

    @property
    def diff(self) -> str:
        chunks = [fr.diff for fr in self.file_results if fr.diff]
        return "".join(chunks)

    @property
    def has_failures(self) -> bool:
        return any(fr.outcome in FAILED_OUTCOMES for fr in self.file_results)

    def count(self, outcome: FixOutcome) -> int:
        return sum(1 for fr in self.file_results if fr.outcome is outcome)


class IssueFixer:
    """
    Apply automatic fixes for analyzer issues, one file at a time.

    Each file is loaded, parsed and rewritten independently; any failure is
    logged and confined to that file.
    """

    def __init__(
        self,
        config: FixerConfig,
        *,
        cache: FileCache | None = None,
        handlers: Mapping[str, FixHandler] | None = None,
    ) -> None:
        self.config = config
        self.cache = cache if cache is not None else FileCache(config)
        self._handlers = handlers if handlers is not None else handlers_by_kind()
        self._disabled = {canonical_kind(k) for k in config.disabled_kinds}
        self.trace = Trace(config.debug)

    def fixers_for_instances(self, issues: Iterable[IssueInstance]) -> dict[str, list[BoundFixer]]:
        """
        Group fixable issues by file, binding each to its handler.

        Files are identified by their resolved path, so `a.php` and `./a.php`
        share one group, keyed by the spelling seen first. Files keep the
        order in which they first appear. Issues of kinds with no registered
        handler are skipped.
        """

        spellings: dict[Path, str] = {}
        fixers_for_files: dict[str, list[BoundFixer]] = {}
        for issue in issues:
            kind = canonical_kind(issue.kind)
            handler = None if kind in self._disabled else self._handlers.get(kind)
            self.trace("Found handler for %s: %s", issue.kind, handler is not None)
            if handler is None:
                continue
            key = spellings.setdefault(self.config.project_path(issue.file), issue.file)
            fixers_for_files.setdefault(key, []).append(BoundFixer(handler=handler, issue=issue))
        return fixers_for_files

    def compute_new_content_for_fixers(
        self,
        path: str,
        contents: bytes,
        fixers: Iterable[BoundFixer],
    ) -> FileComputation:
        """
        Run `fixers` against `contents` and merge their edits.

        Raises TreeSitterError if the contents cannot be parsed at all.
        """

        parsed = parse_contents(path, contents)

        all_edits: list[FileEdit] = []
        for fix in fixers:
            edit_set = fix(parsed, trace=self.trace)
            if edit_set is not None:
                all_edits.extend(edit_set.edits)
        if not all_edits:
            self.trace("Cannot create any automatic fixes for %s", path)
            return FileComputation(outcome=FixOutcome.NO_CHANGE)

        ordered = tuple(sort_edits(all_edits))
        self.trace("Going to apply these fixes for %s: %s", path, [(e.replace_start, e.replace_end) for e in ordered])
        try:
            new_contents = apply_edits(contents, ordered)
        except (EditConflictError, EditRangeError) as exc:
            return FileComputation(outcome=FixOutcome.CONFLICT, edits=ordered, message=str(exc))

        if new_contents == contents:
            return FileComputation(outcome=FixOutcome.NO_CHANGE, edits=ordered)
        return FileComputation(outcome=FixOutcome.APPLIED, edits=ordered, new_contents=new_contents)

    def fix_file(self, path: str, fixers: list[BoundFixer]) -> FileFixResult:
        absolute_path = self.config.project_path(path)

        try:
            entry = self.cache.get_or_read_entry(path)
        except FileCacheError as exc:
            logger.warning("Could not automatically fix %s: could not read contents: %s", path, exc)
            return FileFixResult(path=path, absolute_path=absolute_path, outcome=FixOutcome.LOAD_ERROR, message=str(exc))
        contents = entry.contents

        try:
            computation = self.compute_new_content_for_fixers(path, contents, fixers)
        except TreeSitterError as exc:
            logger.warning("Could not automatically fix %s: %s", path, exc)
            return FileFixResult(path=path, absolute_path=absolute_path, outcome=FixOutcome.PARSE_ERROR, message=str(exc))

        if computation.outcome is FixOutcome.CONFLICT:
            logger.warning("Giving up on %s: %s", path, computation.message)
            return FileFixResult(
                path=path,
                absolute_path=absolute_path,
                outcome=FixOutcome.CONFLICT,
                edits=computation.edits,
                message=computation.message,
            )
        if computation.new_contents is None:
            return FileFixResult(path=path, absolute_path=absolute_path, outcome=FixOutcome.NO_CHANGE, edits=computation.edits)

        new_contents = computation.new_contents
        diff = _unified_diff(contents, new_contents, path=path)
        if self.config.dry_run:
            return FileFixResult(
                path=path,
                absolute_path=absolute_path,
                outcome=FixOutcome.APPLIED,
                edits=computation.edits,
                diff=diff,
            )

        if not self.config.target_exists(path):
            message = f"expected {absolute_path} to exist already"
            logger.warning("Giving up on saving changes to %s: %s", path, message)
            return FileFixResult(
                path=path,
                absolute_path=absolute_path,
                outcome=FixOutcome.MISSING_TARGET,
                edits=computation.edits,
                message=message,
            )

        try:
            if self.config.backup:
                backup_path = absolute_path.with_name(absolute_path.name + BACKUP_SUFFIX)
                if not backup_path.exists():
                    backup_path.write_bytes(contents)
            absolute_path.write_bytes(new_contents)
        except OSError as exc:
            # The file may be partially written; drop what we know about it.
            self.cache.invalidate(path)
            logger.warning("Giving up on saving changes to %s: %s", path, exc)
            return FileFixResult(
                path=path,
                absolute_path=absolute_path,
                outcome=FixOutcome.WRITE_ERROR,
                edits=computation.edits,
                diff=diff,
                message=str(exc),
            )
        self.cache.put(path, new_contents)
        logger.debug(
            "Applied %d edit(s) to %s, removing %d byte(s)",
            len(computation.edits),
            path,
            sum(edit.length for edit in computation.edits),
        )

        return FileFixResult(
            path=path,
            absolute_path=absolute_path,
            outcome=FixOutcome.APPLIED,
            edits=computation.edits,
            diff=diff,
            written=True,
        )

    def apply_fixes(self, issues: Iterable[IssueInstance]) -> AutoFixResult:
        """
        Apply fixes where possible for every issue in `issues`.

        Result order follows the order in which files first appear, whatever
        the worker count.
        """

        fixers_for_files = self.fixers_for_instances(issues)
        items = list(fixers_for_files.items())
        workers = min(max(1, self.config.workers), len(items)) if items else 1

        if workers <= 1:
            results = [self.fix_file(path, fixers) for path, fixers in items]
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                results = list(executor.map(lambda item: self.fix_file(*item), items))

        hits, misses = self.cache.stats()
        logger.debug("cache: %d hit(s), %d miss(es)", hits, misses)
        return AutoFixResult(file_results=tuple(results))


def apply_fixes(issues: Iterable[IssueInstance], config: FixerConfig | None = None) -> AutoFixResult:
    return IssueFixer(config if config is not None else FixerConfig()).apply_fixes(issues)


def _split_lines(text: str) -> list[str]:
    # Only `\n` ends a line; `\r` stays part of the line it belongs to.
    lines = [line + "\n" for line in text.split("\n")]
    lines[-1] = lines[-1][:-1]
    if not lines[-1]:
        lines.pop()
    return lines


def _unified_diff(before: bytes, after: bytes, *, path: str) -> str:
    if before == after:
        return ""
    diff = difflib.unified_diff(
        _split_lines(before.decode("utf-8", errors="replace")),
        _split_lines(after.decode("utf-8", errors="replace")),
        fromfile=path,
        tofile=path,
    )
    out: list[str] = []
    for line in diff:
        out.append(line)
        if not line.endswith("\n"):
            out.append("\n\\ No newline at end of file\n")
    return "".join(out)

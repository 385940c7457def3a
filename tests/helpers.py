from __future__ import annotations

from pathlib import Path

from phpautofix.engine.source import ParsedFile, parse_contents
from phpautofix.engine.types import IssueInstance, IssueKind


def write_php(root: Path, relpath: str, content: str) -> Path:
    path = root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content.encode("utf-8"))
    return path


def parse_php(content: str, *, path: str = "test.php", language: str = "php") -> ParsedFile:
    return parse_contents(path, content.encode("utf-8"), language=language)


def unused_use(
    file: str,
    line: int,
    fqsen: str,
    *,
    kind: IssueKind = IssueKind.UNREFERENCED_USE_NORMAL,
) -> IssueInstance:
    short_name = fqsen.rsplit("\\", 1)[-1]
    return IssueInstance(kind=kind.value, file=file, line=line, template_parameters=(short_name, fqsen))

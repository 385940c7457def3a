"""
Load issue instances from analyzer reports.

Two entry shapes are accepted, in a bare JSON list or under an `issues` key:

* native entries::

    {"kind": "PhanUnreferencedUseNormal", "file": "src/a.php", "line": 3,
     "template_parameters": ["Bar", "\\\\Foo\\\\Bar"]}

* entries from Phan's `--output-mode json`, where the template parameters are
  recovered from the trailing `NAME (FQSEN)` of the description::

    {"type": "issue", "check_name": "PhanUnreferencedUseNormal",
     "description": "UnusedCode PhanUnreferencedUseNormal Possibly zero references to use statement for classlike/namespace Bar (\\\\Foo\\\\Bar)",
     "location": {"path": "src/a.php", "lines": {"begin": 3, "end": 3}}}
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from phpautofix.engine.types import IssueInstance


class IssueReportError(ValueError):
    """Raised when an issue report cannot be parsed."""


_TRAILING_NAME_RE = re.compile(r"(?P<name>[^\s()]+)\s+\((?P<fqsen>[^\s()]+)\)\s*$")


def template_parameters_from_description(description: str) -> tuple[str, ...]:
    match = _TRAILING_NAME_RE.search(description)
    if match is None:
        return ()
    return (match.group("name"), match.group("fqsen"))


def load_issue_report(path: Path) -> list[IssueInstance]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise IssueReportError(f"could not read {path}: {exc}") from exc
    return parse_issue_report(raw)


def parse_issue_report(raw: str) -> list[IssueInstance]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise IssueReportError(f"invalid JSON: {exc}") from exc

    if isinstance(data, dict):
        data = data.get("issues")
    if not isinstance(data, list):
        raise IssueReportError("expected a list of issues or an object with an `issues` list")

    issues: list[IssueInstance] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise IssueReportError(f"issue #{index} must be an object")
        if "check_name" in entry:
            issues.append(_parse_phan_entry(entry, index=index))
        else:
            issues.append(_parse_native_entry(entry, index=index))
    return issues


def _parse_native_entry(entry: dict[str, Any], *, index: int) -> IssueInstance:
    kind = entry.get("kind", entry.get("type"))
    file = entry.get("file")
    line = entry.get("line")
    params = entry.get("template_parameters", [])
    description = entry.get("description")

    if not isinstance(kind, str) or not kind.strip():
        raise IssueReportError(f"issue #{index}: `kind` must be a non-empty string")
    file, line = _check_location(file, line, index=index)
    if not isinstance(params, list) or any(not isinstance(p, str) for p in params):
        raise IssueReportError(f"issue #{index}: `template_parameters` must be a list of strings")
    if description is not None and not isinstance(description, str):
        raise IssueReportError(f"issue #{index}: `description` must be a string")

    if not params and description:
        params = list(template_parameters_from_description(description))

    return IssueInstance(
        kind=kind.strip(),
        file=file,
        line=line,
        template_parameters=tuple(params),
        description=description,
    )


def _parse_phan_entry(entry: dict[str, Any], *, index: int) -> IssueInstance:
    kind = entry.get("check_name")
    description = entry.get("description", "")
    location = entry.get("location")

    if not isinstance(kind, str) or not kind.strip():
        raise IssueReportError(f"issue #{index}: `check_name` must be a non-empty string")
    if not isinstance(description, str):
        raise IssueReportError(f"issue #{index}: `description` must be a string")
    if not isinstance(location, dict):
        raise IssueReportError(f"issue #{index}: `location` must be an object")
    lines = location.get("lines")
    file = location.get("path")
    line = lines.get("begin") if isinstance(lines, dict) else None
    file, line = _check_location(file, line, index=index)

    return IssueInstance(
        kind=kind.strip(),
        file=file,
        line=line,
        template_parameters=template_parameters_from_description(description),
        description=description,
    )


def _check_location(file: object, line: object, *, index: int) -> tuple[str, int]:
    if not isinstance(file, str) or not file.strip():
        raise IssueReportError(f"issue #{index}: file path must be a non-empty string")
    if not isinstance(line, int) or isinstance(line, bool) or line < 1:
        raise IssueReportError(f"issue #{index}: line must be a positive integer")
    return file, line

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class IssueKind(str, Enum):
    UNREFERENCED_USE_NORMAL = "PhanUnreferencedUseNormal"
    UNREFERENCED_USE_FUNCTION = "PhanUnreferencedUseFunction"
    UNREFERENCED_USE_CONSTANT = "PhanUnreferencedUseConstant"

    @classmethod
    def parse(cls, value: str) -> IssueKind | None:
        """
        Resolve an issue type identifier as reported by the analyzer.

        The `Phan` prefix is optional and matching is case-insensitive.
        Unknown identifiers return None.
        """

        normalized = value.strip().lower()
        if not normalized:
            return None
        if not normalized.startswith("phan"):
            normalized = "phan" + normalized
        for kind in cls:
            if kind.value.lower() == normalized:
                return kind
        return None


@dataclass(frozen=True, slots=True)
class IssueInstance:
    kind: str
    file: str
    line: int  # 1-based
    template_parameters: tuple[str, ...] = ()
    description: str | None = None

    def __str__(self) -> str:
        return f"{self.file}:{self.line} {self.kind}"


@dataclass(frozen=True, slots=True, order=True)
class FileEdit:
    """
    Delete the half-open byte range [replace_start, replace_end) of the
    original file contents. Nothing is inserted.
    """

    replace_start: int
    replace_end: int

    def __post_init__(self) -> None:
        if self.replace_start < 0:
            raise ValueError(f"replace_start must be non-negative, got {self.replace_start}")
        if self.replace_end < self.replace_start:
            raise ValueError(
                f"replace_end ({self.replace_end}) must not precede replace_start ({self.replace_start})"
            )

    @property
    def length(self) -> int:
        return self.replace_end - self.replace_start


@dataclass(frozen=True, slots=True)
class FileEditSet:
    edits: tuple[FileEdit, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.edits)

    def __len__(self) -> int:
        return len(self.edits)

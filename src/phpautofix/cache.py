from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from hashlib import sha256
from pathlib import Path

from phpautofix.config import FixerConfig


class FileCacheError(RuntimeError):
    """Raised when a source file cannot be read."""


def file_content_hash(contents: bytes) -> str:
    return sha256(contents).hexdigest()


@dataclass(frozen=True, slots=True)
class FileCacheEntry:
    path: Path
    contents: bytes
    content_hash: str


class FileCache:
    """
    Bounded, thread-safe cache of raw file contents keyed by absolute path.

    Contents are kept as bytes so edit offsets stay byte-exact.
    """

    def __init__(self, config: FixerConfig, *, max_entries: int | None = None) -> None:
        self._config = config
        self._max_entries = max(1, max_entries if max_entries is not None else config.cache_max_entries)
        self._lock = threading.Lock()
        self._entries: OrderedDict[Path, FileCacheEntry] = OrderedDict()
        self._hits = 0
        self._misses = 0

    def get_or_read_entry(self, path: str | Path) -> FileCacheEntry:
        absolute = self._config.project_path(path)
        with self._lock:
            entry = self._entries.get(absolute)
            if entry is not None:
                self._entries.move_to_end(absolute)
                self._hits += 1
                return entry
            self._misses += 1

        try:
            contents = absolute.read_bytes()
        except OSError as exc:
            raise FileCacheError(f"could not read {absolute}: {exc}") from exc

        return self.put(absolute, contents)

    def put(self, path: str | Path, contents: bytes) -> FileCacheEntry:
        absolute = self._config.project_path(path)
        entry = FileCacheEntry(path=absolute, contents=contents, content_hash=file_content_hash(contents))
        with self._lock:
            self._entries[absolute] = entry
            self._entries.move_to_end(absolute)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)
        return entry

    def invalidate(self, path: str | Path) -> None:
        absolute = self._config.project_path(path)
        with self._lock:
            self._entries.pop(absolute, None)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        absolute = self._config.project_path(path)
        with self._lock:
            return absolute in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> tuple[int, int]:
        """
        Return (hits, misses) observed during this process run.

        Intended for verbose logging.
        """

        with self._lock:
            return int(self._hits), int(self._misses)

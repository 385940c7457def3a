from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

DEBUG_ENV = "PHPAUTOFIX_DEBUG_AUTOMATIC_FIX"
WORKERS_ENV = "PHPAUTOFIX_WORKERS"
CONFIG_FILENAME = ".phpautofix.toml"

DEFAULT_WORKERS = 1
DEFAULT_MAX_WORKERS = 32
DEFAULT_CACHE_MAX_ENTRIES = 64


class ConfigError(ValueError):
    """Raised when a phpautofix configuration file is invalid."""


@dataclass(frozen=True, slots=True)
class FixerConfig:
    project_root: Path = Path(".")
    debug: bool = False
    workers: int = DEFAULT_WORKERS
    backup: bool = False
    dry_run: bool = False
    disabled_kinds: tuple[str, ...] = ()
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES

    def project_path(self, relative: str | Path) -> Path:
        """
        Resolve a file name as reported by the analyzer to an absolute path.

        Absolute paths are returned unchanged; anything else is relative to
        the project root.
        """

        path = Path(relative)
        if path.is_absolute():
            return path
        return (self.project_root / path).absolute()

    def target_exists(self, relative: str | Path) -> bool:
        return self.project_path(relative).is_file()


def resolve_worker_count(
    raw_value: str | None,
    *,
    default: int = DEFAULT_WORKERS,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> int:
    """
    Resolve a safe worker count from an env var-style string.

    - None/""/"default" fall back to the default
    - "auto" uses twice the CPU count
    - Values <= 0 fall back to the default
    - Values above `max_workers` are clamped
    """

    resolved_default = max(1, default)
    if raw_value is None:
        return min(resolved_default, max_workers)

    normalized = raw_value.strip().lower()
    if normalized == "auto":
        return min(max(1, (os.cpu_count() or 1) * 2), max_workers)
    if not normalized or normalized == "default":
        return min(resolved_default, max_workers)

    try:
        workers = int(normalized)
    except ValueError:
        return min(resolved_default, max_workers)

    if workers <= 0:
        return min(resolved_default, max_workers)
    return min(workers, max_workers)


def _env_flag(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() not in {"", "0", "false", "no", "off"}


def load_config(project_dir: Path | str = ".", *, environ: Mapping[str, str] | None = None) -> FixerConfig:
    """
    Load configuration for the project rooted at `project_dir`.

    Settings come from `[tool.phpautofix]` in `pyproject.toml` and from the
    top-level table of `.phpautofix.toml` (which wins). The debug toggle and
    the worker count may also be set from the environment; the environment
    is read here once, never by the fixers themselves.
    """

    env = os.environ if environ is None else environ
    project_root = Path(project_dir).absolute()

    table: dict[str, Any] = {}
    table.update(_read_pyproject_table(project_root / "pyproject.toml"))
    table.update(_read_toml(project_root / CONFIG_FILENAME))

    config = _parse_table(table, project_root=project_root)

    if _env_flag(env.get(DEBUG_ENV)):
        config = replace(config, debug=True)
    raw_workers = env.get(WORKERS_ENV)
    if raw_workers is not None:
        config = replace(config, workers=resolve_worker_count(raw_workers, default=config.workers))
    return config


def _read_toml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Could not read {path}: {exc}") from exc


def _read_pyproject_table(path: Path) -> dict[str, Any]:
    data = _read_toml(path)
    tool_table = data.get("tool", {})
    if not isinstance(tool_table, dict):
        return {}
    table = tool_table.get("phpautofix", {})
    if not isinstance(table, dict):
        raise ConfigError("`tool.phpautofix` must be a table.")
    return table


def _parse_table(table: dict[str, Any], *, project_root: Path) -> FixerConfig:
    debug = table.get("debug", False)
    if not isinstance(debug, bool):
        raise ConfigError("`phpautofix.debug` must be a boolean.")

    workers = table.get("workers", DEFAULT_WORKERS)
    if isinstance(workers, str):
        workers = resolve_worker_count(workers)
    if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
        raise ConfigError("`phpautofix.workers` must be a positive integer or \"auto\".")
    workers = min(workers, DEFAULT_MAX_WORKERS)

    backup = table.get("backup", False)
    if not isinstance(backup, bool):
        raise ConfigError("`phpautofix.backup` must be a boolean.")

    disabled = table.get("disable", table.get("disabled_kinds", []))
    if not isinstance(disabled, list) or any(not isinstance(v, str) for v in disabled):
        raise ConfigError("`phpautofix.disable` must be a list of strings.")

    cache_max_entries = table.get("cache_max_entries", table.get("cache-max-entries", DEFAULT_CACHE_MAX_ENTRIES))
    if not isinstance(cache_max_entries, int) or isinstance(cache_max_entries, bool) or cache_max_entries < 1:
        raise ConfigError("`phpautofix.cache_max_entries` must be a positive integer.")

    return FixerConfig(
        project_root=project_root,
        debug=debug,
        workers=workers,
        backup=backup,
        disabled_kinds=tuple(v.strip() for v in disabled if v.strip()),
        cache_max_entries=cache_max_entries,
    )

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from phpautofix.config import FixerConfig
from phpautofix.fixers.registry import set_extra_handlers


@pytest.fixture()
def config(tmp_path: Path) -> FixerConfig:
    return FixerConfig(project_root=tmp_path)


@pytest.fixture(autouse=True)
def _reset_extra_handlers() -> Iterator[None]:
    set_extra_handlers([])
    yield
    set_extra_handlers([])

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
from support import Layout


@pytest.fixture
def layout(tmp_path: Path) -> Layout:
    return Layout.create(tmp_path)


@pytest.fixture(autouse=True)
def _restore_library_log_level() -> Iterator[None]:
    """`Project(log_level=...)` sets the level on the shared library logger."""
    logger = logging.getLogger("script_helper")
    level = logger.level
    yield
    logger.setLevel(level)

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from taskboard.board import Board
from taskboard.stores import Store


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in ("TASKBOARD_DB_PATH", "TASKBOARD_ENV", "TASKBOARD_OUTPUT"):
        monkeypatch.delenv(name, raising=False)
    yield
    # cli.main() installs handlers bound to the captured stderr of one test.
    for name in ("taskboard", "py.warnings"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
    logging.captureWarnings(False)


@pytest.fixture
def store(tmp_path: Path) -> Iterator[Store]:
    opened = Store.open(tmp_path / "data.db")
    yield opened
    opened.close()


@pytest.fixture
def board(tmp_path: Path) -> Iterator[Board]:
    opened = Board.open(tmp_path / "board.db")
    yield opened
    opened.close()

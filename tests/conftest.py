"""Shared pytest fixtures for OverTimer tests."""

import logging
import os
import sys

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt6.QtWidgets import QApplication

from overtimer.database.db import configure_engine, init_db
from overtimer.log import ROOT_LOGGER
from overtimer.timer.engine import TimingEngine

from helpers import FakeClock


@pytest.fixture(scope="session")
def qapp():
    """A single QApplication instance shared across the entire test run."""
    app = QApplication.instance() or QApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def test_db():
    """Point every test at a fresh in-memory SQLite database."""
    configure_engine("sqlite:///:memory:")
    init_db()
    yield


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(qapp, clock):
    """TimingEngine on a fake clock: target 300 s, pre-alert 10 s."""
    eng = TimingEngine(clock=clock.monotonic, wall_clock=clock.wall)
    eng.set_target(300, 10)
    return eng


@pytest.fixture
def isolated_logging(tmp_path, monkeypatch):
    """Send configure_logging() output to tmp_path and undo it afterwards."""
    monkeypatch.setattr("overtimer.log.LOG_DIR", tmp_path / "logs")
    yield tmp_path / "logs"
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)

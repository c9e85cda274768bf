import logging

import pytest

from src.logger import LOGGER


@pytest.fixture(autouse=True)
def _propagate_package_logger(monkeypatch):
    """Let `caplog` see every record of the package logger."""
    level = LOGGER.level
    monkeypatch.setattr(LOGGER, "propagate", True)
    LOGGER.setLevel(logging.DEBUG)
    yield
    LOGGER.setLevel(level)

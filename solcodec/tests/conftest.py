from __future__ import annotations

import logging

import pytest

from solcodec.config import load_config
from solcodec.logging import ROOT_LOGGER, clear_context


@pytest.fixture(autouse=True)
def _fresh_config():
    """Configuration is cached per process; rebuild it around every test."""
    load_config.cache_clear()
    yield
    load_config.cache_clear()


@pytest.fixture
def env(monkeypatch):
    """Set SOLCODEC_* variables and drop the cached config."""

    def _set(**values: str) -> None:
        for k, v in values.items():
            monkeypatch.setenv(k, v)
        load_config.cache_clear()

    return _set


@pytest.fixture
def restore_logging():
    logger = logging.getLogger(ROOT_LOGGER)
    handlers, level = list(logger.handlers), logger.level
    yield logger
    for h in list(logger.handlers):
        logger.removeHandler(h)
    for h in handlers:
        logger.addHandler(h)
    logger.setLevel(level)
    clear_context()

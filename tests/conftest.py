"""Shared fixtures for offline queue tests."""

import logging

import pytest

from cropdoc.config import get_settings
from tests.helpers import StubProcessor


@pytest.fixture
def stub_processor():
    return StubProcessor()


@pytest.fixture
def restore_logging():
    """Keep setup_logging() calls from leaking handlers across tests."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def settings_env(tmp_path, monkeypatch):
    """Point settings at a temporary data directory."""
    monkeypatch.setenv("CROPDOC_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("CROPDOC_SIMULATE_REMOTE", "true")
    monkeypatch.setenv("CROPDOC_SIMULATE_DELAY", "0")
    monkeypatch.setenv("CROPDOC_LOG_LEVEL", "ERROR")
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()

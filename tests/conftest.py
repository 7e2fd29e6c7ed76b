"""Pytest configuration for all tests."""

import pytest

from entitykit.core.config import get_settings


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Drop cached settings so environment patches take effect per test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()

"""
Pytest configuration and shared fixtures for the aire test suite.
"""

from datetime import datetime

import pytest

from aire.alerts.store import InMemoryAlertStore


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def now():
    """A fixed evaluation time so dedup windows are deterministic."""
    return datetime(2025, 6, 1, 12, 0, 0)


@pytest.fixture
def store():
    """An empty in-memory alert store."""
    return InMemoryAlertStore()

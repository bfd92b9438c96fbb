"""
Pytest configuration and shared fixtures for the test suite.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from evtc_analytics.config.settings import ParserSettings
from tests.evtc_builder import EVTCBuilder, build_raid_log


@pytest.fixture
def builder():
    """A fresh log builder."""
    return EVTCBuilder()


@pytest.fixture
def raid_log_bytes():
    """Bytes of a successful Vale Guardian log."""
    return build_raid_log()


@pytest.fixture
def settings():
    """Default parser settings."""
    return ParserSettings()


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as a full pipeline test")

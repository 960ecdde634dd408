"""
Root conftest.py - Global fixtures and configuration for all test layers.

Test Layers:
    - component/ : Component tests (service classes with in-memory repositories)
    - unit/      : Unit tests (pure functions, no I/O)
    - contracts/ : Test data factories shared by the layers
"""
import os
import sys

import pytest

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

# Set testing environment BEFORE any service imports
os.environ.setdefault("ENV", "testing")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ["NATS_ENABLED"] = "false"


def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line("markers", "unit: pure function tests")
    config.addinivalue_line("markers", "component: service tests with mocked dependencies")


# =============================================================================
# Test Configuration
# =============================================================================


class TestConfig:
    """Service ports used across test layers"""

    MEMBERSHIP_PORT = 8241
    CREDIT_PORT = 8242
    SERVICE_REQUEST_PORT = 8243
    BOOKING_PORT = 8244


@pytest.fixture(scope="session")
def test_config() -> TestConfig:
    return TestConfig()

import pytest
from typer.testing import CliRunner
from unittest.mock import MagicMock

from castkit.domain.interfaces.user_interface import UserInterface
from castkit.infrastructure.config.settings import clear_test_config, reset_configuration


class FakeClock:
    """Manually advanced time source for cache, limiter and token tests."""

    def __init__(self, start=1_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, amount):
        self.now += amount


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()

@pytest.fixture
def clock():
    """Clock in seconds starting at an arbitrary monotonic reading."""
    return FakeClock()

@pytest.fixture
def ms_clock():
    """Clock in milliseconds since the epoch (14 Nov 2023)."""
    return FakeClock(start=1_700_000_000_000)

@pytest.fixture
def mock_ui():
    return MagicMock(spec=UserInterface)

@pytest.fixture(autouse=True)
def clean_config():
    """Each test starts without loaded or injected configuration."""
    clear_test_config()
    reset_configuration()
    yield
    clear_test_config()
    reset_configuration()

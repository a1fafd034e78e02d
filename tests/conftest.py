"""
Pytest fixtures for powermon tests.

Usage:
    async def test_transition(mock_source, recording_runner, powermon_config):
        session = MonitorSession(powermon_config, mock_source, recording_runner)
        await session.start()
"""

import logging

import pytest

from powermon.config import PowermonConfig
from powermon.logging_config import ROOT_LOGGER_NAME
from powermon.types import PowerState
from tests.mocks.mock_power_source import (
    MockPowerSource,
    MockSessionNameClaim,
    RecordingActionRunner,
)


@pytest.fixture
def powermon_config() -> PowermonConfig:
    """Config with a fixed action path."""
    return PowermonConfig(action="/usr/local/bin/on-power-change")


@pytest.fixture
def mock_source() -> MockPowerSource:
    """Power source that starts on AC power."""
    return MockPowerSource(initial=PowerState.AC_POWER)


@pytest.fixture
def recording_runner() -> RecordingActionRunner:
    return RecordingActionRunner()


@pytest.fixture
def mock_claim() -> MockSessionNameClaim:
    return MockSessionNameClaim()


@pytest.fixture(autouse=True)
def reset_powermon_logger():
    """Let caplog see powermon records and undo setup_logging() between tests."""
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    yield
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(logging.NOTSET)
    root_logger.propagate = True

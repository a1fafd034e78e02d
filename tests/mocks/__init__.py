"""Mock collaborators for powermon tests."""

from tests.mocks.mock_power_source import (
    MockNotificationStream,
    MockPowerSource,
    MockSessionNameClaim,
    RecordingActionRunner,
)

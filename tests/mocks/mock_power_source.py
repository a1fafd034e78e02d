"""
powermon Mock Power Source for Testing

Provides an in-memory stand-in for UPower so the monitor core can be
exercised without a D-Bus system bus.
"""

import asyncio
from typing import Any, List, Optional

from powermon.action_runner import ActionResult, ActionRunner
from powermon.types import NotificationEvent, PowerState


class MockNotificationStream:
    """
    Queue backed notification stream.

    Usage:
        stream = MockNotificationStream()
        stream.emit(OnBattery=False)
        stream.emit(LidIsClosed=True)
        event = await stream.next_event()
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False
        self.close_calls = 0

    def emit(self, **properties: Any) -> NotificationEvent:
        """Queue a PropertiesChanged event with the given properties."""
        event = NotificationEvent(
            properties=properties,
            interface="org.freedesktop.UPower",
            sender=":1.7",
            object_path="/org/freedesktop/UPower",
        )
        self._queue.put_nowait(event)
        return event

    def end(self):
        """Simulate the stream ending underneath the consumer."""
        self._queue.put_nowait(None)

    async def next_event(self) -> Optional[NotificationEvent]:
        if self.closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self):
        self.close_calls += 1
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(None)


class MockPowerSource:
    """
    Mock power state source.

    Args:
        initial: State returned by query_current()
        fail_subscribe: Raise this exception from subscribe()
    """

    def __init__(
        self,
        initial: PowerState = PowerState.AC_POWER,
        fail_subscribe: Optional[Exception] = None,
    ):
        self.initial = initial
        self.fail_subscribe = fail_subscribe
        self.stream = MockNotificationStream()
        self.connected = False
        self.connect_calls = 0
        self.query_calls = 0
        self.subscribe_calls = 0
        self.close_calls = 0

    def connect(self):
        self.connect_calls += 1
        self.connected = True

    def query_current(self) -> PowerState:
        self.query_calls += 1
        return self.initial

    def subscribe(self) -> MockNotificationStream:
        self.subscribe_calls += 1
        if self.fail_subscribe is not None:
            raise self.fail_subscribe
        return self.stream

    def close(self):
        self.close_calls += 1
        self.connected = False


class RecordingActionRunner(ActionRunner):
    """
    Action runner that records states instead of spawning processes.

    Args:
        fail_states: States for which the run reports a non-zero exit
        delay: Seconds each run takes, to simulate a slow action
    """

    def __init__(
        self,
        command: str = "/usr/local/bin/on-power-change",
        fail_states: Optional[List[PowerState]] = None,
        delay: float = 0.0,
    ):
        super().__init__(command)
        self.fail_states = fail_states or []
        self.delay = delay
        self.states: List[PowerState] = []
        self.ran = asyncio.Event()

    async def run(self, state: PowerState) -> ActionResult:
        self.run_count += 1
        self.states.append(state)
        if self.delay:
            await asyncio.sleep(self.delay)
        self.ran.set()
        if state in self.fail_states:
            return ActionResult(
                command=self.command,
                state=state,
                returncode=1,
                output="boom\n",
                error="exit status 1",
            )
        return ActionResult(command=self.command, state=state, returncode=0)


class MockSessionNameClaim:
    """Single-instance claim that can be told to fail."""

    def __init__(self, name: str = "org.powermon.Powermon", fail: Optional[Exception] = None):
        self.name = name
        self.fail = fail
        self.acquired = False
        self.release_calls = 0

    def acquire(self):
        if self.fail is not None:
            raise self.fail
        self.acquired = True

    def release(self):
        self.release_calls += 1
        self.acquired = False

"""
Notification dispatch loop.

Waits on the notification stream and a shutdown request at the same
time, handles one notification fully (including the action run) before
looking at the next, and tears the subscription down before telling the
shutdown initiator it is done.

    RUNNING --shutdown requested / stream ended--> SHUTTING_DOWN --> STOPPED
"""

import asyncio
from typing import Callable, Optional

from powermon.action_runner import ActionRunner
from powermon.logging_config import get_logger
from powermon.state_machine import PowerStateMachine
from powermon.types import LoopState, NotificationEvent, NotificationStream

logger = get_logger(__name__)


class ShutdownHandshake:
    """One-shot shutdown request plus a completion acknowledgement.

    The initiator calls ``request()`` (or awaits ``request_and_wait()``);
    the loop calls ``acknowledge()`` once teardown has finished.
    """

    def __init__(self):
        self._requested = asyncio.Event()
        self._completed = asyncio.Event()

    @property
    def requested(self) -> bool:
        return self._requested.is_set()

    @property
    def completed(self) -> bool:
        return self._completed.is_set()

    def request(self) -> None:
        self._requested.set()

    async def wait_requested(self) -> None:
        await self._requested.wait()

    def acknowledge(self) -> None:
        self._completed.set()

    async def request_and_wait(self) -> None:
        """Request shutdown and block until the loop has torn down."""
        self.request()
        await self._completed.wait()


class EventLoop:
    """Dispatches power notifications to the state machine and action.

    Args:
        stream: Notification stream to consume
        machine: State machine holding the current power state
        runner: Action runner invoked on confirmed transitions
        handshake: Shutdown handshake shared with the initiator
        on_teardown: Called once after the stream is closed, before the
                     shutdown is acknowledged (closes bus connections)
    """

    def __init__(
        self,
        stream: NotificationStream,
        machine: PowerStateMachine,
        runner: ActionRunner,
        handshake: Optional[ShutdownHandshake] = None,
        on_teardown: Optional[Callable[[], None]] = None,
    ):
        self._stream = stream
        self._machine = machine
        self._runner = runner
        self._handshake = handshake or ShutdownHandshake()
        self._on_teardown = on_teardown
        self._state = LoopState.RUNNING
        self._started = False
        self.events_received = 0
        self.events_ignored = 0

    @property
    def state(self) -> LoopState:
        """Current loop lifecycle state."""
        return self._state

    @property
    def handshake(self) -> ShutdownHandshake:
        return self._handshake

    async def run(self) -> None:
        """Process notifications until shutdown is requested."""
        if self._state is LoopState.STOPPED:
            return
        self._started = True
        shutdown_wait = asyncio.ensure_future(self._handshake.wait_requested())
        next_event: Optional[asyncio.Future] = None
        logger.info("polling...")

        try:
            while True:
                next_event = asyncio.ensure_future(self._stream.next_event())
                done, _ = await asyncio.wait(
                    {next_event, shutdown_wait},
                    return_when=asyncio.FIRST_COMPLETED,
                )

                # A notification racing the shutdown request is dropped
                if shutdown_wait in done:
                    next_event.cancel()
                    logger.info("shutting down main loop")
                    break

                event = next_event.result()
                if event is None:
                    logger.warning("notification stream closed, stopping main loop")
                    break

                await self._dispatch(event)
        finally:
            for pending in (next_event, shutdown_wait):
                if pending is not None and not pending.done():
                    pending.cancel()
            self._teardown()

    async def _dispatch(self, event: NotificationEvent) -> None:
        self.events_received += 1

        new_state = self._machine.classify(event)
        if new_state is None:
            self.events_ignored += 1
            return

        if self._machine.apply(new_state):
            await self._runner.run(new_state)
        else:
            logger.debug(f"power state unchanged: {new_state}")

    def _teardown(self) -> None:
        if self._state is LoopState.STOPPED:
            return
        self._state = LoopState.SHUTTING_DOWN
        try:
            self._stream.close()
            if self._on_teardown is not None:
                self._on_teardown()
        finally:
            self._state = LoopState.STOPPED
            self._handshake.acknowledge()

    async def shutdown(self) -> None:
        """Request shutdown and wait until teardown has finished.

        Returns immediately if the loop has already stopped. If run() has
        not started yet, teardown happens here instead.
        """
        if not self._started:
            self._handshake.request()
            self._teardown()
            return
        await self._handshake.request_and_wait()

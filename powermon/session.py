"""
Monitor session.

One MonitorSession is one live monitor: it reads the boot-time power
state, runs the action for it, subscribes to changes and then hands
control to the EventLoop until shutdown.
"""

from typing import Any, Dict, Optional

from powermon.action_runner import ActionRunner
from powermon.config import PowermonConfig
from powermon.event_loop import EventLoop, ShutdownHandshake
from powermon.logging_config import get_logger
from powermon.state_machine import PowerStateMachine
from powermon.types import LoopState, NotificationStream, PowerState, PowerStateSource

logger = get_logger(__name__)


class MonitorSession:
    """
    Power source monitor.

    Usage:
        session = MonitorSession(config, source=UPowerSource())
        await session.start()
        task = asyncio.create_task(session.run())
        ...
        await session.shutdown()   # returns once teardown has finished
    """

    def __init__(
        self,
        config: PowermonConfig,
        source: PowerStateSource,
        runner: Optional[ActionRunner] = None,
    ):
        """
        Args:
            config: Validated configuration; its action is already expanded
            source: Power state source (UPower in production)
            runner: Action runner, built from config.action if omitted
        """
        self.config = config
        self._source = source
        self._runner = runner or ActionRunner(config.action)
        self._machine = PowerStateMachine()
        self._handshake = ShutdownHandshake()
        self._stream: Optional[NotificationStream] = None
        self._loop: Optional[EventLoop] = None

    @property
    def state(self) -> PowerState:
        """Current power state."""
        return self._machine.state

    @property
    def action(self) -> str:
        return self._runner.command

    @property
    def loop_state(self) -> Optional[LoopState]:
        """Event loop state, None before start()."""
        return self._loop.state if self._loop else None

    @property
    def subscription(self) -> Optional[NotificationStream]:
        return self._stream

    async def start(self) -> None:
        """
        Establish the initial state and subscribe.

        The action always runs once here so it sees the boot-time state,
        even though nothing has transitioned yet.

        Raises:
            SetupError: If the change subscription cannot be established
        """
        initial = self._source.query_current()
        self._machine.apply(initial)
        await self._runner.run(initial)

        self._stream = self._source.subscribe()
        self._loop = EventLoop(
            stream=self._stream,
            machine=self._machine,
            runner=self._runner,
            handshake=self._handshake,
            on_teardown=self._source.close,
        )

    async def run(self) -> None:
        """Run the event loop until shutdown. Requires start()."""
        if self._loop is None:
            raise RuntimeError("MonitorSession.run() called before start()")
        await self._loop.run()

    async def shutdown(self) -> None:
        """
        Stop the monitor and wait for teardown to complete.

        Safe to call more than once, and before run() has been scheduled.
        If the session never started, the power source is closed directly.
        """
        if self._loop is None:
            self._source.close()
            return
        await self._loop.shutdown()

    def request_shutdown(self) -> None:
        """Signal shutdown without waiting, e.g. from a signal handler."""
        self._handshake.request()

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot for logging."""
        return {
            "state": str(self.state),
            "action": self.action,
            "loop_state": self.loop_state.value if self.loop_state else None,
            "actions_run": self._runner.run_count,
            "events_received": self._loop.events_received if self._loop else 0,
            "events_ignored": self._loop.events_ignored if self._loop else 0,
        }

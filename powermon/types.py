"""
powermon Shared Type Definitions

Data structures and protocols shared by the monitor core and the
services that feed it.

Usage:
    from powermon.types import PowerState, NotificationEvent
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable


# =============================================================================
# Power State
# =============================================================================

class PowerState(Enum):
    """Power source of the host.

    The value doubles as the argument handed to the action command.
    """
    UNKNOWN = "UNKNOWN"
    ON_BATTERY = "ON_BATTERY"
    AC_POWER = "AC_POWER"

    def __str__(self) -> str:
        return self.value


def state_from_on_battery(value: Any) -> PowerState:
    """Map an ``OnBattery`` property value to a PowerState.

    Only real booleans are trusted; anything else is UNKNOWN.
    """
    if value is True:
        return PowerState.ON_BATTERY
    if value is False:
        return PowerState.AC_POWER
    return PowerState.UNKNOWN


class LoopState(Enum):
    """Event loop lifecycle states."""
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


# =============================================================================
# Notifications
# =============================================================================

@dataclass(frozen=True)
class NotificationEvent:
    """A PropertiesChanged payload from the power service.

    Attributes:
        properties: Changed property names mapped to their new values.
            May include properties unrelated to the power source.
        interface: Interface whose properties changed
        invalidated: Property names invalidated without a value
        sender: Bus name of the emitting connection
        object_path: Object path of the emitter
        received_at: Local receive time
    """
    properties: dict[str, Any]
    interface: str = ""
    invalidated: tuple[str, ...] = ()
    sender: Optional[str] = None
    object_path: Optional[str] = None
    received_at: datetime = field(default_factory=datetime.now)


# =============================================================================
# Protocols
# =============================================================================

@runtime_checkable
class NotificationStream(Protocol):
    """Lazy, non-restartable sequence of notification events."""

    async def next_event(self) -> Optional[NotificationEvent]:
        """Wait for the next event; None once the stream is closed."""
        ...

    def close(self) -> None:
        """Tear down the subscription. Idempotent."""
        ...


@runtime_checkable
class PowerStateSource(Protocol):
    """Something that can report and stream the host power state."""

    def query_current(self) -> PowerState:
        ...

    def subscribe(self) -> NotificationStream:
        ...

    def close(self) -> None:
        ...

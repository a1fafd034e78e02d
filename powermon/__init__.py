"""
powermon - run an action when the host's power source changes

Watches UPower on the D-Bus system bus and runs a configured command with
the new state (UNKNOWN, ON_BATTERY or AC_POWER) as its argument: once at
startup, then on every transition between battery and mains power.
"""

__version__ = "0.1.0"

VERSION_INFO = (0, 1, 0)

from powermon.exceptions import PowermonError
from powermon.types import NotificationEvent, PowerState

__all__ = [
    "__version__",
    "VERSION_INFO",
    "PowermonError",
    "NotificationEvent",
    "PowerState",
]

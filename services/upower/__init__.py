"""UPower power source service."""

from services.upower.upower_source import (
    PROPERTIES_CHANGED,
    PROPERTIES_INTERFACE,
    UPOWER_BUS_NAME,
    UPOWER_OBJECT_PATH,
    GLibLoopThread,
    UPowerNotificationStream,
    UPowerSource,
)

__all__ = [
    "PROPERTIES_CHANGED",
    "PROPERTIES_INTERFACE",
    "UPOWER_BUS_NAME",
    "UPOWER_OBJECT_PATH",
    "GLibLoopThread",
    "UPowerNotificationStream",
    "UPowerSource",
]

"""
powermon UPower Service
Power source state from the D-Bus system bus

UPower exposes a boolean ``OnBattery`` property on its root object and
emits org.freedesktop.DBus.Properties.PropertiesChanged whenever any of
its properties change (lid state included). The subscription is scoped to
UPower's object path, the Properties interface and UPower as sender.

D-Bus signals are dispatched by a GLib main loop on a background thread
and handed over to the asyncio loop with call_soon_threadsafe.
"""

import asyncio
import logging
import threading
from typing import Any, Callable, Optional

from gi.repository import GLib
from pydbus import SystemBus

from powermon.exceptions import BusConnectionError, SubscriptionError
from powermon.types import NotificationEvent, PowerState, state_from_on_battery

logger = logging.getLogger("powermon.services.upower")

UPOWER_BUS_NAME = "org.freedesktop.UPower"
UPOWER_OBJECT_PATH = "/org/freedesktop/UPower"
PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"
PROPERTIES_CHANGED = "PropertiesChanged"


# =============================================================================
# GLIB DISPATCH THREAD
# =============================================================================

class GLibLoopThread:
    """Runs a GLib main loop on a daemon thread so D-Bus callbacks fire."""

    def __init__(self):
        self._main_loop: Optional[GLib.MainLoop] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._main_loop = GLib.MainLoop()
        self._thread = threading.Thread(
            target=self._main_loop.run,
            name="powermon-glib",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 2.0):
        if self._main_loop is not None:
            self._main_loop.quit()
        if self._thread is not None:
            self._thread.join(timeout)
        self._main_loop = None
        self._thread = None


# =============================================================================
# NOTIFICATION STREAM
# =============================================================================

class UPowerNotificationStream:
    """
    Async stream of UPower PropertiesChanged notifications.

    Not restartable: once closed, next_event() returns None.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, dispatcher: GLibLoopThread):
        self._loop = loop
        self._dispatcher = dispatcher
        self._queue: asyncio.Queue = asyncio.Queue()
        self._subscription = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def attach(self, subscription):
        """Take ownership of the pydbus subscription handle."""
        self._subscription = subscription

    def on_signal(self, sender: str, object_path: str, iface: str, signal: str, params: Any):
        """pydbus signal_fired callback. Runs on the GLib thread."""
        try:
            interface, changed, invalidated = params
        except (TypeError, ValueError):
            logger.debug(f"unexpected {signal} payload from {sender}: {params!r}")
            return

        event = NotificationEvent(
            properties=dict(changed),
            interface=interface,
            invalidated=tuple(invalidated),
            sender=sender,
            object_path=object_path,
        )
        try:
            self._loop.call_soon_threadsafe(self._deliver, event)
        except RuntimeError:
            # asyncio loop already closed
            pass

    def _deliver(self, event: Optional[NotificationEvent]):
        if not self._closed or event is None:
            self._queue.put_nowait(event)

    async def next_event(self) -> Optional[NotificationEvent]:
        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self):
        """Unsubscribe and stop the GLib dispatcher. Idempotent."""
        if self._closed:
            return
        self._closed = True

        if self._subscription is not None:
            try:
                self._subscription.unsubscribe()
            except Exception as e:
                logger.warning(f"Failed to unsubscribe from {UPOWER_BUS_NAME}: {e}")
            self._subscription = None

        self._dispatcher.stop()
        # Wake any waiter
        self._queue.put_nowait(None)
        logger.debug("UPower subscription closed")


# =============================================================================
# UPOWER SOURCE
# =============================================================================

class UPowerSource:
    """
    Reads and streams the host power state from UPower.

    Usage:
        source = UPowerSource()
        source.connect()
        state = source.query_current()
        stream = source.subscribe()
        event = await stream.next_event()
        ...
        stream.close()
        source.close()
    """

    def __init__(self, bus_factory: Callable[[], Any] = SystemBus):
        """
        Args:
            bus_factory: Returns a connected pydbus bus (SystemBus by default)
        """
        self._bus_factory = bus_factory
        self._bus = None

    @property
    def connected(self) -> bool:
        return self._bus is not None

    def connect(self):
        """
        Connect to the system bus.

        Raises:
            BusConnectionError: If the bus is unreachable
        """
        if self._bus is not None:
            return
        try:
            self._bus = self._bus_factory()
        except (GLib.Error, RuntimeError) as e:
            raise BusConnectionError(f"system bus connect failed: {e}", bus="system") from e
        logger.debug("Connected to system bus")

    def query_current(self) -> PowerState:
        """
        Read UPower's OnBattery property.

        Failure is not fatal: it is logged and UNKNOWN is returned.
        """
        if self._bus is None:
            logger.warning("failed to get battery state: not connected to system bus")
            return PowerState.UNKNOWN

        try:
            upower = self._bus.get(UPOWER_BUS_NAME, UPOWER_OBJECT_PATH)
            value = upower.OnBattery
        except Exception as e:
            logger.warning(f"failed to get battery state: {e}")
            return PowerState.UNKNOWN

        return state_from_on_battery(value)

    def subscribe(self) -> UPowerNotificationStream:
        """
        Subscribe to UPower property changes.

        Must be called from the running asyncio loop.

        Raises:
            SubscriptionError: If the signal match cannot be installed
        """
        if self._bus is None:
            raise SubscriptionError(
                "couldn't setup signal listener: not connected to system bus",
                sender=UPOWER_BUS_NAME,
                object_path=UPOWER_OBJECT_PATH,
            )

        dispatcher = GLibLoopThread()
        stream = UPowerNotificationStream(asyncio.get_running_loop(), dispatcher)
        try:
            subscription = self._bus.subscribe(
                sender=UPOWER_BUS_NAME,
                iface=PROPERTIES_INTERFACE,
                signal=PROPERTIES_CHANGED,
                object=UPOWER_OBJECT_PATH,
                signal_fired=stream.on_signal,
            )
        except Exception as e:
            raise SubscriptionError(
                f"couldn't setup signal listener: {e}",
                sender=UPOWER_BUS_NAME,
                object_path=UPOWER_OBJECT_PATH,
            ) from e

        stream.attach(subscription)
        dispatcher.start()
        logger.debug(f"Subscribed to {PROPERTIES_CHANGED} on {UPOWER_OBJECT_PATH}")
        return stream

    def close(self):
        """Close the system bus connection. Idempotent."""
        if self._bus is None:
            return
        try:
            self._bus.con.close_sync(None)
        except Exception as e:
            logger.warning(f"Error closing system bus: {e}")
        self._bus = None
        logger.debug("Disconnected from system bus")

"""
powermon Single Instance Lock
Exclusive well-known name on the D-Bus session bus

The name is requested without queueing and without allowing replacement,
so a second monitor in the same login session fails fast instead of
waiting for the first one to exit.
"""

import logging
from typing import Any, Callable, Optional

from gi.repository import GLib
from pydbus import SessionBus

from powermon.exceptions import BusConnectionError, RegistrationError

logger = logging.getLogger("powermon.services.instance_lock")


class SessionNameClaim:
    """
    Acquire-or-fail ownership of a session bus name.

    Usage:
        claim = SessionNameClaim("org.powermon.Powermon")
        claim.acquire()      # raises RegistrationError if already owned
        ...
        claim.release()

    Also usable as a context manager.
    """

    def __init__(self, name: str, bus_factory: Callable[[], Any] = SessionBus):
        """
        Args:
            name: Well-known bus name to own
            bus_factory: Returns a connected pydbus bus (SessionBus by default)
        """
        self.name = name
        self._bus_factory = bus_factory
        self._bus = None
        self._owner = None

    @property
    def acquired(self) -> bool:
        return self._owner is not None

    def acquire(self):
        """
        Claim the name.

        Raises:
            BusConnectionError: Session bus unreachable
            RegistrationError: Name already owned (another instance running)
        """
        if self._owner is not None:
            return

        if self._bus is None:
            try:
                self._bus = self._bus_factory()
            except (GLib.Error, RuntimeError) as e:
                raise BusConnectionError(f"session bus connect failed: {e}", bus="session") from e

        try:
            self._owner = self._bus.request_name(self.name, allow_replacement=False, replace=False)
        except (GLib.Error, RuntimeError) as e:
            self._close_bus()
            raise RegistrationError(
                f"not the primary owner of {self.name}, is another instance running? ({e})",
                name=self.name,
            ) from e

        logger.debug(f"Acquired session bus name {self.name}")

    def release(self):
        """Give the name back and close the session bus. Idempotent."""
        if self._owner is not None:
            try:
                self._owner.unown()
            except Exception as e:
                logger.warning(f"Failed to release {self.name}: {e}")
            self._owner = None
            logger.debug(f"Released session bus name {self.name}")
        self._close_bus()

    def _close_bus(self):
        if self._bus is None:
            return
        try:
            self._bus.con.close_sync(None)
        except Exception as e:
            logger.warning(f"Error closing session bus: {e}")
        self._bus = None

    def __enter__(self) -> "SessionNameClaim":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.release()

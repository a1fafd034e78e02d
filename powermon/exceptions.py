"""
powermon Custom Exceptions

Provides the exception hierarchy for the power source monitor. Only
configuration problems and fatal startup failures are raised; runtime
failures (power state reads, action runs) are logged where they happen
and never propagate.

Exception Hierarchy:
    PowermonError (base)
    ├── ConfigurationError
    └── SetupError
        ├── BusConnectionError
        ├── RegistrationError
        └── SubscriptionError
"""

from typing import Any, Optional


class PowermonError(Exception):
    """Base exception for all powermon errors.

    Attributes:
        message: Human-readable error description
        details: Optional dict with additional error context
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(PowermonError):
    """Error in configuration file, environment or command line.

    Raised when configuration validation fails, the file is missing or
    unreadable, or a required setting (such as the action) is absent.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_file: Optional[str] = None,
    ) -> None:
        details = {}
        if config_key:
            details["config_key"] = config_key
        if config_file:
            details["config_file"] = config_file
        super().__init__(message, details)
        self.config_key = config_key
        self.config_file = config_file


# =============================================================================
# Startup Errors
# =============================================================================

class SetupError(PowermonError):
    """Base class for fatal startup failures.

    Any SetupError aborts the monitor with a non-zero exit status.
    """
    pass


class BusConnectionError(SetupError):
    """Failed to connect to a D-Bus message bus."""

    def __init__(self, message: str, bus: Optional[str] = None) -> None:
        details = {}
        if bus:
            details["bus"] = bus
        super().__init__(message, details)
        self.bus = bus


class RegistrationError(SetupError):
    """Could not claim the single-instance name.

    Usually means another monitor is already running in this session.
    """

    def __init__(self, message: str, name: Optional[str] = None) -> None:
        details = {}
        if name:
            details["name"] = name
        super().__init__(message, details)
        self.name = name


class SubscriptionError(SetupError):
    """Could not set up the power change signal subscription."""

    def __init__(
        self,
        message: str,
        sender: Optional[str] = None,
        object_path: Optional[str] = None,
    ) -> None:
        details = {}
        if sender:
            details["sender"] = sender
        if object_path:
            details["object_path"] = object_path
        super().__init__(message, details)
        self.sender = sender
        self.object_path = object_path

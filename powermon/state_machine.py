"""
Power state tracking.

UPower multiplexes every property change (lid, battery, power source)
onto one PropertiesChanged signal, so each notification is classified
first and only those carrying ``OnBattery`` can move the state.
"""

from typing import Optional

from powermon.logging_config import get_logger
from powermon.types import NotificationEvent, PowerState, state_from_on_battery

logger = get_logger(__name__)

ON_BATTERY_PROPERTY = "OnBattery"


class PowerStateMachine:
    """Holds the current power state and decides what counts as a change.

    Usage:
        machine = PowerStateMachine(PowerState.AC_POWER)
        new_state = machine.classify(event)
        if new_state is not None and machine.apply(new_state):
            ...  # run the action
    """

    def __init__(self, initial: PowerState = PowerState.UNKNOWN):
        self._state = initial

    @property
    def state(self) -> PowerState:
        """Current power state."""
        return self._state

    def classify(self, event: NotificationEvent) -> Optional[PowerState]:
        """Map a notification to a PowerState.

        Returns:
            None if the event does not carry the on-battery property and
            must be ignored. Otherwise ON_BATTERY for True, AC_POWER for
            False and UNKNOWN for any other encoding.
        """
        if ON_BATTERY_PROPERTY not in event.properties:
            logger.debug(f"ignoring notification without {ON_BATTERY_PROPERTY}: "
                         f"{sorted(event.properties)}")
            return None
        return state_from_on_battery(event.properties[ON_BATTERY_PROPERTY])

    def apply(self, new_state: PowerState) -> bool:
        """Overwrite the current state.

        Returns:
            True if the state differs from the previous value
        """
        previous = self._state
        self._state = new_state
        return new_state != previous

"""
powermon Services Package

Collaborators the monitor core talks to over D-Bus:

UPower (services.upower)
------------------------
- UPowerSource: OnBattery reads and PropertiesChanged subscription

Instance Lock (services.instance_lock)
--------------------------------------
- SessionNameClaim: exclusive well-known name on the session bus
"""

"""
Device Module
=============

Provider interfaces and the ADB device adapter.

This package contains:
    - providers: Abstract observation, automation, notification,
      preference and alert interfaces
    - adb_device: ADB-backed observation and automation provider
"""

from phone_agent.device.adb_device import ADBDevice
from phone_agent.device.providers import (
    AlertSink,
    AutomationProvider,
    LoggingAlertSink,
    NotificationSource,
    ObservationProvider,
    PreferenceSource,
)

__all__ = [
    "ADBDevice",
    "AlertSink",
    "AutomationProvider",
    "LoggingAlertSink",
    "NotificationSource",
    "ObservationProvider",
    "PreferenceSource",
]

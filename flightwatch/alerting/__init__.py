"""
Audible alerting for realtime monitoring.

Components:
    throttle: AlertThrottle enforcing a cooldown between alerts
    sound: AlertSound protocol and sink implementations

Example:
    >>> from flightwatch.alerting import AlertThrottle, AlertSink, create_alert_sound
    >>> throttle = AlertThrottle(create_alert_sound(AlertSink.BELL), cooldown_seconds=10)
"""

from flightwatch.alerting.sound import (
    AlertSink,
    AlertSound,
    SilentSound,
    TerminalBellSound,
    ToneSound,
    create_alert_sound,
)
from flightwatch.alerting.throttle import AlertThrottle, DEFAULT_COOLDOWN_SECONDS

__all__ = [
    # Throttle
    "AlertThrottle",
    "DEFAULT_COOLDOWN_SECONDS",
    # Sinks
    "AlertSink",
    "AlertSound",
    "SilentSound",
    "TerminalBellSound",
    "ToneSound",
    "create_alert_sound",
]

"""
Alert throttle for realtime anomaly arrivals.

The realtime poller reports every batch of genuinely new anomalies. The
throttle turns those reports into audible alerts while enforcing a minimum
silence interval, so a burst of arrivals never produces more than one sound
per cooldown window.

Alerting is fire-and-forget. A failing sink is logged and otherwise
ignored; it never reaches the polling loop.

Example:
    >>> throttle = AlertThrottle(sound=TerminalBellSound(), cooldown_seconds=10)
    >>> throttle.on_new_records(3)
    True
    >>> throttle.on_new_records(1)  # within cooldown
    False
"""

import time
from typing import Callable, Optional

import structlog

from flightwatch.alerting.sound import AlertSound

logger = structlog.get_logger(__name__)


# Default minimum seconds between two audible alerts
DEFAULT_COOLDOWN_SECONDS = 10.0


class AlertThrottle:
    """
    Rate-limits audible alerts.

    Attributes:
        cooldown_seconds: Minimum seconds between two alerts.
        enabled: Whether alerts are sounded at all.
        last_sound_time: Clock reading of the last alert, None before the
            first one.
        fired_count: Alerts triggered so far.
        suppressed_count: Reports swallowed by the cooldown.
    """

    def __init__(
        self,
        sound: AlertSound,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the throttle.

        Args:
            sound: Sink the alert is played on.
            cooldown_seconds: Minimum seconds between two alerts.
            enabled: Whether alerts are sounded at all.
            clock: Monotonic clock in seconds.
        """
        self.sound = sound
        self.cooldown_seconds = cooldown_seconds
        self.enabled = enabled
        self._clock = clock

        self.last_sound_time: Optional[float] = None
        self.fired_count = 0
        self.suppressed_count = 0

        logger.info(
            "alert_throttle_initialized",
            cooldown_seconds=cooldown_seconds,
            enabled=enabled,
            sink=type(sound).__name__,
        )

    def should_throttle(self, now: float) -> bool:
        """
        Check if an alert at ``now`` falls inside the cooldown window.

        Args:
            now: Current clock reading.

        Returns:
            bool: True if the alert must be suppressed.
        """
        if self.last_sound_time is None:
            return False
        return now - self.last_sound_time < self.cooldown_seconds

    def on_new_records(self, count: int = 1) -> bool:
        """
        Report that genuinely new records arrived.

        Args:
            count: Number of new records (logged only).

        Returns:
            bool: True if an alert was triggered.
        """
        if not self.enabled:
            return False

        now = self._clock()
        if self.should_throttle(now):
            self.suppressed_count += 1
            logger.debug(
                "alert_throttled",
                new_records=count,
                seconds_since_last=now - (self.last_sound_time or now),
            )
            return False

        self.last_sound_time = now
        self.fired_count += 1
        self._trigger(count)
        return True

    def _trigger(self, count: int) -> None:
        """Restart the alert sound from the beginning."""
        try:
            self.sound.pause()
            self.sound.reset()
            self.sound.play()
            logger.info("alert_sounded", new_records=count, fired_count=self.fired_count)
        except Exception as e:
            logger.warning(
                "alert_sound_failed",
                sink=type(self.sound).__name__,
                error=str(e),
            )

    def close(self) -> None:
        """Release the sink."""
        try:
            self.sound.close()
        except Exception as e:
            logger.warning("alert_sound_close_failed", error=str(e))

"""
Audible alert sinks.

The alert throttle drives a sink through a minimal play / pause /
reset-position primitive. Sinks may fail (no audio device, closed
terminal); the throttle isolates those failures.

Sinks:
    TerminalBellSound: Writes the BEL control character to a terminal
    ToneSound: Synthesised sine beep through sounddevice
    SilentSound: Logs the alert without making a sound
"""

import sys
from enum import Enum
from typing import Optional, Protocol, TextIO

import structlog

logger = structlog.get_logger(__name__)


class AlertSink(str, Enum):
    """Available alert sink implementations."""

    BELL = "bell"
    TONE = "tone"
    SILENT = "silent"


class AlertSound(Protocol):
    """
    Protocol for audible alert sinks.

    Any sink implementation must support these methods.
    """

    def play(self) -> None:
        """Start playback from the current position."""
        ...

    def pause(self) -> None:
        """Stop playback, keeping the position."""
        ...

    def reset(self) -> None:
        """Move the playback position back to the start."""
        ...

    def close(self) -> None:
        """Release the audio resource."""
        ...


class TerminalBellSound:
    """
    Rings the terminal bell.

    Attributes:
        stream: Terminal stream the BEL character is written to.
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream if stream is not None else sys.stdout

    def play(self) -> None:
        self.stream.write("\a")
        self.stream.flush()

    def pause(self) -> None:
        pass

    def reset(self) -> None:
        pass

    def close(self) -> None:
        pass


class SilentSound:
    """Records alerts in the log only."""

    def __init__(self) -> None:
        self.plays = 0

    def play(self) -> None:
        self.plays += 1
        logger.info("alert_sound_silent", plays=self.plays)

    def pause(self) -> None:
        pass

    def reset(self) -> None:
        pass

    def close(self) -> None:
        pass


class ToneSound:
    """
    Plays a short synthesised beep on an audio output device.

    The waveform is rendered once at construction. ``sounddevice`` plays it
    asynchronously, so ``play()`` returns immediately.

    Attributes:
        frequency_hz: Beep pitch.
        duration_ms: Beep length.
        sample_rate: Output sample rate.
        device: sounddevice output device index, None for the default.

    Example:
        >>> sound = ToneSound(frequency_hz=880, duration_ms=300)
        >>> sound.play()
    """

    def __init__(
        self,
        frequency_hz: float = 880.0,
        duration_ms: int = 350,
        volume: float = 0.4,
        sample_rate: int = 44100,
        device: Optional[int] = None,
    ) -> None:
        import numpy as np
        import sounddevice as sd

        self._sd = sd
        self.frequency_hz = frequency_hz
        self.duration_ms = duration_ms
        self.sample_rate = sample_rate
        self.device = device

        n_samples = int(sample_rate * duration_ms / 1000)
        t = np.arange(n_samples, dtype=np.float32) / sample_rate
        wave = np.sin(2 * np.pi * frequency_hz * t).astype(np.float32) * volume

        # 10 ms linear fade at both ends to avoid clicks
        fade = min(n_samples // 2, int(sample_rate * 0.01))
        if fade > 0:
            ramp = np.linspace(0.0, 1.0, fade, dtype=np.float32)
            wave[:fade] *= ramp
            wave[-fade:] *= ramp[::-1]

        self._wave = wave

    def play(self) -> None:
        self._sd.play(self._wave, samplerate=self.sample_rate, device=self.device)

    def pause(self) -> None:
        self._sd.stop()

    def reset(self) -> None:
        # sounddevice always plays a buffer from its first sample
        pass

    def close(self) -> None:
        self._sd.stop()


def create_alert_sound(
    sink: AlertSink = AlertSink.BELL,
    frequency_hz: float = 880.0,
    duration_ms: int = 350,
    device: Optional[int] = None,
) -> AlertSound:
    """
    Factory function to create an alert sink.

    Args:
        sink: Which sink to create.
        frequency_hz: Tone pitch (tone sink only).
        duration_ms: Tone length (tone sink only).
        device: Output device index (tone sink only).

    Returns:
        AlertSound: The sink. A tone sink that cannot open its audio
        backend is replaced by the terminal bell.

    Example:
        >>> sound = create_alert_sound(AlertSink.TONE, frequency_hz=660)
    """
    if sink == AlertSink.TONE:
        try:
            return ToneSound(
                frequency_hz=frequency_hz,
                duration_ms=duration_ms,
                device=device,
            )
        except (ImportError, OSError) as e:
            logger.warning(
                "alert_sink_unavailable",
                sink=sink.value,
                fallback=AlertSink.BELL.value,
                error_type=type(e).__name__,
                error=str(e),
            )
            return TerminalBellSound()
    if sink == AlertSink.SILENT:
        return SilentSound()
    return TerminalBellSound()

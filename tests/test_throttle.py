"""Unit tests for the alert throttle and alert sinks."""

import io
from unittest.mock import MagicMock

import pytest

from flightwatch.alerting import (
    AlertSink,
    AlertThrottle,
    SilentSound,
    TerminalBellSound,
    create_alert_sound,
)

from tests.helpers import FakeClock


class TestCooldown:
    """Tests for the cooldown bound."""

    def test_burst_within_cooldown_fires_once(self, throttle, sound, throttle_clock) -> None:
        """Should sound exactly one alert for N reports inside one cooldown."""
        results = []
        for _ in range(5):
            results.append(throttle.on_new_records(1))
            throttle_clock.advance(1.5)

        assert results == [True, False, False, False, False]
        assert sound.plays == 1
        assert throttle.suppressed_count == 4

    def test_spaced_reports_fire_independently(self, throttle, sound, throttle_clock) -> None:
        """Should sound every report spaced more than the cooldown apart."""
        for _ in range(3):
            assert throttle.on_new_records(2) is True
            throttle_clock.advance(10.5)

        assert sound.plays == 3

    def test_exact_cooldown_boundary_fires(self, throttle, sound, throttle_clock) -> None:
        """Should allow a new alert once exactly the cooldown has elapsed."""
        throttle.on_new_records()
        throttle_clock.advance(10)

        assert throttle.on_new_records() is True

    def test_disabled_never_fires(self, sound) -> None:
        """Should stay silent when alerts are disabled."""
        throttle = AlertThrottle(sound, cooldown_seconds=10, enabled=False)

        assert throttle.on_new_records(3) is False
        assert sound.plays == 0

    def test_should_throttle_before_first_alert(self, throttle) -> None:
        """Should never throttle before the first alert."""
        assert throttle.should_throttle(0.0) is False


class TestSinkIsolation:
    """Tests for sink failure handling."""

    def test_restarts_sound_from_beginning(self) -> None:
        """Should pause, reset and play the sink in that order."""
        sink = MagicMock()
        throttle = AlertThrottle(sink, cooldown_seconds=10, clock=FakeClock(0))

        throttle.on_new_records(1)

        assert [c[0] for c in sink.method_calls] == ["pause", "reset", "play"]

    def test_sink_error_is_swallowed(self) -> None:
        """Should log and swallow a failing sink."""
        sink = MagicMock()
        sink.play.side_effect = OSError("no audio device")
        throttle = AlertThrottle(sink, cooldown_seconds=10, clock=FakeClock(0))

        assert throttle.on_new_records(1) is True
        assert throttle.fired_count == 1

    def test_failed_alert_still_starts_cooldown(self, throttle_clock) -> None:
        """Should not retry a failed alert inside the cooldown."""
        sink = MagicMock()
        sink.play.side_effect = RuntimeError("device busy")
        throttle = AlertThrottle(sink, cooldown_seconds=10, clock=throttle_clock)

        throttle.on_new_records(1)
        throttle_clock.advance(1)

        assert throttle.on_new_records(1) is False
        assert sink.play.call_count == 1

    def test_close_error_is_swallowed(self) -> None:
        """Should not raise when the sink fails to close."""
        sink = MagicMock()
        sink.close.side_effect = RuntimeError("already closed")
        throttle = AlertThrottle(sink)

        throttle.close()

        sink.close.assert_called_once()


class TestSinks:
    """Tests for the sink implementations."""

    def test_terminal_bell_writes_bel(self) -> None:
        """Should write the BEL control character."""
        stream = io.StringIO()
        TerminalBellSound(stream).play()

        assert stream.getvalue() == "\a"

    def test_silent_counts_plays(self) -> None:
        """Should count plays without output."""
        sound = SilentSound()
        sound.play()
        sound.play()

        assert sound.plays == 2

    @pytest.mark.parametrize(
        "sink,expected",
        [(AlertSink.BELL, TerminalBellSound), (AlertSink.SILENT, SilentSound)],
    )
    def test_factory(self, sink, expected) -> None:
        """Should create the requested sink."""
        assert isinstance(create_alert_sound(sink), expected)

    @pytest.mark.parametrize(
        "error",
        [OSError("PortAudio library not found"), ImportError("No module named 'sounddevice'")],
    )
    def test_tone_falls_back_to_bell(self, monkeypatch, error) -> None:
        """Should return the terminal bell when the tone backend cannot load."""

        class BrokenToneSound:
            def __init__(self, **kwargs):
                raise error

        monkeypatch.setattr("flightwatch.alerting.sound.ToneSound", BrokenToneSound)

        sound = create_alert_sound(AlertSink.TONE, frequency_hz=660)

        assert isinstance(sound, TerminalBellSound)

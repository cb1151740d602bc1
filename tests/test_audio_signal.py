from __future__ import annotations

from unittest.mock import MagicMock, patch

import audio_signal
from audio_signal import AudioSignal, make_tone


def test_tone_is_short_float32_burst() -> None:
    tone = make_tone(duration_s=0.1, sample_rate=8000)

    assert len(tone) == 800
    assert str(tone.dtype) == "float32"
    assert float(abs(tone).max()) <= 0.3


@patch("audio_signal.sd")
def test_single_beep(mock_sd: MagicMock) -> None:
    AudioSignal(background=False, repeat_interval_s=0).play()

    assert mock_sd.play.call_count == 1
    assert mock_sd.play.call_args.args[1] == audio_signal.SIGNAL_SAMPLE_RATE


@patch("audio_signal.sd")
def test_repeat_count_is_clamped(mock_sd: MagicMock) -> None:
    signal = AudioSignal(background=False, repeat_interval_s=0)

    signal.play(2)
    assert mock_sd.play.call_count == 2

    mock_sd.reset_mock()
    signal.play(10)
    assert mock_sd.play.call_count == audio_signal.MAX_REPEATS

    mock_sd.reset_mock()
    signal.play(0)
    assert mock_sd.play.call_count == 1


@patch("audio_signal.sd")
def test_disabled_signal_is_silent(mock_sd: MagicMock) -> None:
    AudioSignal(enabled=False, background=False).play(2)

    mock_sd.play.assert_not_called()


@patch("audio_signal.sd")
def test_playback_failure_is_swallowed(mock_sd: MagicMock) -> None:
    mock_sd.play.side_effect = RuntimeError("no output device")

    AudioSignal(background=False, repeat_interval_s=0).play(3)

    assert mock_sd.play.call_count == 1


def test_missing_sounddevice_is_silent(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(audio_signal, "sd", None)

    AudioSignal(background=False).play()

"""Microphone authorization check."""

from __future__ import annotations

import logging

from models import PermissionStatus

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)


class SoundDevicePermissionGate:
    """Asks PortAudio whether the default input device can be opened.

    There is no portable consent query, so a failed device check that is not a
    settings rejection is reported as PROMPT and left to device acquisition.
    """

    def __init__(self, sample_rate: int = 16000, channels: int = 1) -> None:
        self.sample_rate = sample_rate
        self.channels = channels

    def check_authorization(self) -> PermissionStatus:
        if sd is None:
            return PermissionStatus.PROMPT
        try:
            sd.check_input_settings(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
            )
        except ValueError as exc:
            logger.warning("Input device rejected: %s", exc)
            return PermissionStatus.DENIED
        except Exception as exc:
            logger.info("Microphone check failed, deferring to capture: %s", exc)
            return PermissionStatus.PROMPT
        return PermissionStatus.GRANTED

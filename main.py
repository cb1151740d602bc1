"""Push-to-talk entrypoint: hold the hotkey to speak, release to finish."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from audio_signal import AudioSignal
from auto_paste import ClipboardResultSink
from config import JsonConfigStore
from errors import describe
from hotkey import GlobalHotkeyAdapter
from models import CountdownPhase, SessionState
from permission import SoundDevicePermissionGate
from recognizer import DashscopeRecognizerAdapter
from recorder import SoundDeviceRecorder
from session_controller import SessionController
from timer import ThreadedTimerService, format_remaining

logger = logging.getLogger("voice_capture")

CONSUMER_KEY = "dictation"


class App:
    def __init__(self, config_store: Optional[JsonConfigStore] = None) -> None:
        self.config_store = config_store or JsonConfigStore()
        sample_rate = self.config_store.get_sample_rate()

        self.sink = ClipboardResultSink()
        self.signal = AudioSignal(enabled=self.config_store.get_audio_signal())
        self.controller = SessionController(
            permission_gate=SoundDevicePermissionGate(sample_rate=sample_rate),
            recognizer=DashscopeRecognizerAdapter(
                api_key=self.config_store.get_api_key(),
                model=self.config_store.get_model(),
                sample_rate=sample_rate,
            ),
            capture=SoundDeviceRecorder(sample_rate=sample_rate),
            timer=ThreadedTimerService(),
            max_duration_s=self.config_store.get_max_recording_seconds(),
            on_state_change=self._on_state_change,
            on_partial=self._on_partial,
            on_error=self._on_error,
            on_tick=self._on_tick,
        )
        self.controller.register_consumer(CONSUMER_KEY, self._on_result)
        self.hotkey = GlobalHotkeyAdapter(hotkey_name=self.config_store.get_hotkey())
        self._stopped = threading.Event()

    # ------------------------------------------------------------------
    # Controller observers
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: SessionState, to_state: SessionState) -> None:
        logger.info("%s -> %s", from_state.value, to_state.value)
        if to_state is SessionState.RECORDING:
            self.signal.play(1)
        elif to_state is SessionState.FINALIZING:
            session = self.controller.session
            if session is not None and session.deadline_reached:
                self.signal.play(2)

    def _on_partial(self, text: str) -> None:
        logger.info("… %s", text)

    def _on_error(self, code: str, message: str) -> None:
        logger.warning("%s: %s", describe(code), message)

    def _on_tick(self, remaining: float, total: float, phase: CountdownPhase) -> None:
        if phase is not CountdownPhase.NORMAL:
            logger.info("%s left (%s)", format_remaining(remaining), phase.value)

    def _on_result(self, transcript: Optional[str], audio: Optional[bytes], digest: str) -> None:
        logger.info(
            "Result %s: %r (%d audio bytes)",
            digest[:8],
            transcript,
            len(audio) if audio else 0,
        )
        self.sink(transcript, audio, digest)

    # ------------------------------------------------------------------
    # Hotkey handlers
    # ------------------------------------------------------------------

    def _on_hotkey_press(self) -> None:
        self.controller.start_session(CONSUMER_KEY)

    def _on_hotkey_release(self) -> None:
        # finalize may wait on device teardown; keep the listener thread free
        threading.Thread(target=self.controller.request_manual_stop, daemon=True).start()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        try:
            self.hotkey.start(
                on_press=self._on_hotkey_press,
                on_release=self._on_hotkey_release,
            )
        except Exception as exc:
            logger.error("Hotkey disabled: %s", exc)
            return 1
        logger.info("Hold %s to speak, Ctrl+C to quit", self.config_store.get_hotkey())
        try:
            self._stopped.wait()
        except KeyboardInterrupt:
            pass
        finally:
            self.quit()
        return 0

    def quit(self) -> None:
        self.hotkey.stop()
        if self.controller.is_active():
            self.controller.request_manual_stop()
        self._stopped.set()


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())

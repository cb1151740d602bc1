"""Streaming recognizer adapter using DashScope realtime recognition.

Captured PCM is pushed into a ``dashscope.audio.asr.Recognition`` stream and
its callbacks are normalised into ``RecognitionEvent``s.  Callbacks are
queued and delivered from a worker thread, never from the SDK's own thread.
Each start or restart opens a new generation; events from an older
generation, and anything after a generation's terminal event (final, error
or end), are dropped so one recognition can never end a session twice.
"""

from __future__ import annotations

import logging
import os
import threading
from queue import Queue
from typing import Any, Optional, Tuple

from errors import AUTH_FAILED, NETWORK_ERROR, NO_SPEECH, RECOGNIZER_ERROR
from interfaces import RecognitionCallback
from models import RecognitionEvent, RecognitionKind, RecognizerErrorKind

try:
    import dashscope
    from dashscope.audio.asr import Recognition
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore
    Recognition = None  # type: ignore

logger = logging.getLogger(__name__)

_NO_SPEECH_MARKERS = ("no_valid_audio", "no valid audio", "no_speech", "no speech", "silence")


def _is_sentence_end(sentence: dict) -> bool:
    if sentence.get("sentence_end"):
        return True
    return sentence.get("end_time") is not None


class _RecognitionListener:
    """Callback object handed to ``Recognition``; tags events with a generation."""

    def __init__(self, adapter: "DashscopeRecognizerAdapter", generation: int) -> None:
        self._adapter = adapter
        self._generation = generation

    def on_open(self) -> None:
        logger.debug("Recognition %d opened", self._generation)

    def on_close(self) -> None:
        logger.debug("Recognition %d closed", self._generation)

    def on_complete(self) -> None:
        self._adapter._emit(self._generation, RecognitionEvent(kind=RecognitionKind.END.value))

    def on_error(self, result: Any) -> None:
        self._adapter._emit(self._generation, self._adapter._to_error_event(result))

    def on_event(self, result: Any) -> None:
        sentence = result.get_sentence()
        if not isinstance(sentence, dict):
            return
        text = str(sentence.get("text", ""))
        if _is_sentence_end(sentence):
            event = RecognitionEvent(kind=RecognitionKind.FINAL.value, text=text)
        elif text:
            event = RecognitionEvent(kind=RecognitionKind.INTERIM.value, text=text)
        else:
            return
        self._adapter._emit(self._generation, event)


class DashscopeRecognizerAdapter:
    def __init__(
        self,
        api_key: str,
        model: str = "paraformer-realtime-v2",
        sample_rate: int = 16000,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._sample_rate = sample_rate
        self._lock = threading.Lock()
        self._recognition: Any = None
        self._generation = 0
        self._finished_generation = 0
        self._on_event: Optional[RecognitionCallback] = None
        self._events: Queue[Tuple[int, RecognitionEvent]] = Queue()
        self._worker: Optional[threading.Thread] = None

    def start(self, on_event: RecognitionCallback) -> None:
        with self._lock:
            if self._recognition is not None:
                return
            self._on_event = on_event
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(
                    target=self._deliver_events,
                    name="recognizer-events",
                    daemon=True,
                )
                self._worker.start()
        self._open()

    def restart(self) -> None:
        with self._lock:
            old, self._recognition = self._recognition, None
        if old is not None:
            try:
                old.stop()
            except Exception as exc:
                logger.debug("Previous recognition already stopped: %s", exc)
        self._open()

    def feed(self, pcm: bytes) -> None:
        recognition = self._recognition
        if recognition is None or not pcm:
            return
        try:
            recognition.send_audio_frame(pcm)
        except Exception as exc:
            # the recognizer reports its own failure through on_error
            logger.debug("Dropped audio frame: %s", exc)

    def stop(self) -> None:
        with self._lock:
            recognition, self._recognition = self._recognition, None
            self._generation += 1
        if recognition is not None:
            recognition.stop()

    def detach(self) -> None:
        with self._lock:
            self._on_event = None
            self._generation += 1

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _open(self) -> None:
        if dashscope is None or Recognition is None:
            raise RuntimeError("dashscope is not installed")
        api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
        if not api_key:
            raise RuntimeError(f"{AUTH_FAILED}: no API key configured")
        dashscope.api_key = api_key

        with self._lock:
            self._generation += 1
            generation = self._generation
        recognition = Recognition(
            model=self._model,
            format="pcm",
            sample_rate=self._sample_rate,
            callback=_RecognitionListener(self, generation),
        )
        recognition.start()
        with self._lock:
            if generation != self._generation:
                stale = True
            else:
                stale = False
                self._recognition = recognition
        if stale:
            recognition.stop()

    def _emit(self, generation: int, event: RecognitionEvent) -> None:
        self._events.put((generation, event))

    def _deliver_events(self) -> None:
        while True:
            generation, event = self._events.get()
            try:
                self._deliver(generation, event)
            except Exception:
                logger.exception("Recognition event handler failed")

    def _deliver(self, generation: int, event: RecognitionEvent) -> None:
        terminal = event.kind != RecognitionKind.INTERIM.value
        with self._lock:
            if generation != self._generation or generation <= self._finished_generation:
                return
            if terminal:
                self._finished_generation = generation
            on_event = self._on_event
        if on_event is not None:
            on_event(event)

    def _to_error_event(self, result: Any) -> RecognitionEvent:
        """Map a DashScope error result or exception to a standard error event."""
        code = str(getattr(result, "code", "") or "")
        message = str(getattr(result, "message", "") or result)
        low = f"{code} {message}".lower()
        if any(marker in low for marker in _NO_SPEECH_MARKERS):
            return RecognitionEvent(
                kind=RecognitionKind.ERROR.value,
                error_kind=RecognizerErrorKind.NO_SPEECH.value,
                code=NO_SPEECH,
                message=message,
            )
        if "401" in low or "auth" in low or "api key" in low or "apikey" in low:
            mapped = AUTH_FAILED
        elif "timeout" in low or "network" in low or "connection" in low:
            mapped = NETWORK_ERROR
        else:
            mapped = RECOGNIZER_ERROR
        return RecognitionEvent(
            kind=RecognitionKind.ERROR.value,
            error_kind=RecognizerErrorKind.OTHER.value,
            code=mapped,
            message=message,
        )

"""Microphone capture adapter.

PortAudio callbacks only enqueue audio; a pump thread hands chunks to the
session, followed by a single ``on_stopped`` once the stream is closed.
"""

from __future__ import annotations

import io
import logging
import threading
import wave
from queue import Queue
from typing import Any, Optional, Sequence

from interfaces import ChunkCallback, StoppedCallback

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)


def pcm_to_wav(
    pcm: bytes,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> bytes:
    """Wrap raw PCM bytes in a WAV container."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buf.getvalue()


class SoundDeviceRecorder:
    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_ms: int = 100,
        queue_maxsize: int = 200,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self.dropped_chunks = 0
        self._queue_maxsize = queue_maxsize
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self._audio_queue: Optional[Queue[Optional[bytes]]] = None
        self._pump: Optional[threading.Thread] = None
        self._on_chunk: Optional[ChunkCallback] = None
        self._on_stopped: Optional[StoppedCallback] = None

    @property
    def running(self) -> bool:
        return self._running

    def start(self, on_chunk: ChunkCallback, on_stopped: StoppedCallback) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None:
                raise RuntimeError("sounddevice is not installed")
            self._on_chunk = on_chunk
            self._on_stopped = on_stopped
            self.dropped_chunks = 0
            audio_queue: Queue[Optional[bytes]] = Queue()
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                blocksize=blocksize,
                callback=self._on_audio,
            )
            self._audio_queue = audio_queue
            self._running = True
            try:
                stream.start()
            except Exception:
                self._running = False
                self._audio_queue = None
                stream.close()
                raise
            self._stream = stream
            self._pump = threading.Thread(
                target=self._pump_chunks,
                args=(audio_queue,),
                name="capture-pump",
                daemon=True,
            )
            self._pump.start()

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            stream, self._stream = self._stream, None
            audio_queue = self._audio_queue
        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except Exception as exc:
                logger.warning("Closing input stream failed: %s", exc)
        if audio_queue is not None:
            audio_queue.put(None)

    def assemble(self, chunks: Sequence[bytes]) -> Optional[bytes]:
        if not chunks:
            return None
        return pcm_to_wav(b"".join(chunks), self.sample_rate, self.channels)

    def detach(self) -> None:
        self._on_chunk = None
        self._on_stopped = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if status:
            logger.debug("Input stream status: %s", status)
        audio_queue = self._audio_queue
        if not self._running or audio_queue is None:
            return
        if np is None:
            return
        payload = np.asarray(indata, dtype=np.int16).tobytes()
        if not payload:
            return
        if audio_queue.qsize() >= self._queue_maxsize:
            self.dropped_chunks += 1
            return
        audio_queue.put_nowait(payload)

    def _pump_chunks(self, audio_queue: Queue[Optional[bytes]]) -> None:
        while True:
            chunk = audio_queue.get()
            if chunk is None:
                break
            on_chunk = self._on_chunk
            if on_chunk is not None:
                on_chunk(chunk)
        if self.dropped_chunks:
            logger.warning("Dropped %d audio chunks", self.dropped_chunks)
        on_stopped = self._on_stopped
        if on_stopped is not None:
            on_stopped()

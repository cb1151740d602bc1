"""Protocol interfaces used by SessionController."""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, Sequence

from models import CountdownPhase, PermissionStatus, RecognitionEvent

ChunkCallback = Callable[[bytes], None]
StoppedCallback = Callable[[], None]
RecognitionCallback = Callable[[RecognitionEvent], None]
TickCallback = Callable[[float, float, CountdownPhase], None]
ResultCallback = Callable[[Optional[str], Optional[bytes], str], None]


class PermissionGate(Protocol):
    def check_authorization(self) -> PermissionStatus: ...


class CaptureAdapter(Protocol):
    def start(self, on_chunk: ChunkCallback, on_stopped: StoppedCallback) -> None: ...

    def stop(self) -> None: ...

    def assemble(self, chunks: Sequence[bytes]) -> Optional[bytes]: ...

    def detach(self) -> None: ...


class RecognizerAdapter(Protocol):
    def start(self, on_event: RecognitionCallback) -> None: ...

    def feed(self, pcm: bytes) -> None: ...

    def restart(self) -> None: ...

    def stop(self) -> None: ...

    def detach(self) -> None: ...


class TimerService(Protocol):
    def arm(
        self,
        duration_s: float,
        on_deadline: Callable[[], None],
        on_tick: Optional[TickCallback] = None,
    ) -> Any: ...

    def cancel(self, handle: Any) -> bool: ...


class ConfigStore(Protocol):
    def get_api_key(self) -> str: ...

    def set_api_key(self, key: str) -> None: ...

    def get_hotkey(self) -> str: ...

    def set_hotkey(self, hotkey: str) -> None: ...

    def get_max_recording_seconds(self) -> float: ...

    def set_max_recording_seconds(self, seconds: float) -> None: ...

    def get_sample_rate(self) -> int: ...

    def get_model(self) -> str: ...

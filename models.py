"""Core data models for the voice-capture coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Hashable, List, Optional


class SessionState(str, Enum):
    IDLE = "IDLE"
    AWAITING_PERMISSION = "AWAITING_PERMISSION"
    RECORDING = "RECORDING"
    FINALIZING = "FINALIZING"
    TERMINATED = "TERMINATED"


class PermissionStatus(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"


class RecognitionKind(str, Enum):
    INTERIM = "interim"
    FINAL = "final"
    ERROR = "error"
    END = "end"


class RecognizerErrorKind(str, Enum):
    NO_SPEECH = "no_speech"
    OTHER = "other"


class CountdownPhase(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    ALERT = "alert"


@dataclass
class RecognitionEvent:
    kind: str
    text: str = ""
    error_kind: str = ""
    code: str = ""
    message: str = ""


@dataclass
class PasteResult:
    success: bool
    reason: str
    clipboard_restored: bool


@dataclass(frozen=True)
class SessionResult:
    transcript: Optional[str]
    audio: Optional[bytes]
    digest: str


@dataclass
class Session:
    """State of the one in-flight capture session.

    Built fresh on every accepted start and dropped when it terminates.
    """

    session_id: int
    reference_key: Hashable
    state: SessionState = SessionState.IDLE
    partial_transcript: str = ""
    captured_chunks: List[bytes] = field(default_factory=list)
    retry_count: int = 0
    manual_stop_requested: bool = False
    deadline_reached: bool = False
    deadline_handle: Any = None
    stop_grace_handle: Any = None
    capture_active: bool = False
    result_delivered: bool = False

    def claim_delivery(self) -> bool:
        """Return True for the first caller only."""
        if self.result_delivered:
            return False
        self.result_delivered = True
        return True

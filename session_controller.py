"""State-machine based capture session orchestration.

Every public call and every adapter, capture and timer callback is turned
into a ``SessionEvent`` and posted to a single mailbox.  Whichever thread
finds the mailbox idle drains it, so handlers run one at a time in arrival
order and never re-enter each other.  Events carry the id of the session
they were created for and are dropped once that session is gone.
"""

from __future__ import annotations

import itertools
import logging
import math
import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Callable, Deque, Hashable, Optional

import hashing
from errors import (
    DEVICE_ERROR,
    NO_CONSUMER,
    PERMISSION_DENIED,
    RECOGNIZER_ERROR,
    RESTART_FAILED,
    describe,
)
from interfaces import (
    CaptureAdapter,
    PermissionGate,
    RecognizerAdapter,
    ResultCallback,
    TickCallback,
    TimerService,
)
from models import (
    PermissionStatus,
    RecognitionEvent,
    RecognitionKind,
    RecognizerErrorKind,
    Session,
    SessionResult,
    SessionState,
)
from registry import CallbackRegistry
from timer import ThreadedTimerService

logger = logging.getLogger(__name__)

DEFAULT_MAX_DURATION_S = 30.0
MAX_AUTO_RETRIES = 2
CAPTURE_STOP_GRACE_S = 2.0

StateCallback = Callable[[SessionState, SessionState], None]
PartialCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str], None]


class EventKind(str, Enum):
    START = "start"
    MANUAL_STOP = "manual_stop"
    DEADLINE = "deadline"
    RECOGNITION = "recognition"
    CHUNK = "chunk"
    CAPTURE_STOPPED = "capture_stopped"


@dataclass(frozen=True)
class SessionEvent:
    kind: EventKind
    session_id: int = 0
    key: Hashable = None
    recognition: Optional[RecognitionEvent] = None
    chunk: bytes = b""


class SessionController:
    def __init__(
        self,
        permission_gate: PermissionGate,
        recognizer: RecognizerAdapter,
        capture: CaptureAdapter,
        registry: Optional[CallbackRegistry] = None,
        timer: Optional[TimerService] = None,
        max_duration_s: float = DEFAULT_MAX_DURATION_S,
        on_state_change: Optional[StateCallback] = None,
        on_partial: Optional[PartialCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_tick: Optional[TickCallback] = None,
    ) -> None:
        self._permission_gate = permission_gate
        self._recognizer = recognizer
        self._capture = capture
        self._registry = registry if registry is not None else CallbackRegistry()
        self._timer = timer if timer is not None else ThreadedTimerService()
        self._on_state_change = on_state_change
        self._on_partial = on_partial
        self._on_error = on_error
        self._on_tick = on_tick

        self._max_duration_s = DEFAULT_MAX_DURATION_S
        self.configure_max_duration(max_duration_s)

        self._session: Optional[Session] = None
        self._session_ids = itertools.count(1)
        self._mailbox: Deque[SessionEvent] = deque()
        self._mailbox_lock = threading.Lock()
        self._dispatching = False

    # ------------------------------------------------------------------
    # Caller-facing API
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        session = self._session
        return session.state if session is not None else SessionState.IDLE

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def max_duration_s(self) -> float:
        return self._max_duration_s

    def register_consumer(self, key: Hashable, callback: ResultCallback) -> None:
        self._registry.register(key, callback)

    def start_session(self, key: Hashable) -> None:
        self._post(SessionEvent(kind=EventKind.START, key=key))

    def request_manual_stop(self) -> None:
        self._post(SessionEvent(kind=EventKind.MANUAL_STOP))

    def is_active(self) -> bool:
        return self._session is not None

    def configure_max_duration(self, seconds: float) -> None:
        """Set the recording ceiling used by sessions started after this call."""
        if (
            isinstance(seconds, bool)
            or not isinstance(seconds, (int, float))
            or not math.isfinite(seconds)
            or seconds <= 0
        ):
            raise ValueError(f"max duration must be a positive finite number, got {seconds!r}")
        self._max_duration_s = float(seconds)

    # ------------------------------------------------------------------
    # Mailbox
    # ------------------------------------------------------------------

    def _post(self, event: SessionEvent) -> None:
        with self._mailbox_lock:
            self._mailbox.append(event)
            if self._dispatching:
                return
            self._dispatching = True
        while True:
            with self._mailbox_lock:
                if not self._mailbox:
                    self._dispatching = False
                    return
                event = self._mailbox.popleft()
            try:
                self._dispatch(event)
            except Exception:
                logger.exception("Unhandled error while processing %s", event.kind.value)

    def _dispatch(self, event: SessionEvent) -> None:
        if event.kind is EventKind.START:
            self._handle_start(event.key)
            return

        session = self._session
        if session is None:
            logger.debug("Dropping %s: no active session", event.kind.value)
            return
        if event.kind is EventKind.MANUAL_STOP:
            self._handle_manual_stop(session)
            return
        if event.session_id != session.session_id:
            logger.debug("Dropping stale %s for session %d", event.kind.value, event.session_id)
            return

        if event.kind is EventKind.DEADLINE:
            if session.state is SessionState.RECORDING:
                logger.info("Session %d reached its deadline", session.session_id)
                session.deadline_reached = True
                self._begin_finalize(session)
        elif event.kind is EventKind.RECOGNITION and event.recognition is not None:
            if session.state is SessionState.RECORDING:
                self._handle_recognition(session, event.recognition)
        elif event.kind is EventKind.CHUNK:
            self._handle_chunk(session, event.chunk)
        elif event.kind is EventKind.CAPTURE_STOPPED:
            session.capture_active = False
            if session.state is SessionState.FINALIZING:
                self._complete(session)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _handle_start(self, key: Hashable) -> None:
        if self._session is not None:
            logger.debug("Start for %r ignored: session %d is active", key, self._session.session_id)
            return

        session = Session(session_id=next(self._session_ids), reference_key=key)
        self._session = session
        self._transition(session, SessionState.AWAITING_PERMISSION)

        status = self._check_permission()
        if status is PermissionStatus.DENIED:
            self._emit_error(PERMISSION_DENIED, describe(PERMISSION_DENIED))
            self._session = None
            self._transition(session, SessionState.IDLE)
            return

        sid = session.session_id
        self._transition(session, SessionState.RECORDING)
        session.deadline_handle = self._timer.arm(
            self._max_duration_s,
            partial(self._post, SessionEvent(kind=EventKind.DEADLINE, session_id=sid)),
            self._on_tick,
        )

        try:
            self._recognizer.start(partial(self._recognition_callback, sid))
        except Exception as exc:
            logger.exception("Recognizer failed to start")
            self._emit_error(RECOGNIZER_ERROR, str(exc))
            self._begin_finalize(session)
            return

        try:
            self._capture.start(
                partial(self._chunk_callback, sid),
                partial(self._post, SessionEvent(kind=EventKind.CAPTURE_STOPPED, session_id=sid)),
            )
        except Exception as exc:
            logger.exception("Audio capture failed to start")
            self._emit_error(DEVICE_ERROR, str(exc))
            self._begin_finalize(session)
            return
        session.capture_active = True
        logger.info("Session %d recording for %r", sid, key)

    def _handle_manual_stop(self, session: Session) -> None:
        if session.state is not SessionState.RECORDING:
            return
        session.manual_stop_requested = True
        logger.info("Session %d stopped by caller", session.session_id)
        self._begin_finalize(session)

    def _handle_recognition(self, session: Session, event: RecognitionEvent) -> None:
        kind = event.kind
        if kind == RecognitionKind.INTERIM.value:
            session.partial_transcript = event.text
            self._emit_partial(event.text)
        elif kind == RecognitionKind.FINAL.value:
            session.partial_transcript = event.text
            self._begin_finalize(session)
        elif kind == RecognitionKind.ERROR.value:
            if event.error_kind == RecognizerErrorKind.NO_SPEECH.value and self._can_retry(session):
                self._retry(session)
                return
            self._emit_error(event.code or RECOGNIZER_ERROR, event.message or describe(RECOGNIZER_ERROR))
            self._begin_finalize(session)
        elif kind == RecognitionKind.END.value:
            if not session.partial_transcript and self._can_retry(session):
                self._retry(session)
                return
            self._begin_finalize(session)

    def _handle_chunk(self, session: Session, chunk: bytes) -> None:
        if not chunk or session.state not in (SessionState.RECORDING, SessionState.FINALIZING):
            return
        session.captured_chunks.append(chunk)
        if session.state is SessionState.RECORDING:
            try:
                self._recognizer.feed(chunk)
            except Exception as exc:
                logger.warning("Recognizer rejected audio: %s", exc)

    # ------------------------------------------------------------------
    # Retry / finalize
    # ------------------------------------------------------------------

    def _can_retry(self, session: Session) -> bool:
        return not session.manual_stop_requested and session.retry_count < MAX_AUTO_RETRIES

    def _retry(self, session: Session) -> None:
        session.retry_count += 1
        logger.info("Session %d restarting recognition (%d/%d)", session.session_id, session.retry_count, MAX_AUTO_RETRIES)
        try:
            self._recognizer.restart()
        except Exception as exc:
            logger.exception("Recognizer restart failed")
            self._emit_error(RESTART_FAILED, str(exc))
            self._begin_finalize(session)

    def _begin_finalize(self, session: Session) -> None:
        if session.state is not SessionState.RECORDING:
            return
        self._transition(session, SessionState.FINALIZING)
        self._timer.cancel(session.deadline_handle)
        self._safe_stop_recognizer()
        if session.capture_active:
            sid = session.session_id
            session.stop_grace_handle = self._timer.arm(
                CAPTURE_STOP_GRACE_S,
                partial(self._post, SessionEvent(kind=EventKind.CAPTURE_STOPPED, session_id=sid)),
            )
            if self._safe_stop_capture():
                # completion continues on CAPTURE_STOPPED so trailing chunks land first
                return
            session.capture_active = False
        self._complete(session)

    def _complete(self, session: Session) -> None:
        if session.state is not SessionState.FINALIZING:
            return
        audio = self._assemble(session)
        transcript = session.partial_transcript or None
        result = SessionResult(
            transcript=transcript,
            audio=audio,
            digest=hashing.digest(audio, transcript),
        )

        self._terminate(session)

        callback = self._registry.lookup(session.reference_key)
        if callback is None:
            logger.warning("No consumer registered for %r, result dropped", session.reference_key)
            self._emit_error(NO_CONSUMER, describe(NO_CONSUMER))
        elif session.claim_delivery():
            try:
                callback(result.transcript, result.audio, result.digest)
            except Exception:
                logger.exception("Result callback for %r failed", session.reference_key)
        self._transition(session, SessionState.IDLE)

    def _assemble(self, session: Session) -> Optional[bytes]:
        try:
            return self._capture.assemble(list(session.captured_chunks)) or None
        except Exception:
            logger.exception("Assembling captured audio failed")
            return None

    def _terminate(self, session: Session) -> None:
        self._transition(session, SessionState.TERMINATED)
        self._timer.cancel(session.deadline_handle)
        self._timer.cancel(session.stop_grace_handle)
        self._safe_detach(self._recognizer)
        self._safe_detach(self._capture)
        if session.capture_active:
            self._safe_stop_capture()
            session.capture_active = False
        if self._session is session:
            self._session = None

    # ------------------------------------------------------------------
    # Adapter callbacks (any thread)
    # ------------------------------------------------------------------

    def _recognition_callback(self, session_id: int, event: RecognitionEvent) -> None:
        self._post(SessionEvent(kind=EventKind.RECOGNITION, session_id=session_id, recognition=event))

    def _chunk_callback(self, session_id: int, chunk: bytes) -> None:
        if chunk:
            self._post(SessionEvent(kind=EventKind.CHUNK, session_id=session_id, chunk=bytes(chunk)))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_permission(self) -> PermissionStatus:
        try:
            return self._permission_gate.check_authorization()
        except Exception as exc:
            logger.warning("Permission query failed, assuming prompt: %s", exc)
            return PermissionStatus.PROMPT

    def _emit_partial(self, text: str) -> None:
        if self._on_partial:
            try:
                self._on_partial(text)
            except Exception:
                logger.exception("Partial transcript observer failed")

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            try:
                self._on_error(code, message)
            except Exception:
                logger.exception("Error observer failed")

    def _safe_stop_capture(self) -> bool:
        try:
            self._capture.stop()
        except Exception as exc:
            logger.warning("Stopping capture failed: %s", exc)
            return False
        return True

    def _safe_stop_recognizer(self) -> None:
        try:
            self._recognizer.stop()
        except Exception as exc:
            logger.warning("Stopping recognizer failed: %s", exc)

    def _safe_detach(self, adapter: object) -> None:
        try:
            adapter.detach()  # type: ignore[attr-defined]
        except Exception as exc:
            logger.warning("Detaching %s failed: %s", type(adapter).__name__, exc)

    def _transition(self, session: Session, to_state: SessionState) -> None:
        from_state = session.state
        if from_state == to_state:
            return
        session.state = to_state
        if self._on_state_change:
            try:
                self._on_state_change(from_state, to_state)
            except Exception:
                logger.exception("State observer failed")

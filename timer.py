"""Auto-stop deadline and countdown schedule.

The deadline is the hard recording ceiling. Ticks only feed the countdown
display; nothing in the session logic reads the countdown phase.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable, Optional

from interfaces import TickCallback
from models import CountdownPhase

logger = logging.getLogger(__name__)

WARNING_FRACTION = 0.3
ALERT_FRACTION = 0.1


def countdown_phase(remaining_s: float, total_s: float) -> CountdownPhase:
    if total_s <= 0 or remaining_s <= total_s * ALERT_FRACTION:
        return CountdownPhase.ALERT
    if remaining_s <= total_s * WARNING_FRACTION:
        return CountdownPhase.WARNING
    return CountdownPhase.NORMAL


def format_remaining(seconds: float) -> str:
    """Countdown label, e.g. ``0:07``."""
    whole = max(0, int(math.ceil(seconds)))
    minutes, secs = divmod(whole, 60)
    return f"{minutes}:{secs:02d}"


class DeadlineHandle:
    def __init__(self, duration_s: float) -> None:
        self.duration_s = duration_s
        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self._done = False
        self.fired = False

    @property
    def active(self) -> bool:
        with self._lock:
            return not self._done

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> bool:
        with self._lock:
            if self._done:
                return False
            self._done = True
            self._cancelled.set()
            return True

    def wait_cancelled(self, timeout: float) -> bool:
        return self._cancelled.wait(timeout)

    def claim_fire(self) -> bool:
        with self._lock:
            if self._done:
                return False
            self._done = True
            self.fired = True
            return True


class ThreadedTimerService:
    def __init__(self, tick_interval_s: float = 1.0) -> None:
        self._tick_interval_s = tick_interval_s

    def arm(
        self,
        duration_s: float,
        on_deadline: Callable[[], None],
        on_tick: Optional[TickCallback] = None,
    ) -> DeadlineHandle:
        if not math.isfinite(duration_s) or duration_s < 0:
            raise ValueError(f"deadline must be a finite, non-negative duration, got {duration_s!r}")
        handle = DeadlineHandle(duration_s)
        thread = threading.Thread(
            target=self._run,
            args=(handle, on_deadline, on_tick),
            name="capture-deadline",
            daemon=True,
        )
        thread.start()
        return handle

    def cancel(self, handle: Optional[DeadlineHandle]) -> bool:
        if handle is None:
            return False
        return handle.cancel()

    def _run(
        self,
        handle: DeadlineHandle,
        on_deadline: Callable[[], None],
        on_tick: Optional[TickCallback],
    ) -> None:
        total = handle.duration_s
        deadline = time.monotonic() + total
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            if handle.wait_cancelled(min(self._tick_interval_s, remaining)):
                return
            if on_tick is not None:
                left = max(0.0, deadline - time.monotonic())
                try:
                    on_tick(left, total, countdown_phase(left, total))
                except Exception:
                    logger.exception("Countdown tick handler failed")
        if handle.claim_fire():
            on_deadline()

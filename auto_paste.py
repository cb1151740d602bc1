"""Clipboard result sink for finished capture sessions."""

from __future__ import annotations

import logging
import sys
import threading
import time
from typing import Optional, Set

from errors import NO_ACTIVE_TARGET
from models import PasteResult

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore

try:
    from pynput.keyboard import Controller, Key
except Exception:  # pragma: no cover
    Controller = None  # type: ignore
    Key = None  # type: ignore

logger = logging.getLogger(__name__)


class ClipboardResultSink:
    """Consumer callback that puts each new transcript on the clipboard.

    The result digest is used as an idempotency key, so the same spoken
    result is only pasted once.  With ``auto_paste`` the paste shortcut is
    sent to the focused window and the previous clipboard is restored.
    """

    def __init__(self, auto_paste: bool = False, restore_delay_s: float = 0.1) -> None:
        self._auto_paste = auto_paste
        self._restore_delay_s = restore_delay_s
        self._seen: Set[str] = set()
        self._lock = threading.Lock()
        self.last_result: Optional[PasteResult] = None

    def __call__(self, transcript: Optional[str], audio: Optional[bytes], digest: str) -> None:
        if not transcript or not transcript.strip():
            logger.info("Capture finished without a transcript")
            self.last_result = PasteResult(success=False, reason="empty text", clipboard_restored=True)
            return
        with self._lock:
            if digest in self._seen:
                logger.info("Skipping duplicate result %s", digest[:8])
                self.last_result = PasteResult(success=False, reason="duplicate", clipboard_restored=True)
                return
            self._seen.add(digest)
        self.last_result = self.paste_text(transcript)
        if not self.last_result.success:
            logger.warning("Result not pasted: %s", self.last_result.reason)

    def paste_text(self, text: str) -> PasteResult:
        if not text.strip():
            return PasteResult(success=False, reason="empty text", clipboard_restored=True)
        if pyperclip is None:
            return PasteResult(
                success=False,
                reason="clipboard dependency missing",
                clipboard_restored=False,
            )
        if not self._auto_paste:
            pyperclip.copy(text)
            return PasteResult(success=True, reason="copied", clipboard_restored=False)
        if Controller is None or Key is None:
            pyperclip.copy(text)
            return PasteResult(
                success=False,
                reason="keyboard dependency missing",
                clipboard_restored=False,
            )

        old_clip: str | None = None
        restored = False
        try:
            old_clip = pyperclip.paste()
            pyperclip.copy(text)
            modifier = Key.cmd if sys.platform == "darwin" else Key.ctrl
            keyboard = Controller()
            keyboard.press(modifier)
            keyboard.press("v")
            keyboard.release("v")
            keyboard.release(modifier)
            time.sleep(self._restore_delay_s)
            pyperclip.copy(old_clip)
            restored = True
            return PasteResult(success=True, reason="ok", clipboard_restored=True)
        except Exception as exc:
            try:
                if old_clip is not None:
                    pyperclip.copy(old_clip)
                    restored = True
            except Exception:
                restored = False
            return PasteResult(
                success=False,
                reason=f"{NO_ACTIVE_TARGET}: {exc}",
                clipboard_restored=restored,
            )

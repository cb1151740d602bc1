"""Maps caller-supplied keys to their result callbacks."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Hashable, Optional

from interfaces import ResultCallback

logger = logging.getLogger(__name__)


class CallbackRegistry:
    def __init__(self) -> None:
        self._callbacks: Dict[Hashable, ResultCallback] = {}
        self._lock = threading.Lock()

    def register(self, key: Hashable, callback: ResultCallback) -> None:
        if not callable(callback):
            raise TypeError("callback must be callable")
        with self._lock:
            if key in self._callbacks:
                logger.info("Replacing result callback for %r", key)
            self._callbacks[key] = callback

    def lookup(self, key: Hashable) -> Optional[ResultCallback]:
        with self._lock:
            return self._callbacks.get(key)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._callbacks

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)

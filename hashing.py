"""Content digest used by consumers to spot duplicate spoken results."""

from __future__ import annotations

import hashlib
from typing import Optional


def digest(audio: Optional[bytes], text: Optional[str]) -> str:
    """SHA-1 hex digest over the encoded audio followed by the transcript."""
    h = hashlib.sha1()
    h.update(audio or b"")
    h.update((text or "").encode("utf-8"))
    return h.hexdigest()

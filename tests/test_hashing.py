from __future__ import annotations

from hashing import digest


def test_digest_is_sha1_over_audio_then_text() -> None:
    # SHA-1("abc")
    assert digest(b"ab", "c") == "a9993e364706816aba3e25717850c26c9cd0d89d"
    assert len(digest(b"\x00\x01", "hello")) == 40


def test_digest_is_deterministic() -> None:
    assert digest(b"\x01\x02", "hello world") == digest(b"\x01\x02", "hello world")


def test_digest_differs_for_different_inputs() -> None:
    base = digest(b"\x01\x02", "hello")
    assert digest(b"\x01\x03", "hello") != base
    assert digest(b"\x01\x02", "hello!") != base


def test_missing_parts_hash_as_empty() -> None:
    assert digest(None, None) == digest(b"", "")
    assert digest(None, "hi") == digest(b"", "hi")
    assert digest(b"hi", None) == digest(b"hi", "")

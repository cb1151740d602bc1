"""Shared error codes and user-facing messages."""

from __future__ import annotations

PERMISSION_DENIED = "PERMISSION_DENIED"
NETWORK_ERROR = "NETWORK_ERROR"
AUTH_FAILED = "AUTH_FAILED"
NO_SPEECH = "NO_SPEECH"
RECOGNIZER_ERROR = "RECOGNIZER_ERROR"
RESTART_FAILED = "RESTART_FAILED"
DEVICE_ERROR = "DEVICE_ERROR"
NO_CONSUMER = "NO_CONSUMER"
NO_ACTIVE_TARGET = "NO_ACTIVE_TARGET"

ERROR_MESSAGES = {
    PERMISSION_DENIED: "Microphone access is required, check your system privacy settings.",
    NETWORK_ERROR: "Network failed, please retry.",
    AUTH_FAILED: "API key is invalid.",
    NO_SPEECH: "No speech was detected.",
    RECOGNIZER_ERROR: "Speech recognition failed.",
    RESTART_FAILED: "Speech recognition could not be restarted.",
    DEVICE_ERROR: "The microphone could not be opened.",
    NO_CONSUMER: "No result handler is registered for this input.",
    NO_ACTIVE_TARGET: "No active input target, result kept in clipboard.",
}


def describe(code: str) -> str:
    return ERROR_MESSAGES.get(code, code)

"""Simple JSON-based config store."""

from __future__ import annotations

import json
import math
import os
from pathlib import Path

DEFAULT_HOTKEY = "Key.alt_l"
DEFAULT_MAX_RECORDING_SECONDS = 30.0
DEFAULT_SAMPLE_RATE = 16000
DEFAULT_MODEL = "paraformer-realtime-v2"


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "voice_capture" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        data = self._read_all()
        return str(data.get("api_key", "") or os.getenv("DASHSCOPE_API_KEY", ""))

    def set_api_key(self, key: str) -> None:
        data = self._read_all()
        data["api_key"] = key
        self._write_all(data)

    def get_hotkey(self) -> str:
        data = self._read_all()
        return str(data.get("hotkey", DEFAULT_HOTKEY))

    def set_hotkey(self, hotkey: str) -> None:
        data = self._read_all()
        data["hotkey"] = hotkey
        self._write_all(data)

    def get_max_recording_seconds(self) -> float:
        value = self._read_all().get("max_recording_seconds", DEFAULT_MAX_RECORDING_SECONDS)
        try:
            seconds = float(value)
        except (TypeError, ValueError):
            return DEFAULT_MAX_RECORDING_SECONDS
        return seconds if math.isfinite(seconds) and seconds > 0 else DEFAULT_MAX_RECORDING_SECONDS

    def set_max_recording_seconds(self, seconds: float) -> None:
        if not math.isfinite(seconds) or seconds <= 0:
            raise ValueError("max_recording_seconds must be a positive finite number")
        data = self._read_all()
        data["max_recording_seconds"] = float(seconds)
        self._write_all(data)

    def get_sample_rate(self) -> int:
        value = self._read_all().get("sample_rate", DEFAULT_SAMPLE_RATE)
        try:
            rate = int(value)
        except (TypeError, ValueError):
            return DEFAULT_SAMPLE_RATE
        return rate if rate > 0 else DEFAULT_SAMPLE_RATE

    def get_model(self) -> str:
        return str(self._read_all().get("model", DEFAULT_MODEL) or DEFAULT_MODEL)

    def get_audio_signal(self) -> bool:
        return bool(self._read_all().get("audio_signal", True))

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

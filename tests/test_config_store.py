from __future__ import annotations

import json
from pathlib import Path

import pytest

from config import JsonConfigStore


@pytest.fixture(autouse=True)
def _no_env_key(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.delenv("DASHSCOPE_API_KEY", raising=False)


def test_config_read_write(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)

    assert store.get_api_key() == ""
    assert store.get_hotkey() == "Key.alt_l"
    assert store.get_max_recording_seconds() == 30.0
    assert store.get_sample_rate() == 16000
    assert store.get_model() == "paraformer-realtime-v2"

    store.set_api_key("abc")
    store.set_hotkey("Key.alt_r")
    store.set_max_recording_seconds(12)

    reloaded = JsonConfigStore(path=path)
    assert reloaded.get_api_key() == "abc"
    assert reloaded.get_hotkey() == "Key.alt_r"
    assert reloaded.get_max_recording_seconds() == 12.0


def test_config_invalid_json_fallback(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{invalid", encoding="utf-8")

    store = JsonConfigStore(path=path)
    assert store.get_api_key() == ""
    assert store.get_hotkey() == "Key.alt_l"
    assert store.get_max_recording_seconds() == 30.0


def test_config_invalid_numbers_fall_back(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps({"max_recording_seconds": -4, "sample_rate": "fast"}),
        encoding="utf-8",
    )

    store = JsonConfigStore(path=path)
    assert store.get_max_recording_seconds() == 30.0
    assert store.get_sample_rate() == 16000


def test_set_max_recording_seconds_rejects_non_positive(tmp_path: Path) -> None:
    store = JsonConfigStore(path=tmp_path / "config.json")
    with pytest.raises(ValueError):
        store.set_max_recording_seconds(0)


def test_api_key_falls_back_to_environment(tmp_path: Path, monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setenv("DASHSCOPE_API_KEY", "from-env")
    store = JsonConfigStore(path=tmp_path / "config.json")
    assert store.get_api_key() == "from-env"


@pytest.mark.parametrize("stored", ['"inf"', '"nan"', "Infinity"])
def test_non_finite_recording_ceiling_falls_back(tmp_path: Path, stored: str) -> None:
    path = tmp_path / "config.json"
    path.write_text('{"max_recording_seconds": %s}' % stored, encoding="utf-8")

    assert JsonConfigStore(path=path).get_max_recording_seconds() == 30.0


def test_set_max_recording_seconds_rejects_non_finite(tmp_path: Path) -> None:
    store = JsonConfigStore(path=tmp_path / "config.json")
    with pytest.raises(ValueError):
        store.set_max_recording_seconds(float("inf"))


def test_audio_signal_defaults_on(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    assert JsonConfigStore(path=path).get_audio_signal() is True

    path.write_text(json.dumps({"audio_signal": False}), encoding="utf-8")
    assert JsonConfigStore(path=path).get_audio_signal() is False

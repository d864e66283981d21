from __future__ import annotations

import json
from pathlib import Path

import pytest

from config import JsonConfigStore
from models import PipelineSettings


def test_config_read_write(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)

    assert store.get_api_key() == ""
    assert store.get_hotkey() == "Key.f9"
    assert store.get_backend() == "local"
    assert store.get_model_size() == "base"
    assert store.get_input_device() is None

    store.set_api_key("abc")
    store.set_hotkey("Key.f8")
    store.set_backend("dashscope")
    store.set_model_size("small")
    store.set_input_device(2)

    reloaded = JsonConfigStore(path=path)
    assert reloaded.get_api_key() == "abc"
    assert reloaded.get_hotkey() == "Key.f8"
    assert reloaded.get_backend() == "dashscope"
    assert reloaded.get_model_size() == "small"
    assert reloaded.get_input_device() == 2


def test_config_invalid_json_fallback(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{invalid", encoding="utf-8")

    store = JsonConfigStore(path=path)
    assert store.get_api_key() == ""
    assert store.get_hotkey() == "Key.f9"
    assert store.get_pipeline_settings() == PipelineSettings()


def test_unknown_backend_is_rejected(tmp_path: Path) -> None:
    store = JsonConfigStore(path=tmp_path / "config.json")
    with pytest.raises(ValueError):
        store.set_backend("cloud")


def test_pipeline_overrides_apply_valid_values_only(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "pipeline": {
                    "flush_interval_ms": 5000,
                    "overlap_s": 0.2,
                    "min_window_s": "long",
                    "history_size": -1,
                    "restart_delay_ms": True,
                    "unknown": 3,
                }
            }
        ),
        encoding="utf-8",
    )

    settings = JsonConfigStore(path=path).get_pipeline_settings()

    assert settings.flush_interval_ms == 5000
    assert settings.overlap_s == 0.2
    assert settings.overlap_samples == 3200
    assert settings.min_window_s == 1.0
    assert settings.history_size == 5
    assert settings.restart_delay_ms == 1000

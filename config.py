"""Simple JSON-based config store."""

from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path

from models import PipelineSettings

BACKENDS = ("local", "dashscope")


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "whisper_live" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        data = self._read_all()
        return str(data.get("api_key", ""))

    def set_api_key(self, key: str) -> None:
        self._update("api_key", key)

    def get_hotkey(self) -> str:
        data = self._read_all()
        return str(data.get("hotkey", "Key.f9"))

    def set_hotkey(self, hotkey: str) -> None:
        self._update("hotkey", hotkey)

    def get_backend(self) -> str:
        value = str(self._read_all().get("backend", "local"))
        return value if value in BACKENDS else "local"

    def set_backend(self, backend: str) -> None:
        if backend not in BACKENDS:
            raise ValueError(f"unknown backend: {backend}")
        self._update("backend", backend)

    def get_model_size(self) -> str:
        return str(self._read_all().get("model_size", "base"))

    def set_model_size(self, size: str) -> None:
        self._update("model_size", size)

    def get_input_device(self) -> int | str | None:
        value = self._read_all().get("input_device")
        if isinstance(value, (int, str)) and not isinstance(value, bool):
            return value
        return None

    def set_input_device(self, device: int | str | None) -> None:
        self._update("input_device", device)

    def get_pipeline_settings(self) -> PipelineSettings:
        """Defaults overridden by valid entries of the "pipeline" object."""
        settings = PipelineSettings()
        overrides = self._read_all().get("pipeline")
        if not isinstance(overrides, dict):
            return settings
        for field in fields(PipelineSettings):
            if field.name not in overrides:
                continue
            default = getattr(settings, field.name)
            value = overrides[field.name]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                continue
            setattr(settings, field.name, type(default)(value))
        return settings

    def _update(self, key: str, value: object) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

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

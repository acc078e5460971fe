"""Simple JSON-based config store."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from prompts import PromptMode

logger = logging.getLogger(__name__)

API_KEY_ENV = "OPENROUTER_API_KEY"


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "voiceflow" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        data = self._read_all()
        return str(data.get("api_key", "")) or os.getenv(API_KEY_ENV, "")

    def set_api_key(self, key: str) -> None:
        self._update("api_key", key.strip())

    def get_default_mode(self) -> PromptMode:
        data = self._read_all()
        return PromptMode.parse(data.get("default_mode", PromptMode.default().value))

    def set_default_mode(self, mode: PromptMode) -> None:
        self._update("default_mode", mode.value)

    def get_custom_prompt(self) -> str:
        data = self._read_all()
        return str(data.get("custom_prompt", ""))

    def set_custom_prompt(self, prompt: str) -> None:
        self._update("custom_prompt", prompt)

    def get_hotkey(self) -> str:
        data = self._read_all()
        return str(data.get("hotkey", "Key.alt_r"))

    def set_hotkey(self, hotkey: str) -> None:
        self._update("hotkey", hotkey)

    def get_fix_hotkey(self) -> str:
        data = self._read_all()
        return str(data.get("fix_hotkey", "Key.f8"))

    def _update(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable config %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

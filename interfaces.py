"""Protocol interfaces used by the controllers."""

from __future__ import annotations

from concurrent.futures import Future
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

from models import AudioArtifact, PasteResult
from prompts import PromptMode


class Recorder(Protocol):
    @property
    def audio_format(self) -> str: ...

    def start(self) -> bool: ...

    def stop(self) -> Optional[AudioArtifact]: ...

    def cancel(self) -> None: ...

    def delete_file(self, path: Path) -> None: ...

    def cleanup_old_files(self, max_age_s: float = 300.0) -> None: ...


class TranscriptionBackend(Protocol):
    def transcribe(
        self,
        audio_bytes: bytes,
        audio_format: str,
        mode: PromptMode,
        custom_prompt: Optional[str] = None,
    ) -> str: ...


class CorrectionBackend(Protocol):
    def correct_text(self, text: str) -> str: ...


class TextField(Protocol):
    def read_all_text(self) -> str: ...

    def replace_all_text(self, text: str) -> PasteResult: ...

    def insert_at_cursor(self, text: str) -> PasteResult: ...


class PermissionChecker(Protocol):
    def has_microphone_permission(self) -> bool: ...


class Haptics(Protocol):
    def vibrate(self, duration_ms: int) -> None: ...


class ConfigStore(Protocol):
    def get_api_key(self) -> str: ...

    def set_api_key(self, key: str) -> None: ...

    def get_default_mode(self) -> PromptMode: ...

    def set_default_mode(self, mode: PromptMode) -> None: ...

    def get_custom_prompt(self) -> str: ...

    def set_custom_prompt(self, prompt: str) -> None: ...


class Executor(Protocol):
    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future: ...

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None: ...

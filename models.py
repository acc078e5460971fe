"""Core data models for the app."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import ClassVar, Optional, Union

from prompts import PromptMode

MAX_RECORDING_DURATION_SECONDS = 600
WARNING_THRESHOLD_SECONDS = 60


class SessionState(str, Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Idle:
    kind: ClassVar[SessionState] = SessionState.IDLE


@dataclass(frozen=True)
class Recording:
    elapsed_seconds: int = 0
    mode: PromptMode = PromptMode.CLEAN

    kind: ClassVar[SessionState] = SessionState.RECORDING

    @property
    def elapsed_ms(self) -> int:
        return self.elapsed_seconds * 1000

    @property
    def remaining_seconds(self) -> int:
        return MAX_RECORDING_DURATION_SECONDS - self.elapsed_seconds

    @property
    def is_near_limit(self) -> bool:
        return self.remaining_seconds <= WARNING_THRESHOLD_SECONDS


@dataclass(frozen=True)
class Processing:
    # None for text correction, which has no mode.
    mode: Optional[PromptMode] = None

    kind: ClassVar[SessionState] = SessionState.PROCESSING


@dataclass(frozen=True)
class Success:
    text: str = ""

    kind: ClassVar[SessionState] = SessionState.SUCCESS


@dataclass(frozen=True)
class Error:
    code: str
    message: str
    recoverable: bool = True

    kind: ClassVar[SessionState] = SessionState.ERROR


State = Union[Idle, Recording, Processing, Success, Error]


@dataclass(frozen=True)
class AudioArtifact:
    path: Path
    audio_format: str


@dataclass
class PasteResult:
    success: bool
    reason: str
    clipboard_restored: bool

"""Prompt catalog: transcription modes and the instructions sent for each."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class PromptSpec:
    system_prompt: str
    user_instruction: str
    display_name: str


class PromptMode(str, Enum):
    RAW = "raw"
    CLEAN = "clean"
    TRANSLATE = "translate"
    CUSTOM = "custom"

    @property
    def spec(self) -> PromptSpec:
        return _CATALOG[self]

    @property
    def system_prompt(self) -> str:
        return self.spec.system_prompt

    @property
    def user_instruction(self) -> str:
        return self.spec.user_instruction

    @property
    def display_name(self) -> str:
        return self.spec.display_name

    @classmethod
    def default(cls) -> "PromptMode":
        return cls.CLEAN

    @classmethod
    def parse(cls, value: object) -> "PromptMode":
        """Mode for a stored value, falling back to the default."""
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.default()


_CATALOG = {
    PromptMode.RAW: PromptSpec(
        system_prompt=(
            "Transcribe the audio verbatim. Preserve filler words, hesitations, "
            "and original language exactly as spoken."
        ),
        user_instruction="Transcribe this audio exactly as spoken.",
        display_name="Raw",
    ),
    PromptMode.CLEAN: PromptSpec(
        system_prompt=(
            "Transcribe and clean up: remove filler words (um, uh), fix grammar "
            "and punctuation, preserve core meaning."
        ),
        user_instruction="Transcribe and clean up this audio.",
        display_name="Clean",
    ),
    PromptMode.TRANSLATE: PromptSpec(
        system_prompt=(
            "Translate the speech to English regardless of source language. "
            "Output natural, fluent English translation only."
        ),
        user_instruction="Translate this audio to English.",
        display_name="Translate",
    ),
    # The custom system prompt comes from the user's settings.
    PromptMode.CUSTOM: PromptSpec(
        system_prompt="",
        user_instruction="Process this audio following the instructions.",
        display_name="Custom",
    ),
}


def _uses_clean_fallback(mode: PromptMode, custom_prompt: Optional[str]) -> bool:
    return mode == PromptMode.CUSTOM and not (custom_prompt or "").strip()


def effective_prompt(mode: PromptMode, custom_prompt: Optional[str] = None) -> str:
    """System instruction for ``mode``.

    Custom mode uses ``custom_prompt``; a blank custom prompt behaves exactly
    like Clean. Other modes ignore ``custom_prompt``.
    """
    if _uses_clean_fallback(mode, custom_prompt):
        return PromptMode.CLEAN.system_prompt
    if mode == PromptMode.CUSTOM:
        return (custom_prompt or "").strip()
    return mode.system_prompt


def effective_user_instruction(mode: PromptMode, custom_prompt: Optional[str] = None) -> str:
    if _uses_clean_fallback(mode, custom_prompt):
        return PromptMode.CLEAN.user_instruction
    return mode.user_instruction

from __future__ import annotations

import pytest

from prompts import PromptMode, effective_prompt, effective_user_instruction


@pytest.mark.parametrize("mode", list(PromptMode))
@pytest.mark.parametrize("blank", [None, "", "   \n"])
def test_blank_custom_prompt_behaves_like_clean(mode: PromptMode, blank: str | None) -> None:
    assert effective_prompt(PromptMode.CUSTOM, blank) == effective_prompt(PromptMode.CLEAN, "anything")
    assert effective_user_instruction(PromptMode.CUSTOM, blank) == PromptMode.CLEAN.user_instruction
    assert effective_prompt(PromptMode.CUSTOM, blank) != PromptMode.RAW.system_prompt


def test_custom_prompt_is_used_when_set() -> None:
    assert effective_prompt(PromptMode.CUSTOM, "  Summarize in one line. ") == "Summarize in one line."
    assert effective_user_instruction(PromptMode.CUSTOM, "x") == PromptMode.CUSTOM.user_instruction


@pytest.mark.parametrize("mode", [PromptMode.RAW, PromptMode.CLEAN, PromptMode.TRANSLATE])
def test_builtin_modes_ignore_custom_prompt(mode: PromptMode) -> None:
    assert effective_prompt(mode, "ignored") == mode.system_prompt
    assert mode.system_prompt
    assert mode.user_instruction


def test_display_names_and_default() -> None:
    assert [m.display_name for m in PromptMode] == ["Raw", "Clean", "Translate", "Custom"]
    assert PromptMode.default() == PromptMode.CLEAN
    assert PromptMode.parse("RAW") == PromptMode.RAW
    assert PromptMode.parse(None) == PromptMode.CLEAN

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

import hotkey as hotkey_mod
from hotkey import GlobalHotkeyAdapter


def test_press_fires_once_until_release() -> None:
    adapter = GlobalHotkeyAdapter(hotkey_name="Key.alt_r")
    presses: list[str] = []
    releases: list[str] = []

    on_press = lambda: presses.append("down")  # noqa: E731
    on_release = lambda: releases.append("up")  # noqa: E731

    adapter._handle_press("Key.alt_r", on_press)
    adapter._handle_press("Key.alt_r", on_press)  # auto-repeat
    adapter._handle_press("Key.shift", on_press)
    adapter._handle_release("Key.alt_r", on_release)
    adapter._handle_release("Key.alt_r", on_release)

    assert presses == ["down"]
    assert releases == ["up"]


def test_release_callback_is_optional() -> None:
    adapter = GlobalHotkeyAdapter(hotkey_name="Key.f8")
    fired: list[int] = []

    adapter._handle_press("Key.f8", lambda: fired.append(1))
    adapter._handle_release("Key.f8", None)

    assert fired == [1]


@patch("hotkey.keyboard")
def test_start_and_stop_listener(mock_keyboard: MagicMock) -> None:
    listener = MagicMock()
    mock_keyboard.Listener.return_value = listener

    adapter = GlobalHotkeyAdapter()
    adapter.start(on_press=lambda: None)
    listener.start.assert_called_once()

    adapter.stop()
    listener.stop.assert_called_once()


def test_start_raises_without_pynput(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(hotkey_mod, "keyboard", None)
    with pytest.raises(RuntimeError, match="pynput is not installed"):
        GlobalHotkeyAdapter().start(on_press=lambda: None)

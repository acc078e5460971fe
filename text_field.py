"""Focused-application text field driven through the clipboard."""

from __future__ import annotations

import logging
import sys
import time

from errors import NO_INPUT_FIELD
from models import PasteResult

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore

try:
    from pynput.keyboard import Controller, Key
except Exception:  # pragma: no cover
    Controller = None  # type: ignore
    Key = None  # type: ignore

logger = logging.getLogger(__name__)


class ClipboardTextField:
    """Reads and writes the focused text field with select-all/copy/paste.

    The user's clipboard is restored after every operation.
    """

    def __init__(self, restore_delay_s: float = 0.1) -> None:
        self._restore_delay_s = restore_delay_s

    def insert_at_cursor(self, text: str) -> PasteResult:
        return self._paste(text, select_all=False)

    def replace_all_text(self, text: str) -> PasteResult:
        return self._paste(text, select_all=True)

    def read_all_text(self) -> str:
        if not self._available():
            return ""
        old_clip: str | None = None
        try:
            old_clip = pyperclip.paste()
            pyperclip.copy("")
            keyboard = Controller()
            self._shortcut(keyboard, "a")
            self._shortcut(keyboard, "c")
            time.sleep(self._restore_delay_s)
            text = pyperclip.paste()
            # Collapse the selection so a later paste does not overwrite it.
            keyboard.press(Key.right)
            keyboard.release(Key.right)
            return text or ""
        except Exception as exc:
            logger.error("Reading the focused field failed: %s", exc)
            return ""
        finally:
            if old_clip is not None:
                self._restore(old_clip)

    def _paste(self, text: str, select_all: bool) -> PasteResult:
        if not text.strip():
            return PasteResult(success=False, reason="empty text", clipboard_restored=True)
        if not self._available():
            return PasteResult(
                success=False,
                reason="clipboard/keyboard dependency missing",
                clipboard_restored=False,
            )

        old_clip: str | None = None
        try:
            old_clip = pyperclip.paste()
            pyperclip.copy(text)
            keyboard = Controller()
            if select_all:
                self._shortcut(keyboard, "a")
            self._shortcut(keyboard, "v")
            time.sleep(self._restore_delay_s)
            pyperclip.copy(old_clip)
            return PasteResult(success=True, reason="ok", clipboard_restored=True)
        except Exception as exc:
            restored = old_clip is not None and self._restore(old_clip)
            return PasteResult(
                success=False,
                reason=f"{NO_INPUT_FIELD}: {exc}",
                clipboard_restored=restored,
            )

    def _available(self) -> bool:
        return pyperclip is not None and Controller is not None and Key is not None

    def _shortcut(self, keyboard: object, char: str) -> None:
        modifier = Key.cmd if sys.platform == "darwin" else Key.ctrl
        keyboard.press(modifier)
        keyboard.press(char)
        keyboard.release(char)
        keyboard.release(modifier)

    def _restore(self, old_clip: str) -> bool:
        try:
            pyperclip.copy(old_clip)
            return True
        except Exception:
            return False

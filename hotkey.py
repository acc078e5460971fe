"""Global hotkey adapter based on pynput."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore

logger = logging.getLogger(__name__)


class GlobalHotkeyAdapter:
    """Fires ``on_press`` once per key-down and ``on_release`` on key-up.

    Auto-repeat while the key is held does not fire ``on_press`` again.
    """

    def __init__(self, hotkey_name: str = "Key.alt_r") -> None:
        self._hotkey_name = hotkey_name
        self._listener: Optional[object] = None
        self._pressed = False
        self._lock = threading.Lock()

    def start(
        self,
        on_press: Callable[[], None],
        on_release: Optional[Callable[[], None]] = None,
    ) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")
        self._listener = keyboard.Listener(
            on_press=lambda key: self._handle_press(key, on_press),
            on_release=lambda key: self._handle_release(key, on_release),
        )
        self._listener.start()
        logger.info("Listening for hotkey %s", self._hotkey_name)

    def stop(self) -> None:
        listener = self._listener
        if listener is not None:
            listener.stop()
            self._listener = None

    def _handle_press(self, key: object, on_press: Callable[[], None]) -> None:
        if str(key) != self._hotkey_name:
            return
        with self._lock:
            if self._pressed:
                return
            self._pressed = True
        on_press()

    def _handle_release(self, key: object, on_release: Optional[Callable[[], None]]) -> None:
        if str(key) != self._hotkey_name:
            return
        with self._lock:
            if not self._pressed:
                return
            self._pressed = False
        if on_release is not None:
            on_release()

"""Application entrypoint."""

from __future__ import annotations

import logging
import sys
import threading

from config import JsonConfigStore
from correction_controller import TextCorrectionController
from hotkey import GlobalHotkeyAdapter
from models import Error, Idle, Recording, State
from overlay import OverlayWindow, correction_may_redraw
from prompts import PromptMode
from recorder import SoundDevicePermission, SoundDeviceRecorder
from session_controller import SessionController
from text_field import ClipboardTextField

try:
    from PySide6.QtCore import QObject, Signal, QSize
    from PySide6.QtGui import QAction, QActionGroup, QBrush, QColor, QIcon, QPainter, QPixmap
    from PySide6.QtWidgets import QApplication, QInputDialog, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger(__name__)


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


ICON_IDLE = "#888888"      # grey
ICON_RECORDING = "#FF4444"  # red
ICON_ERROR = "#FF8800"     # orange


class BeepHaptics:
    """Desktop stand-in for vibration: a short system beep."""

    def vibrate(self, duration_ms: int) -> None:
        QApplication.beep()


class UIBridge(QObject):
    state_signal = Signal(object)


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store = JsonConfigStore()
        self.overlay = OverlayWindow()
        self.ui = UIBridge()
        self.ui.state_signal.connect(self._on_state_ui)

        text_field = ClipboardTextField()
        self.controller = SessionController(
            recorder=SoundDeviceRecorder(),
            config=self.config_store,
            permission=SoundDevicePermission(),
            text_field=text_field,
            haptics=BeepHaptics(),
            on_state_change=self._on_state_change,
        )
        self.corrector = TextCorrectionController(
            config=self.config_store,
            text_field=text_field,
            on_state_change=self._on_correction_change,
        )
        self.hotkey = GlobalHotkeyAdapter(hotkey_name=self.config_store.get_hotkey())
        self.fix_hotkey = GlobalHotkeyAdapter(hotkey_name=self.config_store.get_fix_hotkey())

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.tray.setToolTip("VoiceFlow — Ready")
        self._setup_menu()
        self.tray.show()

    def _setup_menu(self) -> None:
        menu = QMenu()

        mode_menu = menu.addMenu("Mode")
        group = QActionGroup(mode_menu)
        for mode in PromptMode:
            action = QAction(mode.display_name, mode_menu, checkable=True)
            action.setChecked(mode == self.controller.mode)
            action.triggered.connect(lambda _checked, m=mode: self.controller.set_mode(m))
            group.addAction(action)
            mode_menu.addAction(action)

        fix_action = QAction("Fix Text in Focused Field", menu)
        fix_action.triggered.connect(self._fix_text)
        menu.addAction(fix_action)

        menu.addSeparator()
        api_action = QAction("Set API Key", menu)
        api_action.triggered.connect(self._set_api_key)
        menu.addAction(api_action)

        prompt_action = QAction("Set Custom Prompt", menu)
        prompt_action.triggered.connect(self._set_custom_prompt)
        menu.addAction(prompt_action)

        hotkey_action = QAction("Set Hotkey", menu)
        hotkey_action.triggered.connect(self._set_hotkey)
        menu.addAction(hotkey_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)
        self._menu = menu

    def _set_api_key(self) -> None:
        value, ok = QInputDialog.getText(None, "API Key", "OpenRouter API Key")
        if not ok:
            return
        self.config_store.set_api_key(value)
        QMessageBox.information(None, "Saved", "API Key saved.")

    def _set_custom_prompt(self) -> None:
        value, ok = QInputDialog.getMultiLineText(
            None,
            "Custom Prompt",
            "Instructions for Custom mode (blank uses Clean):",
            self.config_store.get_custom_prompt(),
        )
        if ok:
            self.config_store.set_custom_prompt(value)

    def _set_hotkey(self) -> None:
        value, ok = QInputDialog.getText(
            None, "Hotkey", "Use pynput key format, e.g. Key.alt_r"
        )
        if not ok or not value.strip():
            return
        self.config_store.set_hotkey(value.strip())
        QMessageBox.information(None, "Saved", "Hotkey saved. Restart app to apply.")

    # ------------------------------------------------------------------
    # Callbacks (called from worker threads → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: State, to_state: State) -> None:
        self.ui.state_signal.emit(to_state)

    def _on_correction_change(self, from_state: State, to_state: State) -> None:
        if correction_may_redraw(self.controller.state, to_state):
            self.ui.state_signal.emit(to_state)

    def _on_state_ui(self, state: State) -> None:
        self.overlay.show_state(state)
        if isinstance(state, Recording):
            self.tray.setIcon(_create_icon(ICON_RECORDING))
            self.tray.setToolTip("VoiceFlow — Recording...")
        elif isinstance(state, Error):
            self.tray.setIcon(_create_icon(ICON_ERROR))
            self.tray.setToolTip(f"VoiceFlow — {state.message}")
        elif isinstance(state, Idle):
            self.tray.setIcon(_create_icon(ICON_IDLE))
            self.tray.setToolTip("VoiceFlow — Ready")
        else:
            self.tray.setToolTip("VoiceFlow — Processing...")

    # ------------------------------------------------------------------
    # Hotkey handlers
    # ------------------------------------------------------------------

    def _on_hotkey_press(self) -> None:
        # A press while an error is shown only acknowledges it.
        if isinstance(self.controller.state, Error):
            self.controller.dismiss()
            return
        self.controller.start()

    def _on_hotkey_release(self) -> None:
        # stop() waits out the recorder's minimum duration; keep it off
        # the listener thread.
        threading.Thread(target=self.controller.stop, daemon=True).start()

    def _fix_text(self) -> None:
        self.corrector.dismiss()
        threading.Thread(target=self.corrector.fix_current_text, daemon=True).start()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        try:
            self.hotkey.start(
                on_press=self._on_hotkey_press,
                on_release=self._on_hotkey_release,
            )
            self.fix_hotkey.start(on_press=self._fix_text)
        except Exception as exc:
            logger.error("Hotkeys disabled: %s", exc)
            self.overlay.show_error(f"Hotkey disabled: {exc}")
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self.fix_hotkey.stop()
        self.controller.shutdown()
        self.corrector.shutdown()
        self.app.quit()


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())

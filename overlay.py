"""Overlay window showing recording, processing and error feedback."""

from __future__ import annotations

from models import Error, Idle, Processing, Recording, State, Success

try:
    from PySide6.QtCore import Qt, QTimer
    from PySide6.QtWidgets import QApplication, QLabel, QWidget, QVBoxLayout
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QTimer = None  # type: ignore
    QApplication = None  # type: ignore
    QLabel = object  # type: ignore
    QWidget = object  # type: ignore
    QVBoxLayout = object  # type: ignore

_NORMAL_STYLE = (
    "color: white; font-size: 18px; padding: 16px;"
    "background: rgba(0,0,0,190); border-radius: 12px;"
)
_ERROR_STYLE = (
    "color: #FF6B6B; font-size: 18px; padding: 16px;"
    "background: rgba(0,0,0,210); border-radius: 12px;"
)


def format_elapsed(seconds: int) -> str:
    minutes, secs = divmod(max(seconds, 0), 60)
    return f"{minutes}:{secs:02d}"


def describe_state(state: State) -> str:
    """Overlay text for a voice or correction state."""
    if isinstance(state, Recording):
        text = f"🎙️ {format_elapsed(state.elapsed_seconds)} · {state.mode.display_name}"
        if state.is_near_limit:
            text += f" ({format_elapsed(state.remaining_seconds)} left)"
        return text
    if isinstance(state, Processing):
        if state.mode is None:
            return "Correcting text..."
        return f"Transcribing ({state.mode.display_name})..."
    if isinstance(state, Success):
        return "✓ Done"
    if isinstance(state, Error):
        return f"⚠️ {state.message}"
    return ""


def correction_may_redraw(voice_state: State, correction_state: State) -> bool:
    """Whether a correction transition may redraw the shared overlay.

    A correction returning to Idle must not hide an active voice session.
    """
    return isinstance(voice_state, Idle) or not isinstance(correction_state, Idle)


class OverlayWindow(QWidget):
    def __init__(self) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self.setWindowFlags(
            Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool
        )
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setFixedWidth(600)

        self._label = QLabel("")
        self._label.setWordWrap(True)
        self._label.setStyleSheet(_NORMAL_STYLE)

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._label)
        self.setLayout(layout)

        self._hide_timer: QTimer | None = None

    def show_state(self, state: State) -> None:
        if isinstance(state, Idle):
            self.hide_with_delay(400)
            return
        if isinstance(state, Error):
            self.show_error(state.message)
            return
        self._label.setStyleSheet(_NORMAL_STYLE)
        self.set_text(describe_state(state))

    def set_text(self, text: str) -> None:
        """Update overlay text and show at screen top center."""
        self._cancel_hide_timer()
        self._label.setText(text)
        self._center_top()
        self.show()

    def show_error(self, text: str, hide_after_ms: int = 4000) -> None:
        self._label.setStyleSheet(_ERROR_STYLE)
        self.set_text(f"⚠️ {text}")
        self.hide_with_delay(hide_after_ms)

    def hide_with_delay(self, delay_ms: int = 400) -> None:
        self._cancel_hide_timer()
        self._hide_timer = QTimer()
        self._hide_timer.setSingleShot(True)
        self._hide_timer.timeout.connect(self.hide)
        self._hide_timer.start(delay_ms)

    def _center_top(self) -> None:
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.adjustSize()
        x = geom.x() + (geom.width() - self.width()) // 2
        y = geom.y() + 40  # below the menu bar
        self.move(x, y)

    def _cancel_hide_timer(self) -> None:
        if self._hide_timer is not None:
            self._hide_timer.stop()
            self._hide_timer = None

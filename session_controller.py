"""State-machine based voice session orchestration.

Idle -> Recording -> Processing -> (Success | Error) -> Idle

Every state write happens under one re-entrant lock. The tick timer thread
and the background transcription worker both go through that lock, so a tick
and a finished request are applied one after the other in arrival order.
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional

from errors import (
    API_KEY_MISSING,
    CAPTURE_FAILED,
    GENERIC_ERROR,
    PERMISSION_DENIED,
    RATE_LIMITED,
    ApiError,
    surfaced_code,
    user_message,
)
from interfaces import (
    ConfigStore,
    Executor,
    Haptics,
    PermissionChecker,
    Recorder,
    TextField,
    TranscriptionBackend,
)
from models import (
    MAX_RECORDING_DURATION_SECONDS,
    WARNING_THRESHOLD_SECONDS,
    AudioArtifact,
    Error,
    Idle,
    Processing,
    Recording,
    State,
    Success,
)
from openrouter_client import TranscriptionClient
from prompts import PromptMode
from state_holder import StateCallback, StateHolder

logger = logging.getLogger(__name__)

TICK_INTERVAL_S = 1.0
WARNING_AT_SECONDS = MAX_RECORDING_DURATION_SECONDS - WARNING_THRESHOLD_SECONDS
RATE_LIMIT_RETRY_DELAY_S = 3.0
SUCCESS_DISPLAY_S = 0.5

VIBRATE_START_MS = 50
VIBRATE_CANCEL_MS = 30
VIBRATE_WARNING_MS = 200
VIBRATE_CEILING_MS = 100

ClientFactory = Callable[[str], TranscriptionBackend]


class RepeatingTimer:
    """Calls ``callback`` every ``interval_s`` on a daemon thread until cancelled."""

    def __init__(self, interval_s: float, callback: Callable[[], None]) -> None:
        self._interval_s = interval_s
        self._callback = callback
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._run, name="session-tick", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._cancelled.set()

    def _run(self) -> None:
        while not self._cancelled.wait(self._interval_s):
            self._callback()


TimerFactory = Callable[[float, Callable[[], None]], RepeatingTimer]


class SessionController:
    def __init__(
        self,
        recorder: Recorder,
        config: ConfigStore,
        permission: PermissionChecker,
        text_field: Optional[TextField] = None,
        haptics: Optional[Haptics] = None,
        client_factory: ClientFactory = TranscriptionClient,
        executor: Optional[Executor] = None,
        timer_factory: TimerFactory = RepeatingTimer,
        tick_interval_s: float = TICK_INTERVAL_S,
        retry_delay_s: float = RATE_LIMIT_RETRY_DELAY_S,
        success_display_s: float = SUCCESS_DISPLAY_S,
        sleep: Callable[[float], None] = time.sleep,
        on_state_change: Optional[StateCallback] = None,
    ) -> None:
        self._recorder = recorder
        self._config = config
        self._permission = permission
        self._text_field = text_field
        self._haptics = haptics
        self._client_factory = client_factory
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="voice-session"
        )
        self._timer_factory = timer_factory
        self._tick_interval_s = tick_interval_s
        self._retry_delay_s = retry_delay_s
        self._success_display_s = success_display_s
        self._sleep = sleep

        self._lock = threading.RLock()
        self._holder = StateHolder(Idle())
        if on_state_change is not None:
            self._holder.subscribe(on_state_change)

        self._session_id = 0
        self._timer: Optional[RepeatingTimer] = None
        self._client: Optional[TranscriptionBackend] = None
        self._elapsed_seconds = 0
        self._warned = False
        self._closed = False
        self._mode = self._load_default_mode()

        try:
            self._recorder.cleanup_old_files()
        except Exception:
            logger.warning("Sweeping old recordings failed", exc_info=True)

    @property
    def state(self) -> State:
        return self._holder.state

    @property
    def mode(self) -> PromptMode:
        return self._mode

    def subscribe(self, observer: StateCallback) -> Callable[[], None]:
        with self._lock:
            return self._holder.subscribe(observer)

    def set_text_field(self, text_field: Optional[TextField]) -> None:
        with self._lock:
            self._text_field = text_field

    def set_mode(self, mode: PromptMode) -> None:
        """Select the mode for the current or next session and remember it."""
        with self._lock:
            state = self.state
            if isinstance(state, Processing):
                logger.debug("set_mode() ignored while processing")
                return
            self._mode = mode
            if isinstance(state, Recording):
                self._holder.publish(Recording(state.elapsed_seconds, mode))
        try:
            self._config.set_default_mode(mode)
        except Exception:
            logger.warning("Could not persist default mode", exc_info=True)

    def start(self) -> bool:
        with self._lock:
            if self._closed or not isinstance(self.state, Idle):
                logger.debug("start() ignored in state %s", self.state.kind.value)
                return False

            if not self._permission.has_microphone_permission():
                logger.error("start() - no microphone permission")
                self._fail(PERMISSION_DENIED)
                return False

            api_key = self._config.get_api_key()
            if not api_key.strip():
                logger.error("start() - no API key")
                self._fail(API_KEY_MISSING)
                return False
            logger.debug("start() - API key length: %d", len(api_key))
            self._client = self._client_factory(api_key)

            try:
                started = self._recorder.start()
            except Exception as exc:
                logger.error("start() - recorder raised: %s", exc)
                started = False
            if not started:
                self._safe_cancel_recorder()
                self._fail(CAPTURE_FAILED)
                return False

            self._session_id += 1
            self._elapsed_seconds = 0
            self._warned = False
            self._holder.publish(Recording(elapsed_seconds=0, mode=self._mode))
            self._start_timer(self._session_id)
            self._vibrate(VIBRATE_START_MS)
            logger.info("Recording started in %s mode", self._mode.value)
            return True

    def stop(self, mode: Optional[PromptMode] = None) -> None:
        """Finish recording and hand the audio to the transcription worker."""
        with self._lock:
            if not isinstance(self.state, Recording):
                logger.debug("stop() ignored in state %s", self.state.kind.value)
                return
            if mode is not None:
                self._mode = mode
            self._cancel_timer()

            artifact = self._finalize_capture()
            if artifact is None:
                self._fail(CAPTURE_FAILED)
                return

            session_id = self._session_id
            session_mode = self._mode
            client = self._client
            self._holder.publish(Processing(mode=session_mode))

        try:
            self._executor.submit(
                self._transcribe_and_insert, session_id, artifact, session_mode, client
            )
        except RuntimeError as exc:
            logger.warning("Transcription not dispatched: %s", exc)
            self._recorder.delete_file(artifact.path)

    def cancel(self) -> None:
        """Discard the recording. Only defined while recording."""
        with self._lock:
            if not isinstance(self.state, Recording):
                return
            self._cancel_timer()
            self._safe_cancel_recorder()
            self._holder.publish(Idle())
            self._vibrate(VIBRATE_CANCEL_MS)
            logger.info("Recording cancelled")

    def dismiss(self) -> None:
        with self._lock:
            if isinstance(self.state, Error):
                self._holder.publish(Idle())

    def shutdown(self) -> None:
        """Stop timers, release the microphone and abandon in-flight work."""
        with self._lock:
            self._closed = True
            self._session_id += 1
            self._cancel_timer()
            self._safe_cancel_recorder()
            self._holder.publish(Idle())
        self._executor.shutdown(wait=False, cancel_futures=True)

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def _start_timer(self, session_id: int) -> None:
        self._cancel_timer()
        self._timer = self._timer_factory(
            self._tick_interval_s, functools.partial(self._on_tick, session_id)
        )
        self._timer.start()

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _on_tick(self, session_id: int) -> None:
        reached_ceiling = False
        with self._lock:
            if session_id != self._session_id or not isinstance(self.state, Recording):
                return
            self._elapsed_seconds = min(
                self._elapsed_seconds + 1, MAX_RECORDING_DURATION_SECONDS
            )
            self._holder.publish(Recording(self._elapsed_seconds, self._mode))

            if not self._warned and self._elapsed_seconds >= WARNING_AT_SECONDS:
                self._warned = True
                self._vibrate(VIBRATE_WARNING_MS)

            if self._elapsed_seconds >= MAX_RECORDING_DURATION_SECONDS:
                logger.info("Maximum recording duration reached")
                self._vibrate(VIBRATE_CEILING_MS)
                reached_ceiling = True

        if reached_ceiling:
            self.stop()

    # ------------------------------------------------------------------
    # Background work
    # ------------------------------------------------------------------

    def _transcribe_and_insert(
        self,
        session_id: int,
        artifact: AudioArtifact,
        mode: PromptMode,
        client: Optional[TranscriptionBackend],
    ) -> None:
        try:
            audio_bytes = Path(artifact.path).read_bytes()
        except OSError as exc:
            self._finish_with_error(session_id, GENERIC_ERROR, f"Could not read recording: {exc}")
            return
        finally:
            self._recorder.delete_file(artifact.path)
        logger.debug("Read %d bytes of %s audio", len(audio_bytes), artifact.audio_format)

        if client is None:
            self._finish_with_error(session_id, API_KEY_MISSING)
            return

        custom_prompt = self._custom_prompt(mode)
        try:
            text = client.transcribe(audio_bytes, artifact.audio_format, mode, custom_prompt)
        except ApiError as exc:
            if exc.code != RATE_LIMITED:
                logger.error("Transcription failed: %s", exc.message)
                self._finish_with_error(session_id, surfaced_code(exc), exc.message)
                return
            logger.warning("Rate limited, retrying once in %.1fs", self._retry_delay_s)
            self._sleep(self._retry_delay_s)
            try:
                text = client.transcribe(audio_bytes, artifact.audio_format, mode, custom_prompt)
            except Exception as retry_exc:
                logger.error("Retry after rate limit failed: %s", retry_exc)
                self._finish_with_error(session_id, RATE_LIMITED)
                return
        except Exception as exc:
            logger.exception("Transcription failed unexpectedly")
            self._finish_with_error(session_id, GENERIC_ERROR, str(exc))
            return

        self._finish_with_text(session_id, text)

    def _finish_with_text(self, session_id: int, text: str) -> None:
        with self._lock:
            if not self._is_processing(session_id):
                logger.debug("Dropping transcription for stale session %d", session_id)
                return
            self._deliver(text)
            self._holder.publish(Success(text))

        self._sleep(self._success_display_s)

        with self._lock:
            if session_id == self._session_id and isinstance(self.state, Success):
                self._holder.publish(Idle())

    def _finish_with_error(self, session_id: int, code: str, detail: str = "") -> None:
        with self._lock:
            if not self._is_processing(session_id):
                return
            self._holder.publish(Error(code=code, message=user_message(code, detail)))

    def _is_processing(self, session_id: int) -> bool:
        return (
            not self._closed
            and session_id == self._session_id
            and isinstance(self.state, Processing)
        )

    def _deliver(self, text: str) -> None:
        field = self._text_field
        if field is None:
            logger.error("No text field to insert the transcription into")
            return
        try:
            result = field.insert_at_cursor(text)
        except Exception as exc:
            logger.error("Inserting transcription failed: %s", exc)
            return
        if not result.success:
            logger.warning("Inserting transcription failed: %s", result.reason)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _finalize_capture(self) -> Optional[AudioArtifact]:
        try:
            artifact = self._recorder.stop()
        except Exception as exc:
            logger.error("Stopping recorder failed: %s", exc)
            self._safe_cancel_recorder()
            return None
        if artifact is None:
            return None
        try:
            size = Path(artifact.path).stat().st_size
        except OSError:
            size = 0
        if size == 0:
            logger.error("Recording %s is missing or empty", artifact.path)
            self._recorder.delete_file(artifact.path)
            return None
        return artifact

    def _custom_prompt(self, mode: PromptMode) -> Optional[str]:
        if mode != PromptMode.CUSTOM:
            return None
        try:
            return self._config.get_custom_prompt()
        except Exception:
            logger.warning("Could not read custom prompt", exc_info=True)
            return None

    def _load_default_mode(self) -> PromptMode:
        try:
            return self._config.get_default_mode()
        except Exception:
            logger.warning("Could not read default mode", exc_info=True)
            return PromptMode.default()

    def _fail(self, code: str, detail: str = "") -> None:
        self._holder.publish(Error(code=code, message=user_message(code, detail)))

    def _safe_cancel_recorder(self) -> None:
        try:
            self._recorder.cancel()
        except Exception:
            logger.debug("Ignoring recorder cancel failure", exc_info=True)

    def _vibrate(self, duration_ms: int) -> None:
        if self._haptics is None:
            return
        try:
            self._haptics.vibrate(duration_ms)
        except Exception:
            logger.debug("Haptic feedback failed", exc_info=True)

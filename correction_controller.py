"""Text correction: read the focused field, correct it remotely, replace it."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from errors import (
    API_KEY_MISSING,
    EMPTY_RESPONSE,
    GENERIC_ERROR,
    INPUT_TOO_LONG,
    NO_INPUT_FIELD,
    NO_TEXT_TO_CORRECT,
    ApiError,
    surfaced_code,
    user_message,
)
from interfaces import ConfigStore, CorrectionBackend, Executor, TextField
from models import Error, Idle, Processing, State, Success
from openrouter_client import CorrectionClient
from state_holder import StateCallback, StateHolder

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 10000
SUCCESS_DISPLAY_S = 1.0

ClientFactory = Callable[[str], CorrectionBackend]


class TextCorrectionController:
    # Rate limits are surfaced immediately here; only voice sessions retry.
    def __init__(
        self,
        config: ConfigStore,
        text_field: Optional[TextField] = None,
        client_factory: ClientFactory = CorrectionClient,
        executor: Optional[Executor] = None,
        success_display_s: float = SUCCESS_DISPLAY_S,
        sleep: Callable[[float], None] = time.sleep,
        on_state_change: Optional[StateCallback] = None,
    ) -> None:
        self._config = config
        self._text_field = text_field
        self._client_factory = client_factory
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="text-correction"
        )
        self._success_display_s = success_display_s
        self._sleep = sleep

        self._lock = threading.RLock()
        self._holder = StateHolder(Idle())
        if on_state_change is not None:
            self._holder.subscribe(on_state_change)
        self._request_id = 0
        self._closed = False

    @property
    def state(self) -> State:
        return self._holder.state

    def subscribe(self, observer: StateCallback) -> Callable[[], None]:
        with self._lock:
            return self._holder.subscribe(observer)

    def set_text_field(self, text_field: Optional[TextField]) -> None:
        with self._lock:
            self._text_field = text_field

    def fix_current_text(self) -> bool:
        """Correct all text of the focused field. Returns True if dispatched."""
        with self._lock:
            if self._closed or isinstance(self.state, Processing):
                logger.debug("fix_current_text() ignored in state %s", self.state.kind.value)
                return False

            field = self._text_field
            if field is None:
                self._fail(NO_INPUT_FIELD)
                return False

            api_key = self._config.get_api_key()
            if not api_key.strip():
                self._fail(API_KEY_MISSING)
                return False

            try:
                text = field.read_all_text()
            except Exception as exc:
                logger.error("Reading field text failed: %s", exc)
                text = ""
            logger.debug("fix_current_text() - retrieved %d characters", len(text))

            if not text.strip():
                self._fail(NO_TEXT_TO_CORRECT)
                return False
            if len(text) > MAX_TEXT_LENGTH:
                logger.error("fix_current_text() - text too long: %d", len(text))
                self._fail(INPUT_TOO_LONG)
                return False

            client = self._client_factory(api_key)
            self._request_id += 1
            request_id = self._request_id
            self._holder.publish(Processing())

        try:
            self._executor.submit(self._correct_and_replace, request_id, client, field, text)
        except RuntimeError as exc:
            logger.warning("Correction not dispatched: %s", exc)
            return False
        return True

    def dismiss(self) -> None:
        with self._lock:
            if isinstance(self.state, Error):
                self._holder.publish(Idle())

    def shutdown(self) -> None:
        with self._lock:
            self._closed = True
            self._request_id += 1
            self._holder.publish(Idle())
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _correct_and_replace(
        self,
        request_id: int,
        client: CorrectionBackend,
        field: TextField,
        text: str,
    ) -> None:
        try:
            corrected = client.correct_text(text)
        except ApiError as exc:
            logger.error("Text correction failed: %s", exc.message)
            self._finish_with_error(request_id, surfaced_code(exc), exc.message)
            return
        except Exception as exc:
            logger.exception("Text correction failed unexpectedly")
            self._finish_with_error(request_id, GENERIC_ERROR, str(exc))
            return

        with self._lock:
            if not self._is_processing(request_id):
                return
            try:
                result = field.replace_all_text(corrected)
                if not result.success:
                    logger.warning("Replacing field text failed: %s", result.reason)
            except Exception as exc:
                logger.error("Replacing field text failed: %s", exc)
            self._holder.publish(Success(corrected))

        self._sleep(self._success_display_s)

        with self._lock:
            if request_id == self._request_id and isinstance(self.state, Success):
                self._holder.publish(Idle())

    def _finish_with_error(self, request_id: int, code: str, detail: str = "") -> None:
        with self._lock:
            if not self._is_processing(request_id):
                return
            self._fail(code, detail)

    def _is_processing(self, request_id: int) -> bool:
        return (
            not self._closed
            and request_id == self._request_id
            and isinstance(self.state, Processing)
        )

    def _fail(self, code: str, detail: str = "") -> None:
        if code == EMPTY_RESPONSE:
            message = "Text correction failed. Please try again."
        else:
            message = user_message(code, detail)
        self._holder.publish(Error(code=code, message=message))

"""Single-writer state holder that broadcasts every transition."""

from __future__ import annotations

import logging
from typing import Callable, List

from models import State

logger = logging.getLogger(__name__)

StateCallback = Callable[[State, State], None]


class StateHolder:
    """Holds the current state; only the owning controller calls ``publish``.

    States are frozen dataclasses, so observers receive values they cannot
    mutate. Callers serialize ``publish`` with their own lock.
    """

    def __init__(self, initial: State) -> None:
        self._state = initial
        self._observers: List[StateCallback] = []

    @property
    def state(self) -> State:
        return self._state

    def subscribe(self, observer: StateCallback) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def publish(self, new_state: State) -> None:
        old_state = self._state
        if old_state == new_state:
            return
        self._state = new_state
        logger.debug("%s -> %s", old_state, new_state)
        for observer in list(self._observers):
            try:
                observer(old_state, new_state)
            except Exception:
                logger.exception("State observer failed")

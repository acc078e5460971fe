from __future__ import annotations

from models import Idle, Recording
from prompts import PromptMode
from state_holder import StateHolder


def test_equal_state_is_not_rebroadcast() -> None:
    holder = StateHolder(Idle())
    seen: list[object] = []
    holder.subscribe(lambda old, new: seen.append(new))

    holder.publish(Recording(1, PromptMode.CLEAN))
    holder.publish(Recording(1, PromptMode.CLEAN))
    holder.publish(Recording(2, PromptMode.CLEAN))

    assert seen == [Recording(1, PromptMode.CLEAN), Recording(2, PromptMode.CLEAN)]


def test_failing_observer_does_not_block_others() -> None:
    holder = StateHolder(Idle())
    seen: list[object] = []

    def broken(old: object, new: object) -> None:
        raise ValueError("observer bug")

    holder.subscribe(broken)
    holder.subscribe(lambda old, new: seen.append((old, new)))

    holder.publish(Recording())

    assert seen == [(Idle(), Recording())]
    assert holder.state == Recording()

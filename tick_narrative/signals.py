"""Signal bus carrying day, choice and gameplay progress signals to the engine."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from tick_narrative.types import ObjectiveType

if TYPE_CHECKING:
    from tick_narrative.engine import EventEngine

logger = logging.getLogger(__name__)

_Handler = Callable[[str, dict[str, Any]], None]

DAY_ADVANCED = "day_advanced"
CHOICE_SUBMITTED = "choice_submitted"
CHOICE_CANCELLED = "choice_cancelled"
ITEM_COLLECTED = "item_collected"
ENEMY_KILLED = "enemy_killed"
AREA_EXPLORED = "area_explored"


class SignalBus:
    """In-memory pub/sub. Published signals are queued until ``flush``."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[_Handler]] = {}
        self._queue: list[tuple[str, dict[str, Any]]] = []

    def subscribe(self, signal_name: str, handler: _Handler) -> None:
        self._subscribers.setdefault(signal_name, []).append(handler)

    def unsubscribe(self, signal_name: str, handler: _Handler) -> None:
        handlers = self._subscribers.get(signal_name)
        if handlers is None:
            return
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, signal_name: str, **data: Any) -> None:
        self._queue.append((signal_name, data))

    def flush(self) -> int:
        """Deliver queued signals. Signals published by handlers wait for the
        next flush. Returns the number of signals delivered.

        If a handler raises, the error propagates and the signals after the
        failing one go back to the front of the queue.
        """
        pending = self._queue
        self._queue = []
        for i, (signal_name, data) in enumerate(pending):
            try:
                for handler in list(self._subscribers.get(signal_name, [])):
                    handler(signal_name, data)
            except Exception:
                self._queue[:0] = pending[i + 1:]
                raise
        return len(pending)

    def pending(self) -> int:
        return len(self._queue)

    def clear(self) -> None:
        self._queue.clear()


def bind_engine(bus: SignalBus, engine: EventEngine) -> Callable[[], None]:
    """Subscribe the engine and its quest tracker to the bus.

    Returns a function that removes every subscription made here.
    """

    def on_day(name: str, data: dict[str, Any]) -> None:
        engine.advance_day(data.get("day"))

    def on_choice(name: str, data: dict[str, Any]) -> None:
        outcome = engine.submit_choice(data["choice_id"])
        if not outcome.ok:
            logger.info("submitted choice rejected: %s", outcome.detail)

    def on_cancel(name: str, data: dict[str, Any]) -> None:
        engine.cancel_choice()

    def progress(objective_type: ObjectiveType, key: str) -> _Handler:
        def handler(name: str, data: dict[str, Any]) -> None:
            engine.quests.update_progress(
                objective_type, data[key], data.get("amount", 1)
            )
        return handler

    subscriptions: list[tuple[str, _Handler]] = [
        (DAY_ADVANCED, on_day),
        (CHOICE_SUBMITTED, on_choice),
        (CHOICE_CANCELLED, on_cancel),
        (ITEM_COLLECTED, progress(ObjectiveType.COLLECT_ITEM, "item_id")),
        (ENEMY_KILLED, progress(ObjectiveType.KILL_ENEMIES, "enemy_id")),
        (AREA_EXPLORED, progress(ObjectiveType.EXPLORE_AREA, "area_id")),
    ]
    for signal_name, handler in subscriptions:
        bus.subscribe(signal_name, handler)

    def unbind() -> None:
        for signal_name, handler in subscriptions:
            bus.unsubscribe(signal_name, handler)

    return unbind

"""Effective trigger probability: base probability times a modifier chain."""
from __future__ import annotations

from typing import Callable, Iterable

from tick_narrative.types import EventDefinition, Priority

Modifier = Callable[[EventDefinition, int], float]

PRIORITY_WEIGHTS: dict[Priority, float] = {
    Priority.CRITICAL: 2.0,
    Priority.HIGH: 1.5,
    Priority.NORMAL: 1.0,
    Priority.LOW: 0.5,
}


def priority_weight(definition: EventDefinition, day: int) -> float:
    """Scale by priority: Critical x2, High x1.5, Normal x1, Low x0.5."""
    return PRIORITY_WEIGHTS.get(definition.priority, 1.0)


def difficulty_weight(factor: float) -> Modifier:
    """Return a modifier that scales every event by a fixed difficulty factor."""
    if factor < 0:
        raise ValueError(f"difficulty factor must be >= 0, got {factor}")

    def weight(definition: EventDefinition, day: int) -> float:
        return factor

    return weight


class TriggerChance:
    """Computes the probability used for an event's daily roll."""

    def __init__(self, modifiers: Iterable[Modifier] = ()) -> None:
        self._modifiers: list[Modifier] = list(modifiers)

    def add(self, modifier: Modifier) -> None:
        self._modifiers.append(modifier)

    def __call__(self, definition: EventDefinition, day: int) -> float:
        chance = definition.probability
        for modifier in self._modifiers:
            chance *= modifier(definition, day)
        return max(0.0, min(chance, 1.0))

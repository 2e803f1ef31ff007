"""ConditionEvaluator: stateless eligibility checks against world state."""
from __future__ import annotations

import logging
from typing import Any, Callable

from tick_narrative.collaborators import Collaborators
from tick_narrative.types import (
    Custom,
    DayExact,
    EventDefinition,
    Guard,
    HasItem,
    MemberHealthBelow,
    ResourceMinimum,
    SpecialFlagSet,
)

logger = logging.getLogger(__name__)

ConditionCheck = Callable[[Any, int, Collaborators], bool]
GuardFn = Callable[[int, Collaborators], bool]


class ConditionEvaluator:
    """Maps condition types to predicates. Missing collaborators fail closed."""

    def __init__(self) -> None:
        self._checks: dict[type, ConditionCheck] = {
            HasItem: self._has_item,
            ResourceMinimum: self._resource_minimum,
            MemberHealthBelow: self._member_health_below,
            SpecialFlagSet: self._flag_set,
            DayExact: lambda c, day, world: day == c.day,
            Custom: lambda c, day, world: bool(c.value),
            Guard: self._guard,
        }
        self._guards: dict[str, GuardFn] = {}

    # --- Registration ---

    def register(self, condition_type: type, fn: ConditionCheck) -> None:
        """Register a check for a condition type. Overwrites if already registered."""
        self._checks[condition_type] = fn

    def register_guard(self, name: str, fn: GuardFn) -> None:
        """Register a named guard for ``Guard(name)`` conditions."""
        self._guards[name] = fn

    def has_guard(self, name: str) -> bool:
        return name in self._guards

    # --- Evaluation ---

    def is_eligible(
        self, definition: EventDefinition, day: int, world: Collaborators
    ) -> bool:
        """True when ``day`` is inside the trigger window and all conditions hold."""
        if not definition.in_window(day):
            return False
        return self.conditions_met(definition, day, world)

    def conditions_met(
        self, definition: EventDefinition, day: int, world: Collaborators
    ) -> bool:
        for condition in definition.conditions:
            if not self.check(condition, day, world):
                return False
        return True

    def check(self, condition: Any, day: int, world: Collaborators) -> bool:
        fn = self._checks.get(type(condition))
        if fn is None:
            logger.warning("unknown condition type %s, treating as unmet",
                           type(condition).__name__)
            return False
        return fn(condition, day, world)

    # --- Built-in checks ---

    def _has_item(self, cond: HasItem, day: int, world: Collaborators) -> bool:
        if world.inventory is None:
            logger.warning("no inventory to check %r", cond.item_id)
            return False
        return world.inventory.has_item(cond.item_id, cond.amount)

    def _resource_minimum(
        self, cond: ResourceMinimum, day: int, world: Collaborators
    ) -> bool:
        if world.resources is None:
            logger.warning("no resource pool to check %s", cond.kind.value)
            return False
        return world.resources.get_amount(cond.kind) >= cond.amount

    def _member_health_below(
        self, cond: MemberHealthBelow, day: int, world: Collaborators
    ) -> bool:
        if world.members is None:
            logger.warning("no health store to check members against %s",
                           cond.threshold)
            return False
        return any(m.health < cond.threshold for m in world.living_members())

    def _flag_set(self, cond: SpecialFlagSet, day: int, world: Collaborators) -> bool:
        if world.flags is None:
            logger.warning("no flag store to check %r", cond.flag_id)
            return False
        return world.flags.is_set(cond.flag_id)

    def _guard(self, cond: Guard, day: int, world: Collaborators) -> bool:
        fn = self._guards.get(cond.name)
        if fn is None:
            logger.warning("guard %r is not registered, treating as unmet", cond.name)
            return False
        return fn(day, world)

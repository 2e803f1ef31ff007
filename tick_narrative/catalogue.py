"""EventCatalogue: the authored set of event definitions, indexed by id."""
from __future__ import annotations

import logging
from typing import Iterable, Iterator

from tick_narrative.errors import AuthoringError
from tick_narrative.types import EventCategory, EventDefinition, ModifyResource, Priority

logger = logging.getLogger(__name__)


def validate(definition: EventDefinition) -> list[str]:
    """Return the problems with one definition in isolation."""
    problems: list[str] = []
    if not definition.id:
        problems.append("id must be non-empty")
    if definition.min_day > definition.max_day:
        problems.append(
            f"min_day {definition.min_day} > max_day {definition.max_day}"
        )
    if not 0.0 <= definition.probability <= 1.0:
        problems.append(f"probability {definition.probability} outside [0, 1]")
    if definition.requires_choice and not definition.choices:
        problems.append("requires_choice but has no choices")
    if definition.followup_delay < 0:
        problems.append(f"followup_delay must be >= 0, got {definition.followup_delay}")
    for i, choice in enumerate(definition.choices):
        for req in choice.requirements:
            if req.amount < 0:
                problems.append(f"choice {i} requires negative {req.kind.value}")
        for effect in choice.effects:
            if _reversed_range(effect):
                problems.append(f"choice {i} has reversed delta {effect.delta}")
    for effect in definition.effects:
        if _reversed_range(effect):
            problems.append(f"reversed delta {effect.delta}")
    seen: set[str] = set()
    for obj in definition.objectives:
        if obj.id in seen:
            problems.append(f"duplicate objective id {obj.id!r}")
        seen.add(obj.id)
        if obj.target_amount < 0:
            problems.append(f"objective {obj.id!r} target_amount must be >= 0")
    if definition.objectives and not definition.is_quest:
        problems.append("objectives on a definition that is not a quest")
    return problems


def _reversed_range(effect: object) -> bool:
    if not isinstance(effect, ModifyResource) or not isinstance(effect.delta, tuple):
        return False
    lo, hi = effect.delta
    return lo > hi


class EventCatalogue:
    """Owns event definitions. Malformed ones are logged and left out."""

    def __init__(self, definitions: Iterable[EventDefinition] = ()) -> None:
        self._definitions: dict[str, EventDefinition] = {}
        self._order: list[str] = []
        self._errors: list[AuthoringError] = []
        if definitions:
            self.load(definitions)

    # --- Loading ---

    def load(self, definitions: Iterable[EventDefinition]) -> list[AuthoringError]:
        """Validate and add definitions. Returns the errors found in this batch.

        Cross references (follow-ups, prerequisite and unlocked quests) are
        checked against the whole catalogue after the batch is added.
        """
        errors: list[AuthoringError] = []
        for defn in definitions:
            if defn.id in self._definitions:
                errors.append(AuthoringError(defn.id, "duplicate event id"))
                continue
            try:
                problems = validate(defn)
            except TypeError as e:
                problems = [f"TypeError: {e}"]
            if problems:
                errors.extend(AuthoringError(defn.id, p) for p in problems)
                continue
            self._definitions[defn.id] = defn
            self._order.append(defn.id)

        errors.extend(self._check_references())
        for err in errors:
            logger.warning("excluding event definition: %s", err)
        self._errors.extend(errors)
        logger.info("catalogue holds %d event definitions", len(self._order))
        return errors

    def record_errors(self, errors: Iterable[AuthoringError]) -> None:
        """Keep errors found before definitions reached the catalogue."""
        self._errors.extend(errors)

    def _check_references(self) -> list[AuthoringError]:
        # dropping a definition can break references held by others
        errors: list[AuthoringError] = []
        changed = True
        while changed:
            changed = False
            for event_id in list(self._order):
                defn = self._definitions[event_id]
                reason = self._dangling(defn)
                if reason is not None:
                    errors.append(AuthoringError(event_id, reason))
                    del self._definitions[event_id]
                    self._order.remove(event_id)
                    changed = True
        return errors

    def _dangling(self, defn: EventDefinition) -> str | None:
        if defn.followup is not None and defn.followup not in self._definitions:
            return f"unknown followup {defn.followup!r}"
        for qid in defn.prerequisite_quests + defn.unlock_quests:
            target = self._definitions.get(qid)
            if target is None or not target.is_quest:
                return f"unknown quest reference {qid!r}"
        return None

    # --- Queries ---

    def get(self, event_id: str) -> EventDefinition | None:
        return self._definitions.get(event_id)

    def __getitem__(self, event_id: str) -> EventDefinition:
        return self._definitions[event_id]

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._definitions

    def __iter__(self) -> Iterator[EventDefinition]:
        for event_id in self._order:
            yield self._definitions[event_id]

    def __len__(self) -> int:
        return len(self._order)

    def ids(self) -> list[str]:
        return list(self._order)

    def errors(self) -> list[AuthoringError]:
        """Every authoring error found since construction."""
        return list(self._errors)

    def for_day(self, day: int) -> list[EventDefinition]:
        """Definitions whose trigger window contains ``day``."""
        return [d for d in self if d.in_window(day)]

    def by_priority(self, priority: Priority) -> list[EventDefinition]:
        return [d for d in self if d.priority is priority]

    def by_category(self, category: EventCategory) -> list[EventDefinition]:
        return [d for d in self if d.category is category]

    def by_tag(self, tag: str) -> list[EventDefinition]:
        return [d for d in self if tag in d.tags]

    def quests(self) -> list[EventDefinition]:
        return [d for d in self if d.is_quest]

    def quest_chain(self, chain: str) -> list[EventDefinition]:
        """Quests of one chain, sorted by quest_order."""
        return sorted(
            (d for d in self if d.is_quest and d.quest_chain == chain),
            key=lambda d: d.quest_order,
        )

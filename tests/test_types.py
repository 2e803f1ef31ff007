"""Tests for tick_narrative.types."""
from __future__ import annotations

import dataclasses

import pytest

from tick_narrative.types import (
    EventDefinition,
    ModifyHealth,
    ModifyResource,
    ObjectiveType,
    Priority,
    QuestObjective,
    ResourceKind,
)


class TestPriority:
    def test_ordering_is_total(self) -> None:
        assert Priority.CRITICAL > Priority.HIGH > Priority.NORMAL > Priority.LOW

    def test_sort_descending(self) -> None:
        ps = [Priority.LOW, Priority.CRITICAL, Priority.NORMAL, Priority.HIGH]
        assert sorted(ps, reverse=True) == [
            Priority.CRITICAL, Priority.HIGH, Priority.NORMAL, Priority.LOW,
        ]


class TestEventDefinition:
    def test_defaults(self) -> None:
        d = EventDefinition(id="e")
        assert d.priority is Priority.NORMAL
        assert d.min_day == 1
        assert d.max_day == 5
        assert d.probability == 0.3
        assert not d.requires_choice
        assert not d.can_repeat
        assert d.followup is None

    def test_window_is_inclusive(self) -> None:
        d = EventDefinition(id="e", min_day=3, max_day=5)
        assert not d.in_window(2)
        assert d.in_window(3)
        assert d.in_window(5)
        assert not d.in_window(6)

    def test_title_falls_back_to_id(self) -> None:
        assert EventDefinition(id="e").title == "e"
        assert EventDefinition(id="e", name="Storm").title == "Storm"

    def test_frozen(self) -> None:
        d = EventDefinition(id="e")
        with pytest.raises(dataclasses.FrozenInstanceError):
            d.min_day = 2  # type: ignore[misc]


class TestEffectVariants:
    def test_variants_only_carry_their_fields(self) -> None:
        names = {f.name for f in dataclasses.fields(ModifyResource)}
        assert names == {"kind", "delta"}
        names = {f.name for f in dataclasses.fields(ModifyHealth)}
        assert names == {"affects_all", "health_delta", "cure_illness", "cause_illness"}

    def test_resource_kind_values(self) -> None:
        assert ResourceKind("food") is ResourceKind.FOOD
        assert ResourceKind("medicine") is ResourceKind.MEDICINE


class TestQuestObjective:
    def test_matches_type_and_target(self) -> None:
        obj = QuestObjective(id="a", type=ObjectiveType.COLLECT_ITEM, target_id="scrap")
        assert obj.matches(ObjectiveType.COLLECT_ITEM, "scrap")
        assert not obj.matches(ObjectiveType.COLLECT_ITEM, "wood")
        assert not obj.matches(ObjectiveType.KILL_ENEMIES, "scrap")

    def test_empty_target_matches_any(self) -> None:
        obj = QuestObjective(id="a", type=ObjectiveType.SURVIVE_DAYS, target_amount=3)
        assert obj.matches(ObjectiveType.SURVIVE_DAYS, "")
        assert obj.matches(ObjectiveType.SURVIVE_DAYS, "anything")

    def test_objective_type_string_values(self) -> None:
        assert ObjectiveType("collect") is ObjectiveType.COLLECT_ITEM
        assert ObjectiveType("kill") is ObjectiveType.KILL_ENEMIES
        assert ObjectiveType("explore") is ObjectiveType.EXPLORE_AREA

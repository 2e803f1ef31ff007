"""Tests for tick_narrative.requirements — RequirementChecker."""
from __future__ import annotations

from tick_narrative.errors import CollaboratorUnavailable, InsufficientResources
from tick_narrative.requirements import RequirementChecker, describe
from tick_narrative.stores import ResourceStore
from tick_narrative.types import EventChoice, ResourceKind, ResourceRequirement

FOOD = ResourceKind.FOOD
WATER = ResourceKind.WATER
MEDICINE = ResourceKind.MEDICINE


def _choice(*reqs: tuple[ResourceKind, int]) -> EventChoice:
    return EventChoice(
        text="pay",
        requirements=tuple(ResourceRequirement(kind, n) for kind, n in reqs),
    )


class FlakyPool(ResourceStore):
    """Reports enough water but refuses to hand it over."""

    def try_debit(self, kind: ResourceKind, amount: int) -> bool:
        if kind is WATER:
            return False
        return super().try_debit(kind, amount)


class TestCanAfford:
    def test_no_requirements(self) -> None:
        assert RequirementChecker.can_afford(_choice(), ResourceStore())
        assert RequirementChecker.can_afford(_choice(), None)

    def test_met_and_unmet(self) -> None:
        pool = ResourceStore({MEDICINE: 1})
        assert RequirementChecker.can_afford(_choice((MEDICINE, 1)), pool)
        assert not RequirementChecker.can_afford(_choice((MEDICINE, 2)), pool)

    def test_same_kind_adds_up(self) -> None:
        pool = ResourceStore({FOOD: 3})
        assert RequirementChecker.can_afford(_choice((FOOD, 2), (FOOD, 1)), pool)
        assert not RequirementChecker.can_afford(_choice((FOOD, 2), (FOOD, 2)), pool)

    def test_zero_amount_always_met(self) -> None:
        assert RequirementChecker.can_afford(_choice((FOOD, 0)), ResourceStore())

    def test_missing_pool_means_nothing_available(self) -> None:
        assert not RequirementChecker.can_afford(_choice((FOOD, 1)), None)

    def test_read_only(self) -> None:
        pool = ResourceStore({FOOD: 5})
        RequirementChecker.can_afford(_choice((FOOD, 2)), pool)
        assert pool.get_amount(FOOD) == 5

    def test_first_shortfall_names_kind(self) -> None:
        pool = ResourceStore({FOOD: 5, WATER: 1})
        err = RequirementChecker.first_shortfall(_choice((FOOD, 2), (WATER, 3)), pool)
        assert isinstance(err, InsufficientResources)
        assert err.kind == "water"
        assert err.required == 3
        assert err.available == 1


class TestCommit:
    def test_debits_every_requirement(self) -> None:
        pool = ResourceStore({FOOD: 5, WATER: 2})
        outcome = RequirementChecker.commit(_choice((FOOD, 2), (WATER, 2)), pool)
        assert outcome.ok
        assert pool.get_amount(FOOD) == 3
        assert pool.get_amount(WATER) == 0

    def test_shortfall_changes_nothing(self) -> None:
        pool = ResourceStore({FOOD: 5, WATER: 1})
        outcome = RequirementChecker.commit(_choice((FOOD, 2), (WATER, 2)), pool)
        assert not outcome.ok
        assert isinstance(outcome.error, InsufficientResources)
        assert pool.get_amount(FOOD) == 5
        assert pool.get_amount(WATER) == 1

    def test_refused_debit_rolls_back(self) -> None:
        pool = FlakyPool({FOOD: 5, WATER: 5})
        outcome = RequirementChecker.commit(_choice((FOOD, 2), (WATER, 1)), pool)
        assert not outcome.ok
        assert isinstance(outcome.error, InsufficientResources)
        assert pool.get_amount(FOOD) == 5
        assert pool.get_amount(WATER) == 5

    def test_missing_pool(self) -> None:
        outcome = RequirementChecker.commit(_choice((FOOD, 1)), None)
        assert not outcome.ok
        assert isinstance(outcome.error, CollaboratorUnavailable)

    def test_nothing_to_pay_without_pool(self) -> None:
        assert RequirementChecker.commit(_choice((FOOD, 0)), None).ok


class TestDescribe:
    def test_cost_line(self) -> None:
        assert describe(_choice((MEDICINE, 1), (FOOD, 2))) == "Needs: medicine x1, food x2"

    def test_free_choice(self) -> None:
        assert describe(_choice()) == ""

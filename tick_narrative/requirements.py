"""RequirementChecker: affordability checks and atomic payment of choice costs."""
from __future__ import annotations

import logging

from tick_narrative.collaborators import ResourcePool
from tick_narrative.errors import CollaboratorUnavailable, InsufficientResources, Outcome
from tick_narrative.types import EventChoice, ResourceKind, ResourceRequirement

logger = logging.getLogger(__name__)


def describe(choice: EventChoice) -> str:
    """Human readable cost line, e.g. ``"Needs: medicine x1, food x2"``."""
    if not choice.requirements:
        return ""
    parts = [f"{r.kind.value} x{r.amount}" for r in choice.requirements]
    return "Needs: " + ", ".join(parts)


class RequirementChecker:
    """Pure functions over a resource pool. Requirements on one kind add up."""

    @staticmethod
    def first_shortfall(
        choice: EventChoice, pool: ResourcePool | None
    ) -> InsufficientResources | None:
        """First requirement the pool cannot cover, or None if affordable."""
        needed: dict[ResourceKind, int] = {}
        for req in choice.requirements:
            needed[req.kind] = needed.get(req.kind, 0) + req.amount
            if needed[req.kind] == 0:
                continue
            available = pool.get_amount(req.kind) if pool is not None else 0
            if available < needed[req.kind]:
                return InsufficientResources(req.kind.value, needed[req.kind], available)
        return None

    @staticmethod
    def can_afford(choice: EventChoice, pool: ResourcePool | None) -> bool:
        """Read-only check that every requirement is met."""
        return RequirementChecker.first_shortfall(choice, pool) is None

    @staticmethod
    def commit(choice: EventChoice, pool: ResourcePool | None) -> Outcome:
        """Debit every requirement, or nothing at all."""
        if not any(r.amount > 0 for r in choice.requirements):
            return Outcome.success()
        if pool is None:
            return Outcome.failure(CollaboratorUnavailable("resources"))

        shortfall = RequirementChecker.first_shortfall(choice, pool)
        if shortfall is not None:
            logger.info("choice %r rejected at commit: %s", choice.text, shortfall)
            return Outcome.failure(shortfall)

        paid: list[ResourceRequirement] = []
        for req in choice.requirements:
            if req.amount == 0:
                continue
            if not pool.try_debit(req.kind, req.amount):
                available = pool.get_amount(req.kind)
                for done in reversed(paid):
                    pool.credit(done.kind, done.amount)
                logger.warning("pool refused debit of %d %s, rolled back %d debits",
                               req.amount, req.kind.value, len(paid))
                return Outcome.failure(
                    InsufficientResources(req.kind.value, req.amount, available)
                )
            paid.append(req)
        return Outcome.success()

"""EffectExecutor: applies tagged effects to collaborator systems."""
from __future__ import annotations

import logging
import random as _random_mod
from typing import Any, Callable, Iterable

from tick_narrative.collaborators import Collaborators
from tick_narrative.errors import CollaboratorUnavailable, NarrativeError, Outcome
from tick_narrative.types import AddLogEntry, ModifyHealth, ModifyResource, UnlockContent

logger = logging.getLogger(__name__)

EffectHandler = Callable[[Any, Collaborators], Outcome]

LOG_TITLE = "Event outcome"


class EffectExecutor:
    """Dispatches effects by type. Effects are independent, never transactional."""

    def __init__(self, rng: _random_mod.Random | None = None) -> None:
        self._rng = rng if rng is not None else _random_mod.Random()
        self._handlers: dict[type, EffectHandler] = {
            ModifyResource: self._modify_resource,
            ModifyHealth: self._modify_health,
            AddLogEntry: self._add_log_entry,
            UnlockContent: self._unlock_content,
        }

    def register(self, effect_type: type, fn: EffectHandler) -> None:
        """Register a handler for an effect type. Overwrites if already registered."""
        self._handlers[effect_type] = fn

    def apply(self, effect: Any, world: Collaborators) -> Outcome:
        fn = self._handlers.get(type(effect))
        if fn is None:
            logger.warning("no handler for effect %r, ignoring", effect)
            return Outcome.skipped(f"unknown effect {type(effect).__name__}")
        try:
            outcome = fn(effect, world)
        except NarrativeError as e:
            outcome = Outcome.failure(e)
        except Exception as e:
            logger.exception("effect %r raised", effect)
            outcome = Outcome.failure(NarrativeError(f"{type(e).__name__}: {e}"))
        if not outcome.ok:
            logger.warning("effect %r failed: %s", effect, outcome.detail)
        return outcome

    def apply_all(self, effects: Iterable[Any], world: Collaborators) -> list[Outcome]:
        """Apply each effect in order. A failure does not stop the rest."""
        return [self.apply(effect, world) for effect in effects]

    def resolve_delta(self, delta: int | tuple[int, int]) -> int:
        """Resolve a fixed or (lo, hi) ranged amount."""
        if isinstance(delta, tuple):
            lo, hi = delta
            return self._rng.randint(lo, hi)
        return delta

    # --- Built-in handlers ---

    def _modify_resource(self, effect: ModifyResource, world: Collaborators) -> Outcome:
        pool = world.resources
        if pool is None:
            return Outcome.failure(CollaboratorUnavailable("resources"))
        delta = self.resolve_delta(effect.delta)
        if delta > 0:
            pool.credit(effect.kind, delta)
        elif delta < 0:
            if not pool.try_debit(effect.kind, -delta):
                # clamp at whatever the pool still holds
                pool.try_debit(effect.kind, pool.get_amount(effect.kind))
        return Outcome.success(f"{effect.kind.value} {delta:+d}")

    def _modify_health(self, effect: ModifyHealth, world: Collaborators) -> Outcome:
        if world.members is None:
            return Outcome.failure(CollaboratorUnavailable("members"))
        members = world.living_members()
        if not members:
            return Outcome.skipped("no living members")
        if not effect.affects_all:
            members = [self._rng.choice(members)]
        for member in members:
            if effect.health_delta != 0:
                member.heal(effect.health_delta)
            if effect.cure_illness:
                member.set_illness(False)
            if effect.cause_illness:
                member.set_illness(True)
        return Outcome.success(f"{len(members)} member(s)")

    def _add_log_entry(self, effect: AddLogEntry, world: Collaborators) -> Outcome:
        if not effect.message:
            return Outcome.skipped("empty message")
        if world.journal is None:
            return Outcome.failure(CollaboratorUnavailable("journal"))
        world.journal.append(LOG_TITLE, effect.message)
        return Outcome.success()

    def _unlock_content(self, effect: UnlockContent, world: Collaborators) -> Outcome:
        if world.content is None:
            return Outcome.failure(CollaboratorUnavailable("content"))
        if world.content.is_unlocked(effect.target_id):
            return Outcome.success("already unlocked")
        world.content.unlock(effect.target_id)
        return Outcome.success(f"unlocked {effect.target_id}")

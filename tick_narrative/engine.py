"""EventEngine: daily evaluation, choice handling and follow-up scheduling."""
from __future__ import annotations

import enum
import logging
import math
import os
import random
from dataclasses import dataclass, field
from typing import Any, Callable

from tick_narrative.catalogue import EventCatalogue
from tick_narrative.chance import TriggerChance
from tick_narrative.collaborators import Collaborators, PresentationGateway
from tick_narrative.conditions import ConditionEvaluator
from tick_narrative.config import NarrativeConfig, build_chance
from tick_narrative.effects import EffectExecutor
from tick_narrative.errors import (
    CollaboratorUnavailable,
    EngineStateError,
    Outcome,
    SnapshotError,
    UnknownChoice,
)
from tick_narrative.quests import QuestTracker
from tick_narrative.requirements import RequirementChecker, describe
from tick_narrative.types import (
    ChoiceOption,
    EventChoice,
    EventDefinition,
    ObjectiveType,
    Priority,
    QuestStatus,
    ScheduledEvent,
)

logger = logging.getLogger(__name__)

_SNAPSHOT_VERSION = 1


class EngineState(enum.Enum):
    IDLE = "idle"
    EVALUATING = "evaluating"
    RESOLVED = "resolved"
    AWAITING_CHOICE = "awaiting_choice"
    COMPLETING = "completing"


class _Phase(enum.Enum):
    CRITICAL = 0
    SCHEDULED = 1
    RANDOM = 2
    DONE = 3


@dataclass
class PendingChoice:
    """An event waiting for the player's pick. Never restored from a save."""

    event_id: str
    day: int
    options: list[ChoiceOption]
    rejected: int = 0


@dataclass
class DayReport:
    """What happened during one day. Filled in as the day's pipeline runs."""

    day: int
    dispatched: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    abandoned: list[str] = field(default_factory=list)
    awaiting: str | None = None


def round_delay(days: float) -> int:
    """Round a follow-up delay to the nearest whole day, halves going up."""
    return int(math.floor(days + 0.5))


class EventEngine:
    """Decides which events fire each day and drives them to completion.

    Per-day pipeline:
    1. Critical: the first eligible critical event fires, skipping the roll
    2. Scheduled: follow-ups due today fire if their conditions hold
    3. Random: candidates by priority, first successful roll fires

    A choice event suspends the pipeline in AWAITING_CHOICE. The host
    resumes it with ``submit_choice`` or ``cancel_choice``.
    """

    def __init__(
        self,
        catalogue: EventCatalogue,
        world: Collaborators | None = None,
        gateway: PresentationGateway | None = None,
        config: NarrativeConfig | None = None,
        chance: TriggerChance | None = None,
        evaluator: ConditionEvaluator | None = None,
        executor: EffectExecutor | None = None,
    ) -> None:
        self._config = config if config is not None else NarrativeConfig()
        seed = self._config.seed
        if seed is None:
            seed = int.from_bytes(os.urandom(8), "big")
        self._seed = seed
        self._rng = random.Random(seed)

        self._catalogue = catalogue
        self._world = world if world is not None else Collaborators()
        self._gateway = gateway
        self._chance = chance if chance is not None else build_chance(self._config)
        self._evaluator = evaluator if evaluator is not None else ConditionEvaluator()
        self._executor = executor if executor is not None else EffectExecutor(self._rng)
        self._quests = QuestTracker(catalogue, self._executor, self._world)

        self._triggered: set[str] = set()
        self._scheduled: list[ScheduledEvent] = []
        self._next_seq = 0

        self._state = EngineState.IDLE
        self._phase = _Phase.DONE
        self._day = 0
        self._pending: PendingChoice | None = None
        self._report = DayReport(day=0)
        self._critical_fired = 0
        self._random_fired = 0

        self._on_triggered: list[Callable[[EventDefinition, int], None]] = []
        self._on_completed: list[
            Callable[[EventDefinition, EventChoice | None, int], None]
        ] = []
        self._on_abandoned: list[Callable[[str, str], None]] = []

    # --- Properties ---

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def day(self) -> int:
        """Last day evaluated (0 before the first day)."""
        return self._day

    @property
    def pending(self) -> PendingChoice | None:
        return self._pending

    @property
    def report(self) -> DayReport:
        return self._report

    @property
    def quests(self) -> QuestTracker:
        return self._quests

    @property
    def catalogue(self) -> EventCatalogue:
        return self._catalogue

    @property
    def world(self) -> Collaborators:
        return self._world

    @property
    def evaluator(self) -> ConditionEvaluator:
        return self._evaluator

    @property
    def executor(self) -> EffectExecutor:
        return self._executor

    @property
    def seed(self) -> int:
        return self._seed

    # --- Callback registration ---

    def on_triggered(self, cb: Callable[[EventDefinition, int], None]) -> None:
        """Called with (definition, day) whenever an event is dispatched."""
        self._on_triggered.append(cb)

    def on_completed(
        self, cb: Callable[[EventDefinition, EventChoice | None, int], None]
    ) -> None:
        """Called with (definition, chosen choice or None, day) after completion."""
        self._on_completed.append(cb)

    def on_abandoned(self, cb: Callable[[str, str], None]) -> None:
        """Called with (event_id, reason) when a pending choice is dropped."""
        self._on_abandoned.append(cb)

    # --- Queries ---

    def has_triggered(self, event_id: str) -> bool:
        return event_id in self._triggered

    def triggered(self) -> list[str]:
        return sorted(self._triggered)

    def scheduled(self) -> list[ScheduledEvent]:
        return list(self._scheduled)

    def is_eligible(self, definition: EventDefinition, day: int) -> bool:
        """Window, conditions, quest gating and the non-repeat rule."""
        if definition.id in self._triggered and not definition.can_repeat:
            return False
        if not self._quests.can_start(definition):
            return False
        return self._evaluator.is_eligible(definition, day, self._world)

    def candidates(self, day: int) -> list[EventDefinition]:
        """Eligible definitions for ``day`` in catalogue order."""
        return [d for d in self._catalogue if self.is_eligible(d, day)]

    def options(self, definition: EventDefinition) -> list[ChoiceOption]:
        """Choices as the presentation layer sees them, with affordability."""
        pool = self._world.resources
        return [
            ChoiceOption(
                choice_id=i,
                text=choice.text,
                affordable=RequirementChecker.can_afford(choice, pool),
                recommended=choice.recommended,
                requirement_text=describe(choice),
            )
            for i, choice in enumerate(definition.choices)
        ]

    # --- Day cycle ---

    def advance_day(self, day: int | None = None) -> DayReport:
        """Evaluate one day. Returns the report, which keeps filling while
        the day is suspended on a choice."""
        if self._state is EngineState.AWAITING_CHOICE:
            self._abandon("day advanced without an answer")
        elif self._state is not EngineState.IDLE:
            raise EngineStateError(f"cannot advance the day while {self._state.value}")

        if day is None:
            if self._world.clock is None:
                raise EngineStateError("no day given and no clock available")
            day = self._world.clock.current_day()

        elapsed = day - self._day
        self._day = day
        self._report = DayReport(day=day)
        if elapsed > 0 and self._config.survive_days_tracking:
            self._quests.update_progress(ObjectiveType.SURVIVE_DAYS, "", elapsed)

        self._critical_fired = 0
        self._random_fired = 0
        self._phase = _Phase.CRITICAL
        self._run_day()
        logger.info("day %d: dispatched %s", day, self._report.dispatched)
        return self._report

    def _run_day(self) -> None:
        day = self._day
        while True:
            if self._state is EngineState.AWAITING_CHOICE:
                return
            if self._phase is _Phase.DONE:
                self._state = EngineState.IDLE
                return
            self._state = EngineState.EVALUATING

            if self._phase is _Phase.CRITICAL:
                defn = None
                if self._critical_fired < self._config.max_critical_per_day:
                    defn = self._pick_critical(day)
                if defn is None:
                    self._phase = _Phase.SCHEDULED
                    continue
                self._critical_fired += 1
                self._dispatch(defn, day)

            elif self._phase is _Phase.SCHEDULED:
                entry = self._next_due(day)
                if entry is None:
                    self._phase = _Phase.RANDOM
                    continue
                self._scheduled.remove(entry)
                defn = self._catalogue.get(entry.event_id)
                if defn is None:
                    logger.warning("scheduled event %r is not in the catalogue",
                                   entry.event_id)
                    continue
                if not self._evaluator.conditions_met(defn, day, self._world):
                    logger.info("day %d: dropping follow-up %s, conditions unmet",
                                day, defn.id)
                    self._report.dropped.append(defn.id)
                    continue
                self._dispatch(defn, day)

            else:
                defn = None
                if self._random_fired < self._config.max_random_per_day:
                    defn = self._pick_random(day)
                if defn is None:
                    self._phase = _Phase.DONE
                    continue
                self._random_fired += 1
                self._dispatch(defn, day)

    def _pick_critical(self, day: int) -> EventDefinition | None:
        for defn in self._catalogue:
            if defn.priority is Priority.CRITICAL and self.is_eligible(defn, day):
                return defn
        return None

    def _pick_random(self, day: int) -> EventDefinition | None:
        pool = [d for d in self.candidates(day) if d.priority is not Priority.CRITICAL]
        # stable: catalogue order breaks ties within a priority
        pool.sort(key=lambda d: d.priority, reverse=True)
        logger.debug("day %d: candidates %s", day, [d.id for d in pool])
        for defn in pool:
            chance = self._chance(defn, day)
            roll = self._rng.random()
            logger.debug("day %d: %s rolled %.3f against %.3f", day, defn.id, roll, chance)
            if roll < chance:
                return defn
        return None

    def _next_due(self, day: int) -> ScheduledEvent | None:
        due = [e for e in self._scheduled if e.day <= day]
        if not due:
            return None

        def order(e: ScheduledEvent) -> tuple[int, int, int]:
            defn = self._catalogue.get(e.event_id)
            priority = defn.priority if defn is not None else Priority.LOW
            return (-priority, e.day, e.seq)

        return min(due, key=order)

    # --- Dispatch ---

    def trigger(self, event_id: str) -> None:
        """Dispatch an event now, bypassing window, conditions and roll."""
        if self._state is not EngineState.IDLE:
            raise EngineStateError(f"cannot trigger while {self._state.value}")
        defn = self._catalogue[event_id]
        self._phase = _Phase.DONE
        self._dispatch(defn, self._day)
        if self._state is not EngineState.AWAITING_CHOICE:
            self._state = EngineState.IDLE

    def _dispatch(self, defn: EventDefinition, day: int) -> None:
        self._triggered.add(defn.id)
        self._report.dispatched.append(defn.id)
        self._journal(defn.title, defn.description)
        if defn.is_quest:
            self._quests.on_triggered(defn)
        logger.info("day %d: triggered %s", day, defn.id)
        for cb in self._on_triggered:
            cb(defn, day)

        if defn.requires_choice and defn.choices:
            self._await_choice(defn, day)
            return

        self._state = EngineState.RESOLVED
        if not defn.is_quest:
            # a quest's automatic effects are its completion reward
            self._executor.apply_all(defn.effects, self._world)
        self._complete(defn, None, day)

    def _await_choice(self, defn: EventDefinition, day: int) -> None:
        options = self.options(defn)
        self._pending = PendingChoice(event_id=defn.id, day=day, options=options)
        self._state = EngineState.AWAITING_CHOICE
        self._report.awaiting = defn.id
        if self._gateway is None:
            logger.warning("cannot present %s: %s", defn.id,
                           CollaboratorUnavailable("presentation"))
            self._abandon("no presentation gateway")
            return
        self._present(defn)

    def _present(self, defn: EventDefinition) -> None:
        """Offer the pending choice to the gateway, with fresh affordability.

        Immediate answers are resolved here. Rejected ones are re-presented
        up to ``max_choice_prompts`` times, then the choice is abandoned.
        """
        if self._gateway is None:
            return
        for _ in range(self._config.max_choice_prompts):
            options = self.options(defn)
            assert self._pending is not None
            self._pending.options = options
            answer = self._gateway.present_choices(defn.id, options)
            if answer is None or self._resolve_choice(answer).ok:
                return
        self._abandon("gateway kept answering with rejected choices")

    def submit_choice(self, choice_id: int) -> Outcome:
        """Deliver the player's pick and resume the day.

        Raises UnknownChoice (a ValueError) for an id outside the event's
        choices. Returns a failed Outcome carrying InsufficientResources when
        the choice can no longer be paid; the choice is then presented again.
        """
        if self._state is not EngineState.AWAITING_CHOICE or self._pending is None:
            raise EngineStateError("no choice is pending")
        defn = self._catalogue[self._pending.event_id]
        if not 0 <= choice_id < len(defn.choices):
            raise UnknownChoice(defn.id, choice_id)
        outcome = self._resolve_choice(choice_id)
        if not outcome.ok:
            self._present(defn)
        if self._state is not EngineState.AWAITING_CHOICE:
            self._run_day()
        return outcome

    def cancel_choice(self) -> None:
        """Drop the pending choice without side effects and resume the day."""
        if self._state is not EngineState.AWAITING_CHOICE or self._pending is None:
            raise EngineStateError("no choice is pending")
        self._abandon("cancelled by host")
        self._run_day()

    def _resolve_choice(self, choice_id: int) -> Outcome:
        pending = self._pending
        assert pending is not None
        defn = self._catalogue[pending.event_id]
        if not 0 <= choice_id < len(defn.choices):
            pending.rejected += 1
            error = UnknownChoice(defn.id, choice_id)
            logger.warning("gateway answer rejected: %s", error)
            return Outcome.failure(error)
        choice = defn.choices[choice_id]

        paid = RequirementChecker.commit(choice, self._world.resources)
        if not paid.ok:
            pending.rejected += 1
            logger.info("choice %d of %s rejected: %s", choice_id, defn.id, paid.detail)
            return paid

        self._pending = None
        self._report.awaiting = None
        self._executor.apply_all(choice.effects, self._world)
        self._complete(defn, choice, pending.day)
        return Outcome.success(choice.text)

    def _abandon(self, reason: str) -> None:
        pending = self._pending
        self._pending = None
        self._state = EngineState.IDLE
        self._report.awaiting = None
        if pending is None:
            return
        logger.warning("abandoning choice for %s: %s", pending.event_id, reason)
        self._report.abandoned.append(pending.event_id)
        for cb in self._on_abandoned:
            cb(pending.event_id, reason)

    def _complete(self, defn: EventDefinition, choice: EventChoice | None, day: int) -> None:
        self._state = EngineState.COMPLETING
        if choice is not None and choice.result_text:
            self._journal(f"{defn.title} - result", choice.result_text)
        if (
            defn.is_quest
            and not defn.objectives
            and self._quests.status(defn.id) is QuestStatus.IN_PROGRESS
        ):
            self._quests.on_completed(defn)
        if defn.followup is not None:
            self.schedule(defn.followup, defn.followup_delay, from_day=day)
        for cb in self._on_completed:
            cb(defn, choice, day)
        self._state = EngineState.IDLE

    def _journal(self, title: str, text: str) -> None:
        if self._world.journal is None:
            logger.debug("no journal for %r", title)
            return
        self._world.journal.append(title, text)

    # --- Scheduling ---

    def schedule(
        self, event_id: str, delay_days: float, from_day: int | None = None
    ) -> ScheduledEvent:
        """Queue an event ``delay_days`` after ``from_day`` (default: today)."""
        if event_id not in self._catalogue:
            raise KeyError(event_id)
        if delay_days < 0:
            raise ValueError(f"delay_days must be >= 0, got {delay_days}")
        base = self._day if from_day is None else from_day
        entry = ScheduledEvent(
            event_id=event_id, day=base + round_delay(delay_days), seq=self._next_seq
        )
        self._next_seq += 1
        self._scheduled.append(entry)
        logger.info("scheduled %s for day %d", event_id, entry.day)
        return entry

    # --- Serialization ---

    def snapshot(self) -> dict[str, Any]:
        """Serialize runtime state (not definitions). JSON compatible."""
        pending = None
        if self._pending is not None:
            pending = {"event_id": self._pending.event_id, "day": self._pending.day}
        return {
            "version": _SNAPSHOT_VERSION,
            "day": self._day,
            "seed": self._seed,
            "rng_state": _serialize_rng_state(self._rng.getstate()),
            "triggered": {event_id: True for event_id in sorted(self._triggered)},
            "quests": self._quests.snapshot(),
            "scheduled": [
                {"event_id": e.event_id, "day": e.day, "seq": e.seq}
                for e in self._scheduled
            ],
            "next_seq": self._next_seq,
            "pending_choice": pending,
        }

    def restore(self, data: dict[str, Any]) -> None:
        """Restore runtime state. The catalogue must already be loaded.

        A choice that was pending when the snapshot was taken is discarded,
        never re-offered.
        """
        version = data.get("version")
        if version != _SNAPSHOT_VERSION:
            raise SnapshotError(
                f"Unsupported snapshot version {version!r}, expected {_SNAPSHOT_VERSION}"
            )
        try:
            day = data["day"]
            seed = data["seed"]
            rng_state = _deserialize_rng_state(data["rng_state"])
            saved_schedule = [
                ScheduledEvent(**entry) for entry in data.get("scheduled", [])
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise SnapshotError(f"malformed snapshot: {e}") from e

        self._day = day
        self._seed = seed
        self._rng.setstate(rng_state)
        self._triggered = {
            event_id for event_id, fired in data.get("triggered", {}).items() if fired
        }
        self._quests.restore(data.get("quests", {}))

        self._scheduled = []
        for scheduled in saved_schedule:
            if scheduled.event_id not in self._catalogue:
                logger.warning("dropping saved follow-up for unknown event %r",
                               scheduled.event_id)
                continue
            self._scheduled.append(scheduled)
        self._next_seq = data.get("next_seq", len(self._scheduled))

        pending = data.get("pending_choice")
        if pending is not None:
            logger.warning("discarding unanswered choice for %s from day %d",
                           pending["event_id"], pending["day"])
        self._pending = None
        self._state = EngineState.IDLE
        self._phase = _Phase.DONE
        self._report = DayReport(day=day)


def _serialize_rng_state(state: tuple[int, tuple[int, ...], float | None]) -> list[Any]:
    """Convert Random.getstate() tuple to JSON-compatible list."""
    version, internalstate, gauss_next = state
    return [version, list(internalstate), gauss_next]


def _deserialize_rng_state(data: list[Any]) -> tuple[int, tuple[int, ...], float | None]:
    """Convert JSON list back to Random.setstate() tuple."""
    version, internalstate, gauss_next = data
    return (version, tuple(internalstate), gauss_next)

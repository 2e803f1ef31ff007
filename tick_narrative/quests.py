"""QuestTracker: quest lifecycle and objective progress."""
from __future__ import annotations

import logging
from typing import Any, Callable

from tick_narrative.catalogue import EventCatalogue
from tick_narrative.collaborators import Collaborators
from tick_narrative.effects import EffectExecutor
from tick_narrative.types import EventDefinition, ObjectiveType, QuestState, QuestStatus

logger = logging.getLogger(__name__)

_STARTABLE = (QuestStatus.NOT_STARTED, QuestStatus.AVAILABLE)


class QuestTracker:
    """Holds the status table for every quest in the catalogue.

    The tracker is the only writer of quest status. Definitions are read
    from the catalogue and never copied.
    """

    def __init__(
        self,
        catalogue: EventCatalogue,
        executor: EffectExecutor,
        world: Collaborators,
    ) -> None:
        self._catalogue = catalogue
        self._executor = executor
        self._world = world
        self._states: dict[str, QuestState] = {
            q.id: QuestState(quest_id=q.id) for q in catalogue.quests()
        }
        self._on_started: list[Callable[[EventDefinition], None]] = []
        self._on_completed: list[Callable[[EventDefinition], None]] = []
        self._on_failed: list[Callable[[EventDefinition], None]] = []

    # --- Callback registration ---

    def on_started(self, cb: Callable[[EventDefinition], None]) -> None:
        self._on_started.append(cb)

    def on_completed_quest(self, cb: Callable[[EventDefinition], None]) -> None:
        self._on_completed.append(cb)

    def on_failed(self, cb: Callable[[EventDefinition], None]) -> None:
        self._on_failed.append(cb)

    # --- Queries ---

    def get_quest(self, quest_id: str) -> EventDefinition | None:
        defn = self._catalogue.get(quest_id)
        if defn is None or not defn.is_quest:
            return None
        return defn

    def state(self, quest_id: str) -> QuestState | None:
        return self._states.get(quest_id)

    def status(self, quest_id: str) -> QuestStatus:
        """Quest status. Raises KeyError for unknown quest ids."""
        return self._states[quest_id].status

    def progress(self, quest_id: str, objective_id: str) -> int:
        return self._states[quest_id].progress.get(objective_id, 0)

    def is_objective_complete(self, quest_id: str, objective_id: str) -> bool:
        return objective_id in self._states[quest_id].completed

    def can_start(self, definition: EventDefinition) -> bool:
        """Non-quests always; quests when startable and prerequisites are done."""
        if not definition.is_quest:
            return True
        state = self._states.get(definition.id)
        if state is None or state.status not in _STARTABLE:
            return False
        for prereq in definition.prerequisite_quests:
            pstate = self._states.get(prereq)
            if pstate is None or pstate.status is not QuestStatus.COMPLETED:
                return False
        return True

    def _with_status(self, *statuses: QuestStatus) -> list[EventDefinition]:
        return [
            q for q in self._catalogue.quests()
            if self._states[q.id].status in statuses
        ]

    def get_available(self) -> list[EventDefinition]:
        return self._with_status(QuestStatus.NOT_STARTED, QuestStatus.AVAILABLE)

    def get_active(self) -> list[EventDefinition]:
        return self._with_status(QuestStatus.IN_PROGRESS)

    def get_completed(self) -> list[EventDefinition]:
        return self._with_status(QuestStatus.COMPLETED)

    # --- Transitions ---

    def on_triggered(self, quest: EventDefinition) -> bool:
        """Start a quest. Returns False if it was not in a startable state."""
        state = self._states.get(quest.id)
        if state is None or state.status not in _STARTABLE:
            return False
        state.status = QuestStatus.IN_PROGRESS
        state.progress = {obj.id: 0 for obj in quest.objectives}
        state.completed = set()
        self._journal("Quest started", quest.title)
        logger.info("quest %s started", quest.id)
        for cb in self._on_started:
            cb(quest)
        return True

    def on_completed(self, quest: EventDefinition) -> bool:
        """Finish a quest and pay its rewards. Idempotent."""
        state = self._states.get(quest.id)
        if state is None or state.status in (QuestStatus.COMPLETED, QuestStatus.FAILED):
            return False
        state.status = QuestStatus.COMPLETED
        self._executor.apply_all(quest.effects, self._world)

        for unlock_id in quest.unlock_quests:
            ustate = self._states.get(unlock_id)
            if ustate is not None and ustate.status is QuestStatus.NOT_STARTED:
                ustate.status = QuestStatus.AVAILABLE
                logger.info("quest %s now available", unlock_id)

        self._journal("Quest completed", quest.title)
        logger.info("quest %s completed", quest.id)
        for cb in self._on_completed:
            cb(quest)
        return True

    def fail(self, quest_id: str) -> bool:
        """Mark a quest failed from an external failure condition."""
        state = self._states.get(quest_id)
        if state is None or state.status in (QuestStatus.COMPLETED, QuestStatus.FAILED):
            return False
        state.status = QuestStatus.FAILED
        quest = self._catalogue[quest_id]
        self._journal("Quest failed", quest.title)
        logger.info("quest %s failed", quest_id)
        for cb in self._on_failed:
            cb(quest)
        return True

    def update_progress(
        self, objective_type: ObjectiveType | str, target_id: str, amount: int = 1
    ) -> list[str]:
        """Feed a gameplay signal to every active quest.

        Returns the ids of quests this call completed.
        """
        if amount < 0:
            raise ValueError(f"amount must be >= 0, got {amount}")
        otype = ObjectiveType(objective_type)
        if amount == 0:
            return []

        finished: list[str] = []
        for quest in self.get_active():
            state = self._states[quest.id]
            touched = False
            for obj in quest.objectives:
                if obj.id in state.completed or not obj.matches(otype, target_id):
                    continue
                current = state.progress.get(obj.id, 0) + amount
                state.progress[obj.id] = min(current, obj.target_amount)
                touched = True
                if current >= obj.target_amount:
                    state.completed.add(obj.id)
                    logger.debug("quest %s objective %s complete", quest.id, obj.id)
            if touched and quest.objectives and all(
                obj.id in state.completed for obj in quest.objectives
            ):
                if self.on_completed(quest):
                    finished.append(quest.id)
        return finished

    def _journal(self, title: str, text: str) -> None:
        if self._world.journal is not None:
            self._world.journal.append(title, text)

    # --- Serialization ---

    def snapshot(self) -> dict[str, Any]:
        """Serialize the quest status table (not definitions)."""
        return {
            qid: {
                "status": s.status.value,
                "progress": dict(s.progress),
                "completed": sorted(s.completed),
            }
            for qid, s in self._states.items()
        }

    def restore(self, data: dict[str, Any]) -> None:
        """Restore quest states. Unknown quest ids are skipped."""
        self._states = {q: QuestState(quest_id=q) for q in self._states}
        for qid, sdata in data.items():
            if qid not in self._states:
                logger.warning("skipping saved state for unknown quest %r", qid)
                continue
            self._states[qid] = QuestState(
                quest_id=qid,
                status=QuestStatus(sdata["status"]),
                progress=dict(sdata.get("progress", {})),
                completed=set(sdata.get("completed", [])),
            )

"""Tests for EventEngine.snapshot / restore."""
from __future__ import annotations

import json

import pytest

from tick_narrative.catalogue import EventCatalogue
from tick_narrative.collaborators import Collaborators
from tick_narrative.config import NarrativeConfig
from tick_narrative.engine import EngineState, EventEngine
from tick_narrative.errors import SnapshotError
from tick_narrative.stores import ScriptedGateway
from tick_narrative.types import (
    EventChoice,
    EventDefinition,
    ObjectiveType,
    Priority,
    QuestObjective,
    QuestStatus,
)


def _catalogue() -> EventCatalogue:
    return EventCatalogue([
        EventDefinition(id=f"e{i}", min_day=1, max_day=40, probability=0.35,
                        can_repeat=i % 2 == 0)
        for i in range(6)
    ] + [
        EventDefinition(id="drop", min_day=2, max_day=40, probability=0.3,
                        priority=Priority.HIGH, followup="rivals", followup_delay=3),
        EventDefinition(id="rivals", min_day=1, max_day=40, probability=0.0),
        EventDefinition(
            id="quest", is_quest=True, min_day=1, max_day=40, probability=0.4,
            objectives=(QuestObjective(id="hold", type=ObjectiveType.SURVIVE_DAYS,
                                       target_amount=5),),
        ),
    ])


def _engine(seed: int) -> EventEngine:
    return EventEngine(_catalogue(), Collaborators(), config=NarrativeConfig(seed=seed))


class TestRoundTrip:
    def test_json_compatible(self) -> None:
        engine = _engine(11)
        for day in range(1, 6):
            engine.advance_day(day)
        data = engine.snapshot()
        assert json.loads(json.dumps(data)) == data

    def test_restored_engine_makes_same_decisions(self) -> None:
        saved = _engine(11)
        for day in range(1, 6):
            saved.advance_day(day)
        data = json.loads(json.dumps(saved.snapshot()))

        restored = _engine(12345)
        restored.restore(data)
        assert restored.snapshot() == saved.snapshot()
        for day in range(6, 30):
            assert restored.advance_day(day).dispatched == \
                saved.advance_day(day).dispatched
        assert restored.triggered() == saved.triggered()

    def test_state_carried(self) -> None:
        engine = _engine(11)
        engine.trigger("quest")
        engine.schedule("rivals", 4)
        engine.advance_day(1)
        restored = _engine(1)
        restored.restore(engine.snapshot())
        assert restored.day == 1
        assert restored.seed == 11
        assert restored.has_triggered("quest")
        assert restored.quests.status("quest") is QuestStatus.IN_PROGRESS
        assert restored.quests.progress("quest", "hold") == 1
        assert [(e.event_id, e.day) for e in restored.scheduled()] == [("rivals", 4)]


class TestPendingChoice:
    def _setup(self) -> EventEngine:
        ask = EventDefinition(id="ask", min_day=1, max_day=9, probability=1.0,
                              requires_choice=True, choices=(EventChoice(text="ok"),))
        return EventEngine(EventCatalogue([ask]), Collaborators(),
                           gateway=ScriptedGateway(), config=NarrativeConfig(seed=2))

    def test_recorded_but_discarded(self) -> None:
        engine = self._setup()
        engine.advance_day(1)
        data = engine.snapshot()
        assert data["pending_choice"] == {"event_id": "ask", "day": 1}

        restored = self._setup()
        restored.restore(data)
        assert restored.pending is None
        assert restored.state is EngineState.IDLE
        assert restored.has_triggered("ask")
        assert restored.advance_day(2).dispatched == []


class TestErrors:
    def test_version_mismatch(self) -> None:
        engine = _engine(1)
        data = engine.snapshot()
        data["version"] = 99
        with pytest.raises(SnapshotError, match="version"):
            _engine(1).restore(data)

    def test_malformed(self) -> None:
        data = _engine(1).snapshot()
        del data["rng_state"]
        with pytest.raises(SnapshotError):
            _engine(1).restore(data)

    def test_malformed_scheduled_entry(self) -> None:
        data = _engine(1).snapshot()
        data["scheduled"] = [{"event_id": "rivals", "when": 3}]
        engine = _engine(7)
        engine.advance_day(2)
        with pytest.raises(SnapshotError, match="malformed"):
            engine.restore(data)
        assert engine.day == 2

    def test_unknown_scheduled_event_skipped(self) -> None:
        data = _engine(1).snapshot()
        data["scheduled"] = [{"event_id": "ghost", "day": 3, "seq": 0}]
        engine = _engine(1)
        engine.restore(data)
        assert engine.scheduled() == []

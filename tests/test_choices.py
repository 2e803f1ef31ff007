"""Tests for choice events: presentation, submission, cancellation."""
from __future__ import annotations

import pytest

from tick_narrative.catalogue import EventCatalogue
from tick_narrative.collaborators import Collaborators
from tick_narrative.config import NarrativeConfig
from tick_narrative.engine import EngineState, EventEngine
from tick_narrative.errors import EngineStateError, InsufficientResources, UnknownChoice
from tick_narrative.stores import Journal, ResourceStore, ScriptedGateway, first_affordable
from tick_narrative.types import (
    EventChoice,
    EventDefinition,
    ModifyResource,
    Priority,
    ResourceKind,
    ResourceRequirement,
)

FOOD = ResourceKind.FOOD
MEDICINE = ResourceKind.MEDICINE


def _neighbor(**kw: object) -> EventDefinition:
    return EventDefinition(
        id="neighbor", name="Neighbor", min_day=1, max_day=30, probability=1.0,
        requires_choice=True,
        choices=(
            EventChoice(
                text="Share medicine",
                result_text="They are grateful.",
                requirements=(ResourceRequirement(MEDICINE, 1),),
                effects=(ModifyResource(FOOD, 2),),
                recommended=True,
            ),
            EventChoice(text="Refuse", result_text="They leave."),
        ),
        **kw,  # type: ignore[arg-type]
    )


def _setup(
    *defs: EventDefinition,
    gateway: ScriptedGateway | None = None,
    medicine: int = 0,
) -> EventEngine:
    world = Collaborators(
        resources=ResourceStore({FOOD: 0, MEDICINE: medicine}),
        journal=Journal(),
    )
    if gateway is None:
        gateway = ScriptedGateway()
    return EventEngine(EventCatalogue(defs or (_neighbor(),)), world,
                       gateway=gateway, config=NarrativeConfig(seed=5))


class TestPresentation:
    def test_options_carry_affordability(self) -> None:
        gw = ScriptedGateway()
        engine = _setup(gateway=gw, medicine=0)
        engine.advance_day(1)
        event_id, options = gw.presented[0]
        assert event_id == "neighbor"
        assert [o.affordable for o in options] == [False, True]
        assert options[0].recommended
        assert options[0].requirement_text == "Needs: medicine x1"

    def test_waits_for_answer(self) -> None:
        engine = _setup()
        report = engine.advance_day(1)
        assert engine.state is EngineState.AWAITING_CHOICE
        assert report.awaiting == "neighbor"
        assert engine.pending is not None
        assert engine.pending.event_id == "neighbor"

    def test_immediate_answer(self) -> None:
        engine = _setup(gateway=ScriptedGateway({"neighbor": 1}))
        engine.advance_day(1)
        assert engine.state is EngineState.IDLE
        assert engine.world.journal.last().text == "They leave."  # type: ignore[union-attr]

    def test_answer_policy(self) -> None:
        engine = _setup(gateway=ScriptedGateway(first_affordable), medicine=1)
        engine.advance_day(1)
        assert engine.world.resources.get_amount(MEDICINE) == 0  # type: ignore[union-attr]
        assert engine.world.resources.get_amount(FOOD) == 2  # type: ignore[union-attr]

    def test_no_gateway_abandons(self) -> None:
        world = Collaborators(resources=ResourceStore())
        engine = EventEngine(EventCatalogue([_neighbor()]), world,
                             config=NarrativeConfig(seed=5))
        report = engine.advance_day(1)
        assert report.abandoned == ["neighbor"]
        assert engine.state is EngineState.IDLE
        assert engine.has_triggered("neighbor")


class TestSubmit:
    def test_pays_and_applies(self) -> None:
        engine = _setup(medicine=2)
        engine.advance_day(1)
        outcome = engine.submit_choice(0)
        assert outcome.ok
        assert engine.state is EngineState.IDLE
        assert engine.world.resources.get_amount(MEDICINE) == 1  # type: ignore[union-attr]
        assert engine.world.resources.get_amount(FOOD) == 2  # type: ignore[union-attr]
        journal = engine.world.journal
        assert journal.last().title == "Neighbor - result"  # type: ignore[union-attr]

    def test_unaffordable_keeps_waiting(self) -> None:
        engine = _setup(medicine=0)
        engine.advance_day(1)
        outcome = engine.submit_choice(0)
        assert not outcome.ok
        assert isinstance(outcome.error, InsufficientResources)
        assert engine.state is EngineState.AWAITING_CHOICE
        assert engine.pending.rejected == 1  # type: ignore[union-attr]
        assert engine.world.resources.get_amount(FOOD) == 0  # type: ignore[union-attr]
        assert engine.submit_choice(1).ok
        assert engine.state is EngineState.IDLE

    def test_unknown_choice(self) -> None:
        engine = _setup()
        engine.advance_day(1)
        with pytest.raises(UnknownChoice):
            engine.submit_choice(7)
        assert engine.state is EngineState.AWAITING_CHOICE

    def test_nothing_pending(self) -> None:
        engine = _setup()
        with pytest.raises(EngineStateError):
            engine.submit_choice(0)
        with pytest.raises(EngineStateError):
            engine.cancel_choice()

    def test_completed_callback_gets_choice(self) -> None:
        engine = _setup()
        picked: list[str] = []
        engine.on_completed(lambda d, c, day: picked.append(c.text if c else ""))
        engine.advance_day(1)
        engine.submit_choice(1)
        assert picked == ["Refuse"]

    def test_day_resumes_after_answer(self) -> None:
        crit = _neighbor(priority=Priority.CRITICAL)
        rats = EventDefinition(id="rats", min_day=1, max_day=30, probability=1.0)
        engine = _setup(crit, rats)
        report = engine.advance_day(1)
        assert report.dispatched == ["neighbor"]
        engine.submit_choice(1)
        assert report.dispatched == ["neighbor", "rats"]


class TestRejectedAnswers:
    def _rats(self) -> EventDefinition:
        return EventDefinition(id="rats", min_day=1, max_day=30, probability=1.0)

    def test_unknown_immediate_answer_does_not_stop_the_day(self) -> None:
        gw = ScriptedGateway({"neighbor": 7})
        engine = _setup(_neighbor(priority=Priority.CRITICAL), self._rats(), gateway=gw)
        report = engine.advance_day(1)
        assert report.abandoned == ["neighbor"]
        assert report.dispatched == ["neighbor", "rats"]
        assert engine.state is EngineState.IDLE
        assert len(gw.presented) == 3

    def test_unaffordable_answer_is_presented_again(self) -> None:
        answers = iter([0, None])
        gw = ScriptedGateway(lambda event_id, options: next(answers))
        engine = _setup(gateway=gw, medicine=0)
        engine.advance_day(1)
        assert len(gw.presented) == 2
        assert [o.affordable for o in gw.presented[1][1]] == [False, True]
        assert engine.state is EngineState.AWAITING_CHOICE
        assert engine.pending.rejected == 1  # type: ignore[union-attr]

    def test_second_answer_resolves(self) -> None:
        answers = iter([0, 1])
        gw = ScriptedGateway(lambda event_id, options: next(answers))
        engine = _setup(gateway=gw, medicine=0)
        engine.advance_day(1)
        assert engine.state is EngineState.IDLE
        assert engine.world.journal.last().text == "They leave."  # type: ignore[union-attr]

    def test_repeated_rejection_abandons(self) -> None:
        gw = ScriptedGateway({"neighbor": 0})
        engine = _setup(_neighbor(priority=Priority.CRITICAL), self._rats(),
                        gateway=gw, medicine=0)
        report = engine.advance_day(1)
        assert len(gw.presented) == 3
        assert report.abandoned == ["neighbor"]
        assert report.dispatched == ["neighbor", "rats"]
        assert engine.world.resources.get_amount(FOOD) == 0  # type: ignore[union-attr]

    def test_prompt_limit_from_config(self) -> None:
        world = Collaborators(resources=ResourceStore({MEDICINE: 0}), journal=Journal())
        gw = ScriptedGateway({"neighbor": 0})
        engine = EventEngine(EventCatalogue([_neighbor()]), world, gateway=gw,
                             config=NarrativeConfig(seed=5, max_choice_prompts=1))
        report = engine.advance_day(1)
        assert len(gw.presented) == 1
        assert report.abandoned == ["neighbor"]

    def test_host_rejection_presents_again(self) -> None:
        gw = ScriptedGateway()
        engine = _setup(gateway=gw, medicine=0)
        engine.advance_day(1)
        assert not engine.submit_choice(0).ok
        assert len(gw.presented) == 2
        assert engine.state is EngineState.AWAITING_CHOICE


class TestCancel:
    def test_cancel_has_no_effects(self) -> None:
        engine = _setup(medicine=3)
        engine.advance_day(1)
        engine.cancel_choice()
        assert engine.state is EngineState.IDLE
        assert engine.world.resources.get_amount(MEDICINE) == 3  # type: ignore[union-attr]
        assert engine.has_triggered("neighbor")

    def test_cancel_resumes_day(self) -> None:
        crit = _neighbor(priority=Priority.CRITICAL)
        rats = EventDefinition(id="rats", min_day=1, max_day=30, probability=1.0)
        engine = _setup(crit, rats)
        report = engine.advance_day(1)
        abandoned: list[str] = []
        engine.on_abandoned(lambda eid, reason: abandoned.append(eid))
        engine.cancel_choice()
        assert report.dispatched == ["neighbor", "rats"]
        assert report.abandoned == ["neighbor"]
        assert abandoned == ["neighbor"]

    def test_advancing_abandons_pending(self) -> None:
        engine = _setup()
        engine.advance_day(1)
        report = engine.advance_day(2)
        assert engine.pending is None
        assert engine.state is EngineState.IDLE
        assert report.dispatched == []

    def test_trigger_rejected_while_waiting(self) -> None:
        engine = _setup()
        engine.advance_day(1)
        with pytest.raises(EngineStateError):
            engine.trigger("neighbor")

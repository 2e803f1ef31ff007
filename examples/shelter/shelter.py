"""Shelter — tick-narrative demo with the bundled survival catalogue.

A family waits out a disaster in their home. Each day the narrative engine
decides what happens; choices are answered by a scripted policy that picks
the recommended affordable option.

Run:
    uv run python shelter.py
    uv run python shelter.py --days 20 --seed 7 --radio
    uv run python shelter.py --config game.toml
"""
from __future__ import annotations

import argparse
import dataclasses
import logging

from tick_narrative import (
    Collaborators,
    EventDefinition,
    EventEngine,
    ResourceKind,
    SignalBus,
    bind_engine,
    load_config,
    load_default_catalogue,
)
from tick_narrative.signals import ITEM_COLLECTED
from tick_narrative.stores import (
    ContentRegistry,
    DayCounter,
    FamilyMember,
    FlagSet,
    Household,
    ItemStore,
    Journal,
    ResourceStore,
    ScriptedGateway,
    first_affordable,
)


def build_world(clock: DayCounter, radio: bool) -> Collaborators:
    return Collaborators(
        resources=ResourceStore({
            ResourceKind.FOOD: 8,
            ResourceKind.WATER: 8,
            ResourceKind.MEDICINE: 2,
        }),
        members=Household([
            FamilyMember("Anna"),
            FamilyMember("Tomas"),
            FamilyMember("Lena", health=70.0),
        ]),
        inventory=ItemStore(),
        flags=FlagSet(["radio_found"] if radio else []),
        journal=Journal(clock=clock),
        content=ContentRegistry(),
        clock=clock,
    )


def print_day(engine: EventEngine, world: Collaborators) -> None:
    report = engine.report
    pool = world.resources
    supplies = "  ".join(
        f"{kind.value}={pool.get_amount(kind)}" for kind in ResourceKind  # type: ignore[union-attr]
    )
    print(f"  Day {report.day:2d}  [{supplies}]")
    for event_id in report.dispatched:
        print(f"    + {engine.catalogue[event_id].title}")
    for event_id in report.dropped:
        print(f"    - {event_id} (no longer relevant)")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--days", type=int, default=12)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", default=None, help="TOML file with a [narrative] table")
    parser.add_argument("--radio", action="store_true", help="start with the radio found")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    if args.seed is not None:
        config = dataclasses.replace(config, seed=args.seed)

    bus = SignalBus()
    clock = DayCounter(bus=bus)
    world = build_world(clock, args.radio)
    engine = EventEngine(
        load_default_catalogue(), world,
        gateway=ScriptedGateway(first_affordable),
        config=config,
    )
    bind_engine(bus, engine)

    def on_quest_started(quest: EventDefinition) -> None:
        print(f"    * quest started: {quest.title}")

    engine.quests.on_started(on_quest_started)

    print("=" * 60)
    print(f"  SHELTER — {args.days} days, seed {engine.seed}")
    print("=" * 60)

    for _ in range(args.days):
        clock.advance()
        bus.flush()
        print_day(engine, world)
        # scavenging turns up a radio part every other day
        if clock.current_day() % 2 == 0:
            bus.publish(ITEM_COLLECTED, item_id="radio_parts")

    print()
    print("  Journal")
    print("  " + "-" * 58)
    for entry in world.journal.entries():  # type: ignore[union-attr]
        print(f"  [{entry.day:2d}] {entry.title}: {entry.text}")
    print()
    completed = [q.title for q in engine.quests.get_completed()]
    print(f"  Quests completed: {', '.join(completed) or 'none'}")


if __name__ == "__main__":
    main()

"""Build event catalogues from TOML files or parsed dicts.

A catalogue file holds an ``[[events]]`` array. Enumerations are written as
lower-case strings and effects/conditions carry a ``type`` key::

    [[events]]
    id = "rats"
    priority = "low"
    probability = 0.25

    [[events.effects]]
    type = "modify_resource"
    kind = "food"
    delta = [-2, -1]
"""
from __future__ import annotations

import logging
import os
from importlib import resources
from typing import Any, TextIO

import toml

from tick_narrative.catalogue import EventCatalogue
from tick_narrative.errors import AuthoringError
from tick_narrative.types import (
    AddLogEntry,
    Custom,
    DayExact,
    Effect,
    EventCategory,
    EventChoice,
    EventDefinition,
    Guard,
    HasItem,
    MemberHealthBelow,
    ModifyHealth,
    ModifyResource,
    ObjectiveType,
    Priority,
    QuestObjective,
    ResourceKind,
    ResourceMinimum,
    ResourceRequirement,
    SpecialFlagSet,
    TriggerCondition,
    UnlockContent,
)

logger = logging.getLogger(__name__)

EFFECT_TYPES: dict[str, type] = {
    "modify_resource": ModifyResource,
    "modify_health": ModifyHealth,
    "add_log_entry": AddLogEntry,
    "unlock_content": UnlockContent,
}

CONDITION_TYPES: dict[str, type] = {
    "has_item": HasItem,
    "resource_minimum": ResourceMinimum,
    "member_health_below": MemberHealthBelow,
    "special_flag_set": SpecialFlagSet,
    "day_exact": DayExact,
    "custom": Custom,
    "guard": Guard,
}

_EVENT_KEYS = frozenset({
    "id", "name", "description", "priority", "min_day", "max_day",
    "probability", "requires_choice", "can_repeat", "conditions", "choices",
    "effects", "followup", "followup_delay", "category", "tags", "is_quest",
    "is_main_quest", "is_side_quest", "quest_chain", "quest_order",
    "objectives", "prerequisite_quests", "unlock_quests",
})

_INT_KEYS = ("min_day", "max_day", "quest_order")
_FLOAT_KEYS = ("probability", "followup_delay")
_BOOL_KEYS = ("requires_choice", "can_repeat", "is_quest", "is_main_quest", "is_side_quest")

DEFAULT_CATALOGUE = "survival.toml"


def _check_scalar(key: str, value: Any, kind: type | tuple[type, ...]) -> Any:
    # bool is an int subclass; only the bool keys accept it
    if isinstance(value, bool) is not (kind is bool) or not isinstance(value, kind):
        raise ValueError(f"{key} must be {getattr(kind, '__name__', 'a number')}, "
                         f"got {value!r}")
    return value


def _variant(table: dict[str, type], data: dict[str, Any], what: str) -> Any:
    fields = dict(data)
    type_name = fields.pop("type", None)
    if type_name not in table:
        raise ValueError(f"unknown {what} type {type_name!r}")
    if "kind" in fields:
        fields["kind"] = ResourceKind(fields["kind"])
    if isinstance(fields.get("delta"), list):
        lo, hi = (_check_scalar("delta", v, int) for v in fields["delta"])
        if lo > hi:
            raise ValueError(f"delta range [{lo}, {hi}] is reversed")
        fields["delta"] = (lo, hi)
    return table[type_name](**fields)


def parse_effect(data: dict[str, Any]) -> Effect:
    return _variant(EFFECT_TYPES, data, "effect")


def parse_condition(data: dict[str, Any]) -> TriggerCondition:
    return _variant(CONDITION_TYPES, data, "condition")


def parse_choice(data: dict[str, Any]) -> EventChoice:
    return EventChoice(
        text=data["text"],
        result_text=data.get("result", ""),
        requirements=tuple(
            ResourceRequirement(kind=ResourceKind(r["kind"]), amount=int(r["amount"]))
            for r in data.get("requirements", [])
        ),
        effects=tuple(parse_effect(e) for e in data.get("effects", [])),
        recommended=bool(data.get("recommended", False)),
    )


def parse_objective(data: dict[str, Any]) -> QuestObjective:
    return QuestObjective(
        id=data["id"],
        type=ObjectiveType(data["type"]),
        target_amount=int(data.get("amount", 1)),
        target_id=data.get("target", ""),
        description=data.get("description", ""),
    )


def parse_definition(data: dict[str, Any]) -> EventDefinition:
    """Build one definition. Raises KeyError/TypeError/ValueError on bad data."""
    unknown = set(data) - _EVENT_KEYS
    if unknown:
        raise ValueError(f"unknown keys {sorted(unknown)}")
    fields = dict(data)
    for key in _INT_KEYS:
        if key in fields:
            _check_scalar(key, fields[key], int)
    for key in _FLOAT_KEYS:
        if key in fields:
            fields[key] = float(_check_scalar(key, fields[key], (int, float)))
    for key in _BOOL_KEYS:
        if key in fields:
            _check_scalar(key, fields[key], bool)
    if "priority" in fields:
        fields["priority"] = Priority[str(fields["priority"]).upper()]
    if "category" in fields:
        fields["category"] = EventCategory(fields["category"])
    fields["conditions"] = tuple(parse_condition(c) for c in data.get("conditions", []))
    fields["choices"] = tuple(parse_choice(c) for c in data.get("choices", []))
    fields["effects"] = tuple(parse_effect(e) for e in data.get("effects", []))
    fields["objectives"] = tuple(parse_objective(o) for o in data.get("objectives", []))
    for key in ("tags", "prerequisite_quests", "unlock_quests"):
        fields[key] = tuple(data.get(key, ()))
    return EventDefinition(**fields)


def parse_events(data: dict[str, Any]) -> tuple[list[EventDefinition], list[AuthoringError]]:
    """Parse the ``events`` array. Bad entries become AuthoringErrors."""
    definitions: list[EventDefinition] = []
    errors: list[AuthoringError] = []
    for i, entry in enumerate(data.get("events", [])):
        event_id = entry.get("id", f"events[{i}]") if isinstance(entry, dict) else f"events[{i}]"
        try:
            definitions.append(parse_definition(entry))
        except (KeyError, TypeError, ValueError) as e:
            errors.append(AuthoringError(event_id, f"{type(e).__name__}: {e}"))
    return definitions, errors


def load_catalogue(
    source: dict[str, Any] | str | os.PathLike[str] | TextIO,
    catalogue: EventCatalogue | None = None,
) -> EventCatalogue:
    """Load definitions from a parsed dict, a TOML path or an open TOML file.

    Definitions are added to ``catalogue`` when given, else to a new one.
    Authoring errors are logged and recorded on the catalogue.
    """
    if isinstance(source, dict):
        data = source
    elif isinstance(source, (str, os.PathLike)):
        data = toml.load(os.fspath(source))
    else:
        data = toml.load(source)

    definitions, errors = parse_events(data)
    for err in errors:
        logger.warning("could not parse event definition: %s", err)
    if catalogue is None:
        catalogue = EventCatalogue()
    catalogue.record_errors(errors)
    catalogue.load(definitions)
    return catalogue


def loads_catalogue(text: str, catalogue: EventCatalogue | None = None) -> EventCatalogue:
    """Load definitions from TOML text."""
    return load_catalogue(toml.loads(text), catalogue)


def load_default_catalogue() -> EventCatalogue:
    """The bundled shelter survival content."""
    path = resources.files("tick_narrative").joinpath("data").joinpath(DEFAULT_CATALOGUE)
    text = path.read_text(encoding="utf-8")
    return loads_catalogue(text)

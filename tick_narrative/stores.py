"""In-memory collaborators for hosts without their own systems, and for tests."""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from tick_narrative.signals import SignalBus
from tick_narrative.types import ChoiceOption, ResourceKind


class ResourceStore:
    """Resource counters with a floor of zero.

    Attributes:
        capacity: Maximum quantity per resource kind (-1 for unlimited).
    """

    def __init__(self, amounts: dict[ResourceKind, int] | None = None,
                 capacity: int = -1) -> None:
        self._slots: dict[ResourceKind, int] = dict(amounts or {})
        self.capacity = capacity

    def get_amount(self, kind: ResourceKind) -> int:
        return self._slots.get(kind, 0)

    def try_debit(self, kind: ResourceKind, amount: int) -> bool:
        """Remove exactly ``amount`` or nothing."""
        if amount < 0:
            raise ValueError(f"amount must be >= 0, got {amount}")
        current = self._slots.get(kind, 0)
        if current < amount:
            return False
        self._slots[kind] = current - amount
        return True

    def credit(self, kind: ResourceKind, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"amount must be >= 0, got {amount}")
        total = self._slots.get(kind, 0) + amount
        if self.capacity != -1:
            total = min(total, self.capacity)
        self._slots[kind] = total

    def snapshot(self) -> dict[str, int]:
        return {kind.value: n for kind, n in self._slots.items()}

    def restore(self, data: dict[str, int]) -> None:
        self._slots = {ResourceKind(k): n for k, n in data.items()}


@dataclass
class FamilyMember:
    name: str
    health: float = 100.0
    max_health: float = 100.0
    is_sick: bool = False
    sick_days_left: int = 0
    alive: bool = True

    def heal(self, amount: float) -> None:
        """Change health by ``amount`` (negative hurts). Zero health is death."""
        self.health = max(0.0, min(self.health + amount, self.max_health))
        if self.health <= 0.0:
            self.alive = False

    def set_illness(self, sick: bool) -> None:
        self.is_sick = sick
        self.sick_days_left = 3 if sick else 0


class Household:
    """The sheltering family."""

    def __init__(self, members: Sequence[FamilyMember] = ()) -> None:
        self.members: list[FamilyMember] = list(members)

    def for_each_living_member(self, fn: Callable[[FamilyMember], None]) -> None:
        for member in list(self.members):
            if member.alive:
                fn(member)

    def living(self) -> list[FamilyMember]:
        return [m for m in self.members if m.alive]


class ItemStore:
    """Item counts by id."""

    def __init__(self, items: dict[str, int] | None = None) -> None:
        self._items: dict[str, int] = dict(items or {})

    def add(self, item_id: str, amount: int = 1) -> None:
        if amount < 0:
            raise ValueError(f"amount must be >= 0, got {amount}")
        if amount:
            self._items[item_id] = self._items.get(item_id, 0) + amount

    def remove(self, item_id: str, amount: int = 1) -> int:
        """Remove up to ``amount``. Returns amount actually removed."""
        if amount < 0:
            raise ValueError(f"amount must be >= 0, got {amount}")
        current = self._items.get(item_id, 0)
        actual = min(amount, current)
        if current - actual == 0:
            self._items.pop(item_id, None)
        else:
            self._items[item_id] = current - actual
        return actual

    def count(self, item_id: str) -> int:
        return self._items.get(item_id, 0)

    def has_item(self, item_id: str, amount: int = 1) -> bool:
        return self._items.get(item_id, 0) >= amount


class FlagSet:
    """Special story flags such as "radio_found"."""

    def __init__(self, flags: Sequence[str] = ()) -> None:
        self._flags: set[str] = set(flags)

    def is_set(self, flag_id: str) -> bool:
        return flag_id in self._flags

    def set(self, flag_id: str) -> None:
        self._flags.add(flag_id)

    def clear(self, flag_id: str) -> None:
        self._flags.discard(flag_id)


@dataclass
class JournalEntry:
    day: int
    title: str
    text: str


class Journal:
    """Append-only journal, optionally bounded. Entries are stamped with the
    clock's day when a clock is given."""

    def __init__(self, clock: DayCounter | None = None, max_entries: int = 0) -> None:
        self._clock = clock
        maxlen = max_entries if max_entries > 0 else None
        self._entries: deque[JournalEntry] = deque(maxlen=maxlen)

    def append(self, title: str, text: str) -> None:
        day = self._clock.current_day() if self._clock is not None else 0
        self._entries.append(JournalEntry(day=day, title=title, text=text))

    def entries(self, title: str | None = None) -> list[JournalEntry]:
        if title is None:
            return list(self._entries)
        return [e for e in self._entries if e.title == title]

    def last(self) -> JournalEntry | None:
        return self._entries[-1] if self._entries else None

    def titles(self) -> list[str]:
        return [e.title for e in self._entries]

    def snapshot(self) -> list[dict[str, Any]]:
        return [{"day": e.day, "title": e.title, "text": e.text} for e in self._entries]

    def restore(self, data: list[dict[str, Any]]) -> None:
        self._entries.clear()
        for d in data:
            self._entries.append(JournalEntry(day=d["day"], title=d["title"], text=d["text"]))

    def __len__(self) -> int:
        return len(self._entries)


class ContentRegistry:
    """Unlocked maps and other gated content."""

    def __init__(self, unlocked: Sequence[str] = ()) -> None:
        self._unlocked: list[str] = list(unlocked)

    def is_unlocked(self, target_id: str) -> bool:
        return target_id in self._unlocked

    def unlock(self, target_id: str) -> None:
        if target_id not in self._unlocked:
            self._unlocked.append(target_id)

    def unlocked(self) -> list[str]:
        return list(self._unlocked)


class DayCounter:
    """Day clock. ``advance`` publishes "day_advanced" on the bus, if any."""

    def __init__(self, day: int = 0, bus: SignalBus | None = None) -> None:
        if day < 0:
            raise ValueError("day must be >= 0")
        self._day = day
        self._bus = bus

    def current_day(self) -> int:
        return self._day

    def advance(self) -> int:
        self._day += 1
        if self._bus is not None:
            self._bus.publish("day_advanced", day=self._day)
        return self._day

    def reset(self, day: int = 0) -> None:
        self._day = day


class ScriptedGateway:
    """Deterministic presentation gateway.

    Args:
        answers: A dict mapping event ids to choice ids, OR a callable
            (event_id, options) -> choice id | None. Events without an
            answer stay pending until the host submits one.
    """

    def __init__(
        self,
        answers: dict[str, int]
        | Callable[[str, Sequence[ChoiceOption]], int | None]
        | None = None,
    ) -> None:
        self._answers = answers if answers is not None else {}
        self.presented: list[tuple[str, list[ChoiceOption]]] = []

    def present_choices(
        self, event_id: str, options: Sequence[ChoiceOption]
    ) -> int | None:
        self.presented.append((event_id, list(options)))
        if callable(self._answers):
            return self._answers(event_id, options)
        return self._answers.get(event_id)


def first_affordable(event_id: str, options: Sequence[ChoiceOption]) -> int | None:
    """Answer policy: the recommended affordable option, else the first affordable."""
    affordable = [o for o in options if o.affordable]
    if not affordable:
        return None
    for option in affordable:
        if option.recommended:
            return option.choice_id
    return affordable[0].choice_id

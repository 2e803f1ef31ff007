"""Protocols for the systems the narrative engine reads from and writes to."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, Sequence, runtime_checkable

from tick_narrative.types import ChoiceOption, ResourceKind


@runtime_checkable
class ResourcePool(Protocol):
    """Shared resource counters. The pool owns its floor and locking."""

    def get_amount(self, kind: ResourceKind) -> int: ...

    def try_debit(self, kind: ResourceKind, amount: int) -> bool: ...

    def credit(self, kind: ResourceKind, amount: int) -> None: ...


@runtime_checkable
class Member(Protocol):
    @property
    def health(self) -> float: ...

    def heal(self, amount: float) -> None: ...

    def set_illness(self, sick: bool) -> None: ...


@runtime_checkable
class MemberHealthStore(Protocol):
    def for_each_living_member(self, fn: Callable[[Member], None]) -> None: ...


@runtime_checkable
class ItemInventory(Protocol):
    def has_item(self, item_id: str, amount: int = 1) -> bool: ...


@runtime_checkable
class SpecialFlags(Protocol):
    def is_set(self, flag_id: str) -> bool: ...

    def set(self, flag_id: str) -> None: ...


@runtime_checkable
class Journal(Protocol):
    def append(self, title: str, text: str) -> None: ...


@runtime_checkable
class ContentUnlocker(Protocol):
    def is_unlocked(self, target_id: str) -> bool: ...

    def unlock(self, target_id: str) -> None: ...


@runtime_checkable
class DayClock(Protocol):
    def current_day(self) -> int: ...


@runtime_checkable
class PresentationGateway(Protocol):
    """Choice UI boundary.

    ``present_choices`` must not block. It returns a choice id when the
    answer is already known (scripted hosts), or None when the player will
    answer later through ``EventEngine.submit_choice``.
    """

    def present_choices(
        self, event_id: str, options: Sequence[ChoiceOption]
    ) -> int | None: ...


@dataclass
class Collaborators:
    """References handed to the engine at construction. Any may be absent."""

    resources: ResourcePool | None = None
    members: MemberHealthStore | None = None
    inventory: ItemInventory | None = None
    flags: SpecialFlags | None = None
    journal: Journal | None = None
    content: ContentUnlocker | None = None
    clock: DayClock | None = None

    def living_members(self) -> list[Member]:
        """Collect living members, or an empty list without a health store."""
        found: list[Member] = []
        if self.members is not None:
            self.members.for_each_living_member(found.append)
        return found

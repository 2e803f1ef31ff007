"""Core data types for narrative events, choices, effects and quests."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Union


class Priority(enum.IntEnum):
    """Dispatch priority. Higher values are evaluated first."""

    LOW = 0
    NORMAL = 1
    HIGH = 2
    CRITICAL = 3


class ResourceKind(enum.Enum):
    FOOD = "food"
    WATER = "water"
    MEDICINE = "medicine"


class EventCategory(enum.Enum):
    RESOURCE_GAIN = "resource_gain"
    RESOURCE_LOSS = "resource_loss"
    FAMILY_HEALTH = "family_health"
    STORY_PROGRESSION = "story_progression"
    RADIO_REMINDER = "radio_reminder"
    NEIGHBOR_REQUEST = "neighbor_request"
    MILITARY_DROP = "military_drop"
    RANDOM_MISFORTUNE = "random_misfortune"


class ObjectiveType(enum.Enum):
    COLLECT_ITEM = "collect"
    KILL_ENEMIES = "kill"
    EXPLORE_AREA = "explore"
    SURVIVE_DAYS = "survive"
    CUSTOM = "custom"


class QuestStatus(enum.Enum):
    NOT_STARTED = "not_started"
    AVAILABLE = "available"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


# --- Effects (one dataclass per variant) ---


@dataclass(frozen=True)
class ModifyResource:
    kind: ResourceKind
    delta: int | tuple[int, int]  # fixed amount or inclusive (lo, hi) roll


@dataclass(frozen=True)
class ModifyHealth:
    affects_all: bool = True
    health_delta: float = 0.0
    cure_illness: bool = False
    cause_illness: bool = False


@dataclass(frozen=True)
class AddLogEntry:
    message: str


@dataclass(frozen=True)
class UnlockContent:
    target_id: str


Effect = Union[ModifyResource, ModifyHealth, AddLogEntry, UnlockContent]


# --- Trigger conditions (one dataclass per variant) ---


@dataclass(frozen=True)
class HasItem:
    item_id: str
    amount: int = 1


@dataclass(frozen=True)
class ResourceMinimum:
    kind: ResourceKind
    amount: int


@dataclass(frozen=True)
class MemberHealthBelow:
    threshold: float


@dataclass(frozen=True)
class SpecialFlagSet:
    flag_id: str


@dataclass(frozen=True)
class DayExact:
    day: int


@dataclass(frozen=True)
class Custom:
    value: bool


@dataclass(frozen=True)
class Guard:
    """Named predicate registered on the ConditionEvaluator."""

    name: str


TriggerCondition = Union[
    HasItem, ResourceMinimum, MemberHealthBelow, SpecialFlagSet, DayExact, Custom, Guard
]


# --- Authored definitions ---


@dataclass(frozen=True)
class ResourceRequirement:
    kind: ResourceKind
    amount: int


@dataclass(frozen=True)
class EventChoice:
    text: str
    result_text: str = ""
    requirements: tuple[ResourceRequirement, ...] = ()
    effects: tuple[Effect, ...] = ()
    recommended: bool = False


@dataclass(frozen=True)
class QuestObjective:
    """Authored quest sub-goal. Progress lives in QuestState.

    An empty ``target_id`` matches progress reported for any target.
    """

    id: str
    type: ObjectiveType
    target_amount: int = 1
    target_id: str = ""
    description: str = ""

    def matches(self, objective_type: ObjectiveType, target_id: str) -> bool:
        if objective_type is not self.type:
            return False
        return not self.target_id or self.target_id == target_id


@dataclass(frozen=True)
class EventDefinition:
    """Definition of one potential day-gated event. Not serialized.

    Invariants (min_day <= max_day, choices present when requires_choice,
    probability within [0, 1]) are checked by the catalogue at load time.
    """

    id: str
    name: str = ""
    description: str = ""
    priority: Priority = Priority.NORMAL
    min_day: int = 1
    max_day: int = 5
    probability: float = 0.3
    requires_choice: bool = False
    can_repeat: bool = False
    conditions: tuple[TriggerCondition, ...] = ()
    choices: tuple[EventChoice, ...] = ()
    effects: tuple[Effect, ...] = ()  # automatic effects, or quest rewards
    followup: str | None = None  # event id
    followup_delay: float = 1.0  # days
    category: EventCategory | None = None
    tags: tuple[str, ...] = ()
    # quest extension
    is_quest: bool = False
    is_main_quest: bool = False
    is_side_quest: bool = False
    quest_chain: str = ""
    quest_order: int = 0
    objectives: tuple[QuestObjective, ...] = ()
    prerequisite_quests: tuple[str, ...] = ()
    unlock_quests: tuple[str, ...] = ()

    @property
    def title(self) -> str:
        return self.name or self.id

    def in_window(self, day: int) -> bool:
        return self.min_day <= day <= self.max_day


# --- Runtime state ---


@dataclass
class QuestState:
    """Runtime state of one quest. Mutable, serializable."""

    quest_id: str
    status: QuestStatus = QuestStatus.NOT_STARTED
    progress: dict[str, int] = field(default_factory=dict)
    completed: set[str] = field(default_factory=set)


@dataclass(frozen=True)
class ScheduledEvent:
    """A follow-up waiting for its target day. Serializable."""

    event_id: str
    day: int
    seq: int = 0


@dataclass(frozen=True)
class ChoiceOption:
    """What the presentation layer gets for one choice."""

    choice_id: int
    text: str
    affordable: bool
    recommended: bool = False
    requirement_text: str = ""

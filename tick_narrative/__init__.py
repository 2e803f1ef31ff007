"""tick-narrative - Day-based narrative events, choices and quests."""
from tick_narrative.catalogue import EventCatalogue
from tick_narrative.chance import TriggerChance, difficulty_weight, priority_weight
from tick_narrative.collaborators import Collaborators, PresentationGateway
from tick_narrative.conditions import ConditionEvaluator
from tick_narrative.config import NarrativeConfig, build_chance, load_config
from tick_narrative.effects import EffectExecutor
from tick_narrative.engine import DayReport, EngineState, EventEngine, PendingChoice
from tick_narrative.errors import (
    AuthoringError,
    CollaboratorUnavailable,
    EngineStateError,
    InsufficientResources,
    NarrativeError,
    Outcome,
    SnapshotError,
    UnknownChoice,
)
from tick_narrative.loader import load_catalogue, load_default_catalogue, loads_catalogue
from tick_narrative.quests import QuestTracker
from tick_narrative.requirements import RequirementChecker
from tick_narrative.signals import SignalBus, bind_engine
from tick_narrative.types import (
    AddLogEntry,
    ChoiceOption,
    Custom,
    DayExact,
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
    QuestState,
    QuestStatus,
    ResourceKind,
    ResourceMinimum,
    ResourceRequirement,
    ScheduledEvent,
    SpecialFlagSet,
    UnlockContent,
)

__all__ = [
    # definitions
    "EventDefinition",
    "EventChoice",
    "ResourceRequirement",
    "QuestObjective",
    "Priority",
    "ResourceKind",
    "EventCategory",
    "ObjectiveType",
    "QuestStatus",
    "QuestState",
    "ScheduledEvent",
    "ChoiceOption",
    # effects
    "ModifyResource",
    "ModifyHealth",
    "AddLogEntry",
    "UnlockContent",
    # conditions
    "HasItem",
    "ResourceMinimum",
    "MemberHealthBelow",
    "SpecialFlagSet",
    "DayExact",
    "Custom",
    "Guard",
    # components
    "EventCatalogue",
    "ConditionEvaluator",
    "RequirementChecker",
    "EffectExecutor",
    "QuestTracker",
    "EventEngine",
    "EngineState",
    "DayReport",
    "PendingChoice",
    "TriggerChance",
    "priority_weight",
    "difficulty_weight",
    "Collaborators",
    "PresentationGateway",
    "SignalBus",
    "bind_engine",
    # config and loading
    "NarrativeConfig",
    "load_config",
    "build_chance",
    "load_catalogue",
    "loads_catalogue",
    "load_default_catalogue",
    # errors
    "NarrativeError",
    "AuthoringError",
    "InsufficientResources",
    "CollaboratorUnavailable",
    "SnapshotError",
    "EngineStateError",
    "UnknownChoice",
    "Outcome",
]

"""Narrative engine configuration and TOML loading."""
from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import Any, TextIO

import toml

from tick_narrative.chance import TriggerChance, difficulty_weight, priority_weight


@dataclass(frozen=True)
class NarrativeConfig:
    """Immutable configuration for the event engine.

    Attributes:
        seed: RNG seed for probability rolls and ranged effects (None = random).
        difficulty: Multiplier applied to every non-critical trigger chance.
        priority_weighting: Scale trigger chances by event priority.
        max_critical_per_day: Critical events dispatched per day.
        max_random_per_day: Probabilistic events dispatched per day.
        survive_days_tracking: Feed "survive" quest objectives on each new day.
        max_choice_prompts: Times a choice is presented to a gateway that keeps
            answering with rejected picks before the choice is abandoned.
    """

    seed: int | None = None
    difficulty: float = 1.0
    priority_weighting: bool = False
    max_critical_per_day: int = 1
    max_random_per_day: int = 1
    survive_days_tracking: bool = True
    max_choice_prompts: int = 3

    def __post_init__(self) -> None:
        if self.difficulty < 0:
            raise ValueError(f"difficulty must be >= 0, got {self.difficulty}")
        if self.max_critical_per_day < 0:
            raise ValueError(
                f"max_critical_per_day must be >= 0, got {self.max_critical_per_day}"
            )
        if self.max_random_per_day < 0:
            raise ValueError(
                f"max_random_per_day must be >= 0, got {self.max_random_per_day}"
            )
        if self.max_choice_prompts < 1:
            raise ValueError(
                f"max_choice_prompts must be >= 1, got {self.max_choice_prompts}"
            )


def config_from_dict(data: dict[str, Any]) -> NarrativeConfig:
    """Build a config from a ``[narrative]`` table, rejecting unknown keys."""
    known = {f.name for f in dataclasses.fields(NarrativeConfig)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"unknown narrative config keys: {sorted(unknown)}")
    return NarrativeConfig(**data)


def load_config(source: str | os.PathLike[str] | TextIO | None = None) -> NarrativeConfig:
    """Load a config from a TOML path or open file. None gives the defaults."""
    if source is None:
        return NarrativeConfig()
    if isinstance(source, (str, os.PathLike)):
        data = toml.load(os.fspath(source))
    else:
        data = toml.load(source)
    return config_from_dict(data.get("narrative", {}))


def build_chance(config: NarrativeConfig) -> TriggerChance:
    """Assemble the trigger chance strategy the config asks for."""
    chance = TriggerChance()
    if config.priority_weighting:
        chance.add(priority_weight)
    if config.difficulty != 1.0:
        chance.add(difficulty_weight(config.difficulty))
    return chance

"""Enemy archetype definitions: base stats, AI profile, on-hit effects."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from .status_effects import EffectAbility


class AIBehavior(str, Enum):
    """Behaviour class driving an enemy's decision policy."""

    AGGRESSIVE = "aggressive"
    RANGED = "ranged"
    BOSS = "boss"


class AIBehaviorProfile(BaseModel):
    """Tunable parameters of one enemy archetype's AI.

    Every weight is a probability in ``[0, 1]``.
    """

    behavior: AIBehavior
    aggressiveness: float = Field(ge=0, le=1)
    defensiveness: float = Field(ge=0, le=1)
    ranged_preference: float = Field(ge=0, le=1)
    flee_threshold: float = Field(ge=0, le=1)
    """HP fraction below which the enemy runs.  ``0`` means never."""


class EnemyTemplate(BaseModel):
    """Unscaled archetype data for one enemy type."""

    type: str
    name: str
    base_level: int = Field(ge=1)
    base_hp: int = Field(gt=0)
    base_attack: int = Field(ge=0)
    base_defense: int = Field(ge=0)
    base_speed: int = Field(ge=0)
    accuracy: int = Field(default=90, ge=0, le=100)
    evasion: int = Field(default=10, ge=0, le=100)
    gold_drop: int = 0
    xp_drop: int = 0
    ai: AIBehaviorProfile
    effect_abilities: list[EffectAbility] = Field(default_factory=list)

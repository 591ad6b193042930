"""Status effect definitions -- the static per-kind configuration table."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class EffectKind(str, Enum):
    """Every status effect the engine knows how to apply."""

    POISON = "poison"
    STUN = "stun"
    BLEED = "bleed"
    BURN = "burn"
    DEFEND = "defend"
    WEAKNESS = "weakness"
    SLOW = "slow"


class StatusEffectConfig(BaseModel):
    """Registry entry for a single effect kind."""

    kind: EffectKind

    max_stacks: int = Field(ge=1)
    """Upper bound on ``StatusEffect.stacks``."""

    base_duration: int = Field(ge=1)
    """Turns a fresh application lasts before bonuses."""

    max_duration: int = Field(ge=1)
    """Upper bound on ``StatusEffect.duration``."""

    damage_per_stack: float = Field(default=0.0, ge=0)
    """Fraction of max HP dealt per stack at each end-of-turn tick.

    Zero for non-damaging effects (stun, defend, weakness, slow).
    """

    prevents_action: bool = False
    base_apply_chance: float = Field(ge=0, le=1)

    description: str = ""
    icon: str = ""
    color: str = ""

    @model_validator(mode="after")
    def _check_durations(self) -> StatusEffectConfig:
        if self.base_duration > self.max_duration:
            raise ValueError(
                f"{self.kind.value}: base_duration {self.base_duration} "
                f"exceeds max_duration {self.max_duration}"
            )
        return self


class EffectAbility(BaseModel):
    """One effect an attacker may inflict on hit, with its bonuses."""

    effect_kind: EffectKind
    bonus_chance: float = 0.0
    bonus_stacks: int = Field(default=0, ge=0)
    bonus_duration: int = Field(default=0, ge=0)

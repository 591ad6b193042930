"""Combatant models shared by PvP battles and live dungeon encounters.

All data classes use Pydantic v2 BaseModel for validation and
serialization.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from dungeon_arena.errors import InvalidStatsError
from dungeon_arena.ir.status_effects import EffectKind

# Multiplier applied to incoming healing while bleeding.
BLEED_HEALING_MODIFIER = 0.5


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

class CombatantStats(BaseModel):
    """Raw combat numbers of one combatant.

    Invariants are checked on construction and violations raise
    :class:`~dungeon_arena.errors.InvalidStatsError` rather than being
    clamped: ``max_hp > 0``, ``0 <= current_hp <= max_hp`` and every other
    stat non-negative.
    """

    max_hp: int
    current_hp: int
    attack: int
    defense: int
    speed: int = 10
    accuracy: int = 80
    """Hit rating; ``0-100`` in live encounters, a PvP rating around 50-100."""
    evasion: int = 10

    @model_validator(mode="after")
    def _check_invariants(self) -> CombatantStats:
        if self.max_hp <= 0:
            raise InvalidStatsError(f"max_hp must be > 0, got {self.max_hp}")
        if not 0 <= self.current_hp <= self.max_hp:
            raise InvalidStatsError(
                f"current_hp must be within [0, {self.max_hp}], got {self.current_hp}"
            )
        for name in ("attack", "defense", "speed", "accuracy", "evasion"):
            value = getattr(self, name)
            if value < 0:
                raise InvalidStatsError(f"{name} must be >= 0, got {value}")
        return self


# ---------------------------------------------------------------------------
# StatusEffect
# ---------------------------------------------------------------------------

class StatusEffect(BaseModel):
    """One active status effect on a combatant.

    A holder carries at most one instance per ``kind``; re-applying the
    same kind merges into the existing instance (see
    :func:`dungeon_arena.sim.mechanics.status_effects.try_apply_effect`).
    """

    kind: EffectKind
    duration: int
    """Turns remaining.  Removed once it reaches 0."""

    stacks: int = 1
    source_id: str | None = None
    applied_on_turn: int = 0


# ---------------------------------------------------------------------------
# Combatant base
# ---------------------------------------------------------------------------

class Combatant(BaseModel):
    """Common base for anything that fights: PvP agents, players, enemies."""

    id: str
    name: str
    stats: CombatantStats
    effects: list[StatusEffect] = Field(default_factory=list)

    defended: bool = False
    """Set by a ``defend`` action in PvP; cleared at end of turn."""

    # -- HP queries ----------------------------------------------------------

    @property
    def is_dead(self) -> bool:
        return self.stats.current_hp <= 0

    @property
    def hp_fraction(self) -> float:
        return self.stats.current_hp / self.stats.max_hp

    @property
    def healing_modifier(self) -> float:
        """Multiplier on incoming healing; halved while bleeding."""
        if any(e.kind == EffectKind.BLEED for e in self.effects):
            return BLEED_HEALING_MODIFIER
        return 1.0

    # -- damage / heal -------------------------------------------------------

    def take_damage(self, amount: int) -> int:
        """Apply *amount* damage to HP, never dropping below 0.

        Returns the actual HP lost.
        """
        if amount <= 0:
            return 0
        hp_lost = min(self.stats.current_hp, amount)
        self.stats.current_hp -= hp_lost
        return hp_lost

    def heal(self, amount: int) -> int:
        """Heal *amount* HP scaled by the healing modifier, capped at max HP.

        Bleed halves incoming healing.  Returns the HP actually restored.
        """
        if amount <= 0:
            return 0
        scaled = int(amount * self.healing_modifier)
        restored = min(self.stats.max_hp - self.stats.current_hp, scaled)
        self.stats.current_hp += restored
        return restored


# ---------------------------------------------------------------------------
# Player
# ---------------------------------------------------------------------------

class PlayerCombatant(Combatant):
    """The player's character inside a dungeon encounter."""

    agent_class: str = "warrior"
    """Selects the class's on-hit effect table (warrior, mage, rogue, paladin)."""

    level: int = 1


# ---------------------------------------------------------------------------
# Enemy
# ---------------------------------------------------------------------------

class Enemy(Combatant):
    """A single enemy in a live encounter."""

    enemy_type: str
    """Archetype key (``"goblin"``, ``"boss_lich"``, ...) selecting the AI
    profile and the on-hit effect table."""

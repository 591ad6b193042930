"""Outbound event payloads.

The engine's only outbound artifacts are these serializable models.  They
carry ids, HP values and effect summaries (rendered by
:func:`~dungeon_arena.sim.mechanics.status_effects.serialize_effects`) and
know nothing about the transport that delivers them.  Every model has a
literal ``event`` name and a :meth:`to_payload` that returns a plain dict.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field

from dungeon_arena.sim.battle import BattleRewards
from dungeon_arena.sim.collaborators import LootRequest, LootResult
from dungeon_arena.sim.core.game_state import BattleAction
from dungeon_arena.sim.mechanics.status_effects import serialize_effects

if TYPE_CHECKING:
    from dungeon_arena.sim.content.registry import ContentRegistry
    from dungeon_arena.sim.core.entities import Combatant, Enemy


class _Event(BaseModel):
    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready dict sent to clients."""
        return self.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

class CombatantView(BaseModel):
    id: str
    name: str
    hp: int
    max_hp: int
    effects: list[dict[str, Any]] = Field(default_factory=list)


class EnemyView(CombatantView):
    type: str


def combatant_view(combatant: Combatant, registry: ContentRegistry) -> CombatantView:
    return CombatantView(
        id=combatant.id,
        name=combatant.name,
        hp=combatant.stats.current_hp,
        max_hp=combatant.stats.max_hp,
        effects=serialize_effects(combatant.effects, registry),
    )


def enemy_view(enemy: Enemy, registry: ContentRegistry) -> EnemyView:
    return EnemyView(
        id=enemy.id,
        name=enemy.name,
        type=enemy.enemy_type,
        hp=enemy.stats.current_hp,
        max_hp=enemy.stats.max_hp,
        effects=serialize_effects(enemy.effects, registry),
    )


class EffectEvent(BaseModel):
    """One effect-related happening, for client-side animation."""

    type: str
    target: str
    """Combatant id, or ``"player"``."""

    message: str


class EnemyActionResult(BaseModel):
    """What one enemy did during a live turn."""

    enemy_id: str
    enemy_name: str
    action: str
    """An :class:`EnemyDecision` value, or ``"stunned"``."""

    damage: int = 0
    critical: bool = False
    missed: bool = False
    effects_applied: list[str] = Field(default_factory=list)
    stunned: bool = False


class EntityTick(BaseModel):
    """End-of-turn DoT summary for one combatant."""

    damage: int = 0
    messages: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Live encounter events
# ---------------------------------------------------------------------------

class EncounterStarted(_Event):
    event: Literal["encounter_started"] = "encounter_started"
    session_id: str
    player: CombatantView
    enemies: list[EnemyView]


class TurnResult(_Event):
    event: Literal["turn_result"] = "turn_result"
    session_id: str
    turn: int
    player_action: str
    """The action type, or ``"stunned"`` if the player lost the turn."""

    player_damage: int = 0
    player_critical: bool = False
    player_missed: bool = False
    player_effects_applied: list[str] = Field(default_factory=list)
    enemy_actions: list[EnemyActionResult] = Field(default_factory=list)
    dot: dict[str, EntityTick] = Field(default_factory=dict)
    """Combatant id (``"player"`` for the player) -> tick summary."""

    messages: list[str] = Field(default_factory=list)
    effect_events: list[EffectEvent] = Field(default_factory=list)
    player: CombatantView
    enemies: list[EnemyView] = Field(default_factory=list)


class EncounterWon(_Event):
    event: Literal["encounter_won"] = "encounter_won"
    session_id: str
    turn: int
    loot_request: LootRequest
    loot: LootResult | None = None
    messages: list[str] = Field(default_factory=list)
    effect_events: list[EffectEvent] = Field(default_factory=list)
    player: CombatantView


class EncounterLost(_Event):
    event: Literal["encounter_lost"] = "encounter_lost"
    session_id: str
    turn: int
    message: str = "You have been defeated!"
    messages: list[str] = Field(default_factory=list)
    effect_events: list[EffectEvent] = Field(default_factory=list)
    player: CombatantView


class EncounterFled(_Event):
    event: Literal["encounter_fled"] = "encounter_fled"
    session_id: str
    escaped: bool
    message: str


# ---------------------------------------------------------------------------
# PvP events
# ---------------------------------------------------------------------------

class BattleStart(_Event):
    event: Literal["battle_start"] = "battle_start"
    battle_id: str
    agent1: CombatantView
    agent2: CombatantView


class ActionResult(_Event):
    event: Literal["action_result"] = "action_result"
    battle_id: str
    turn_number: int
    actions: list[BattleAction] = Field(default_factory=list)
    end_of_turn_damage: dict[str, int] = Field(default_factory=dict)
    agent1: CombatantView
    agent2: CombatantView


class BattleEnd(_Event):
    event: Literal["battle_end"] = "battle_end"
    battle_id: str
    winner_id: str
    loser_id: str
    winner_name: str
    loser_name: str
    message: str
    turns: int
    duration_ms: int
    rewards: BattleRewards | None = None
    """The winner's experience, gold and rating change."""

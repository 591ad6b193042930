"""Telemetry data models for per-encounter and per-battle statistics.

These lightweight dataclasses capture what is needed to judge combat
balance without storing the whole turn-by-turn history:

- **EncounterTelemetry**: outcome, damage dealt/taken, effects inflicted,
  enemy decisions per turn.
- **BattleTelemetry**: PvP summary derived from a finished ``Battle``.

Both are plain ``dataclass`` instances (not Pydantic models) to keep
collection cheap inside the resolution loop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dungeon_arena.sim.core.game_state import Battle


@dataclass
class EncounterTelemetry:
    """Stats from a single live encounter.

    Attributes
    ----------
    enemy_types:
        Roster enemy types, in spawn order.
    result:
        ``"in_progress"``, ``"won"``, ``"lost"`` or ``"fled"``.
    turns:
        Number of player actions processed.
    player_hp_start:
        Player HP when the encounter started.
    player_hp_end:
        Player HP at the last processed turn.
    damage_dealt:
        Total direct damage the player dealt to enemies.
    damage_taken:
        Total damage the player took, direct and over time.
    effects_applied:
        Breakdown of successful effect applications: ``kind -> count``.
    enemy_decisions_per_turn:
        For each turn, the decision each acting enemy made.
    """

    enemy_types: list[str]
    player_hp_start: int
    result: str = "in_progress"
    turns: int = 0
    player_hp_end: int = 0
    damage_dealt: int = 0
    damage_taken: int = 0
    effects_applied: dict[str, int] = field(default_factory=dict)
    enemy_decisions_per_turn: list[list[str]] = field(default_factory=list)

    def record_effect(self, kind: str) -> None:
        self.effects_applied[kind] = self.effects_applied.get(kind, 0) + 1


@dataclass
class BattleTelemetry:
    """Stats from one finished PvP battle.

    Attributes
    ----------
    battle_id:
        Id of the source battle.
    winner_id:
        Winning combatant id (``None`` if the battle is unfinished).
    turns:
        Number of turns recorded.
    damage_by_agent:
        Direct damage dealt by each combatant.
    dot_damage_by_agent:
        Legacy end-of-turn damage taken by each combatant.
    crits:
        Critical hits landed by each combatant.
    misses:
        Missed attacks by each combatant.
    """

    battle_id: str
    winner_id: str | None
    turns: int
    damage_by_agent: dict[str, int] = field(default_factory=dict)
    dot_damage_by_agent: dict[str, int] = field(default_factory=dict)
    crits: dict[str, int] = field(default_factory=dict)
    misses: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_battle(cls, battle: Battle) -> BattleTelemetry:
        """Summarise a battle's turn log."""
        telemetry = cls(
            battle_id=battle.id,
            winner_id=battle.winner_id,
            turns=len(battle.turns),
        )
        for agent_id in (battle.agent1.id, battle.agent2.id):
            telemetry.damage_by_agent[agent_id] = 0
            telemetry.dot_damage_by_agent[agent_id] = 0
            telemetry.crits[agent_id] = 0
            telemetry.misses[agent_id] = 0

        for turn in battle.turns:
            for action in turn.actions:
                telemetry.damage_by_agent[action.agent_id] += action.damage
                if action.critical:
                    telemetry.crits[action.agent_id] += 1
                if action.missed:
                    telemetry.misses[action.agent_id] += 1
            for agent_id, dmg in turn.end_of_turn_damage.items():
                telemetry.dot_damage_by_agent[agent_id] += dmg
        return telemetry

"""Battle and encounter state for the arena engine.

Houses the state of a 1v1 PvP ``Battle`` (with its append-only turn log)
and of a live 1-vs-N ``EncounterSession``.
"""

from __future__ import annotations

import uuid
from typing import Any, Callable, Literal

from pydantic import BaseModel, Field

from dungeon_arena.errors import NotFoundError, TargetNotFoundError
from dungeon_arena.sim.core.entities import Combatant, Enemy, PlayerCombatant
from dungeon_arena.sim.telemetry import EncounterTelemetry


# ---------------------------------------------------------------------------
# PvP turn log
# ---------------------------------------------------------------------------

class BattleAction(BaseModel):
    """One resolved action inside a PvP turn."""

    type: str
    """``"attack"``, ``"defend"`` or ``"ability"``."""

    agent_id: str
    target_id: str
    damage: int = 0
    critical: bool = False
    missed: bool = False
    effect: str | None = None
    """Effect kind inflicted by this action, if any."""

    message: str = ""
    timestamp: float = 0.0


class Turn(BaseModel):
    """A full PvP turn: both actions plus the end-of-turn DoT."""

    turn_number: int
    actions: list[BattleAction] = Field(default_factory=list)
    end_of_turn_damage: dict[str, int] = Field(default_factory=dict)
    """Combatant id -> legacy DoT damage taken at the end of this turn."""

    timestamp: float = 0.0


# ---------------------------------------------------------------------------
# Battle
# ---------------------------------------------------------------------------

class Battle(BaseModel):
    """State of a 1v1 PvP battle.

    Combatants are deep copies of the records the battle was created from,
    so later changes to those records never rewrite history.  ``turns`` is
    append-only and the battle becomes immutable once ``status`` is
    ``"completed"``.
    """

    model_config = {"arbitrary_types_allowed": True}

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    agent1: Combatant
    agent2: Combatant
    turns: list[Turn] = Field(default_factory=list)
    winner_id: str | None = None
    status: Literal["in_progress", "completed"] = "in_progress"
    started_at: float = 0.0
    ended_at: float | None = None
    duration_ms: int = 0
    seed: int = 0
    ratings: tuple[int, int] = (1000, 1000)
    """Pre-battle ratings of ``agent1`` and ``agent2``, used for rewards."""

    rng: Any = Field(default=None, exclude=True)
    """The battle's :class:`GameRNG`; excluded from serialization."""

    # -- queries -------------------------------------------------------------

    @property
    def is_over(self) -> bool:
        return self.status == "completed"

    def get_agent(self, agent_id: str) -> Combatant:
        """Return the combatant with *agent_id*.

        Raises
        ------
        NotFoundError
            If neither side has that id.
        """
        if self.agent1.id == agent_id:
            return self.agent1
        if self.agent2.id == agent_id:
            return self.agent2
        raise NotFoundError(f"Agent {agent_id!r} is not in battle {self.id!r}")

    def opponent_of(self, agent_id: str) -> Combatant:
        """Return the other side of the battle from *agent_id*."""
        agent = self.get_agent(agent_id)
        return self.agent2 if agent is self.agent1 else self.agent1

    # -- lifecycle -----------------------------------------------------------

    def finish(self, winner_id: str, clock: Callable[[], float]) -> None:
        """Mark the battle completed.  Only the first call has any effect."""
        if self.is_over:
            return
        self.winner_id = winner_id
        self.status = "completed"
        self.ended_at = clock()
        self.duration_ms = int(round((self.ended_at - self.started_at) * 1000))


# ---------------------------------------------------------------------------
# EncounterSession
# ---------------------------------------------------------------------------

class EncounterSession(BaseModel):
    """State of one player's live dungeon session.

    A session outlives individual encounters: ``in_encounter`` gates
    whether combat actions are accepted, and ``enemies`` is reseeded from
    the external roster by each :func:`~dungeon_arena.sim.encounter.start_encounter`.
    """

    model_config = {"arbitrary_types_allowed": True}

    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    dungeon_id: str = ""
    depth: int = 1
    magic_find: float = 0.0
    player: PlayerCombatant
    enemies: list[Enemy] = Field(default_factory=list)
    roster_types: list[str] = Field(default_factory=list)
    """Enemy types of the current encounter, in roster order (kept after
    enemies die or flee, for the loot hand-off)."""

    turn_count: int = 0
    in_encounter: bool = False
    status: Literal["idle", "active", "won", "lost", "fled"] = "idle"
    seed: int = 0
    telemetry: EncounterTelemetry | None = None

    rng: Any = Field(default=None, exclude=True)
    """The session's :class:`GameRNG`; excluded from serialization."""

    # -- queries -------------------------------------------------------------

    @property
    def living_enemies(self) -> list[Enemy]:
        return [e for e in self.enemies if not e.is_dead]

    def get_enemy(self, enemy_id: str | None) -> Enemy:
        """Return the enemy with *enemy_id*.

        Raises
        ------
        TargetNotFoundError
            If no enemy in the encounter has that id.
        """
        for enemy in self.enemies:
            if enemy.id == enemy_id:
                return enemy
        raise TargetNotFoundError(f"Target {enemy_id!r} is not in this encounter")

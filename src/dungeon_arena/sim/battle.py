"""1v1 PvP battle orchestration.

A battle is driven one turn at a time by :func:`process_turn`: both sides
declare an action, the faster side (speed plus a ``U(0, 5)`` roll,
re-rolled every turn) resolves first, and the win condition is checked
after every single action so a kill stops the turn early.  Surviving
turns end with the legacy flat damage-over-time pass and the ``defended``
flags are cleared.

PvP keeps its own accounting of damage over time: a present ``bleed``,
``burn`` or ``poison`` deals a flat 5% / 8% / 3% of max HP each turn,
regardless of stacks, and never wears off.
"""

from __future__ import annotations

import logging
import math
import time
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel

from dungeon_arena.errors import BattleOverError
from dungeon_arena.ir.actions import Ability, Attack, Defend, parse_action
from dungeon_arena.ir.status_effects import EffectKind
from dungeon_arena.sim.core.game_state import Battle, BattleAction, Turn
from dungeon_arena.sim.mechanics.damage import resolve_pvp_attack, resolve_special_ability
from dungeon_arena.sim.mechanics.modifiers import get_speed_modifier
from dungeon_arena.sim.mechanics.status_effects import get_effect

if TYPE_CHECKING:
    from dungeon_arena.sim.content.registry import ContentRegistry
    from dungeon_arena.sim.core.entities import Combatant
    from dungeon_arena.sim.core.rng import GameRNG

logger = logging.getLogger(__name__)

# Flat share of max HP lost per turn while the effect is present.
LEGACY_DOT_RATES: dict[EffectKind, float] = {
    EffectKind.BLEED: 0.05,
    EffectKind.BURN: 0.08,
    EffectKind.POISON: 0.03,
}

SPEED_ROLL_MAX = 5.0
ELO_K = 32


# ---------------------------------------------------------------------------
# Creation and ordering
# ---------------------------------------------------------------------------

def create_battle(
    agent1: Combatant,
    agent2: Combatant,
    clock: Callable[[], float] = time.time,
) -> Battle:
    """Start a battle between deep copies of *agent1* and *agent2*.

    Raises
    ------
    ValueError
        If both combatants share an id.
    """
    if agent1.id == agent2.id:
        raise ValueError(f"A combatant cannot battle itself: {agent1.id!r}")
    battle = Battle(
        agent1=agent1.model_copy(deep=True),
        agent2=agent2.model_copy(deep=True),
        started_at=clock(),
    )
    logger.info("Battle %s started: %s vs %s", battle.id, agent1.id, agent2.id)
    return battle


def get_action_order(battle: Battle, rng: GameRNG) -> tuple[Combatant, Combatant]:
    """Return ``(first, second)`` for this turn.  Ties go to agent1."""
    a1, a2 = battle.agent1, battle.agent2
    speed1 = a1.stats.speed * get_speed_modifier(a1.effects) + rng.random_uniform(0, SPEED_ROLL_MAX)
    speed2 = a2.stats.speed * get_speed_modifier(a2.effects) + rng.random_uniform(0, SPEED_ROLL_MAX)
    return (a1, a2) if speed1 >= speed2 else (a2, a1)


def check_win_condition(battle: Battle) -> str | None:
    """Return the winner's id, or ``None`` while both sides stand.

    If both are down, agent2 is reported as the winner (agent1 is checked
    first).
    """
    if battle.agent1.is_dead:
        return battle.agent2.id
    if battle.agent2.is_dead:
        return battle.agent1.id
    return None


# ---------------------------------------------------------------------------
# Turn processing
# ---------------------------------------------------------------------------

def _resolve_action(
    action: Attack | Defend | Ability,
    actor: Combatant,
    defender: Combatant,
    turn_number: int,
    rng: GameRNG,
    registry: ContentRegistry,
    now: float,
) -> BattleAction:
    if isinstance(action, Attack):
        outcome = resolve_pvp_attack(actor, defender, rng=rng, registry=registry, turn=turn_number)
        return BattleAction(
            type="attack",
            agent_id=actor.id,
            target_id=defender.id,
            damage=outcome.damage,
            critical=outcome.critical,
            missed=outcome.missed,
            effect=outcome.effects[0].kind.value if outcome.effects else None,
            message=outcome.message,
            timestamp=now,
        )
    if isinstance(action, Defend):
        actor.defended = True
        return BattleAction(
            type="defend",
            agent_id=actor.id,
            target_id=actor.id,
            message=f"{actor.name} takes a defensive stance!",
            timestamp=now,
        )
    outcome = resolve_special_ability(actor, defender)
    return BattleAction(
        type="ability",
        agent_id=actor.id,
        target_id=defender.id,
        damage=outcome.damage,
        message=outcome.message,
        timestamp=now,
    )


def apply_legacy_dot(combatant: Combatant) -> int:
    """Apply the flat PvP end-of-turn damage and clear ``defended``.

    Returns the HP lost.
    """
    total = 0
    for kind, rate in LEGACY_DOT_RATES.items():
        if get_effect(combatant.effects, kind) is not None:
            total += combatant.take_damage(math.floor(combatant.stats.max_hp * rate))
    combatant.defended = False
    return total


def process_turn(
    battle: Battle,
    action1: Any,
    action2: Any,
    *,
    rng: GameRNG,
    registry: ContentRegistry,
    clock: Callable[[], float] = time.time,
) -> Turn:
    """Resolve one full turn and append it to ``battle.turns``.

    Parameters
    ----------
    battle:
        The battle to advance; mutated in place.
    action1, action2:
        Declared actions for agent1 and agent2 (models, dicts or type
        strings, see :func:`~dungeon_arena.ir.actions.parse_action`).
    rng:
        Draw source for ordering and every attack roll.
    registry:
        Effect config (for crit-induced bleed).
    clock:
        Returns the current time in seconds.

    Returns
    -------
    Turn
        The appended turn record.

    Raises
    ------
    BattleOverError
        If the battle is already completed (nothing is mutated).
    InvalidActionError
        If either action is malformed (nothing is mutated).
    """
    if battle.is_over:
        raise BattleOverError(f"Battle {battle.id!r} is already completed")
    parsed = {
        battle.agent1.id: parse_action(action1),
        battle.agent2.id: parse_action(action2),
    }

    turn_number = len(battle.turns) + 1
    turn = Turn(turn_number=turn_number)

    for actor in get_action_order(battle, rng):
        defender = battle.opponent_of(actor.id)
        turn.actions.append(
            _resolve_action(parsed[actor.id], actor, defender, turn_number, rng, registry, clock())
        )
        winner = check_win_condition(battle)
        if winner is not None:
            battle.finish(winner, clock)
            break

    if not battle.is_over:
        for agent in (battle.agent1, battle.agent2):
            turn.end_of_turn_damage[agent.id] = apply_legacy_dot(agent)
        winner = check_win_condition(battle)
        if winner is not None:
            battle.finish(winner, clock)

    turn.timestamp = clock()
    battle.turns.append(turn)
    if battle.is_over:
        logger.info(
            "Battle %s completed on turn %d, winner %s",
            battle.id, turn_number, battle.winner_id,
        )
    return turn


def surrender(
    battle: Battle,
    agent_id: str,
    clock: Callable[[], float] = time.time,
) -> str:
    """Concede for *agent_id*; the opponent wins.  Returns the winner's id.

    Raises
    ------
    BattleOverError
        If the battle is already completed.
    NotFoundError
        If *agent_id* is not in the battle.
    """
    if battle.is_over:
        raise BattleOverError(f"Battle {battle.id!r} is already completed")
    winner = battle.opponent_of(agent_id)
    battle.finish(winner.id, clock)
    logger.info("Battle %s: %s surrendered", battle.id, agent_id)
    return winner.id


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------

class BattleRewards(BaseModel):
    """What the winner of a PvP battle earns."""

    experience: int
    gold: int
    rating_change: int


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def calculate_rewards(
    winner: Combatant,
    loser: Combatant,
    winner_rating: int = 1000,
    loser_rating: int = 1000,
    *,
    rng: GameRNG,
) -> BattleRewards:
    """Compute experience, gold and the Elo rating change for a win.

    Beating a beefier opponent pays more experience: +100% per 50 max HP
    the loser had over the winner.  Gold is ``50-99``.  The rating change
    uses K=32.
    """
    hp_gap = max(0.0, (loser.stats.max_hp - winner.stats.max_hp) / 50)
    experience = math.floor(100 * (1 + hp_gap))
    gold = math.floor(50 + rng.random_float() * 50)
    expected = 1 / (1 + 10 ** ((loser_rating - winner_rating) / 400))
    rating_change = _round_half_up(ELO_K * (1 - expected))
    return BattleRewards(experience=experience, gold=gold, rating_change=rating_change)

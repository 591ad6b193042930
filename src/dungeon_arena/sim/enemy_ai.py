"""Enemy decision policy for live encounters.

Each enemy's choice is a pure function of its :class:`AIBehaviorProfile`,
an :class:`AISnapshot` of the fight, and a dedicated RNG stream (the
encounter engine forks one per enemy, per turn).  The policy is a short
priority list:

1. flee below the profile's HP threshold;
2. brace when badly hurt and the player threatens a big hit;
3. bosses follow HP-banded weights (:func:`decide_boss_action`);
4. everyone else rolls ranged preference, then defensiveness, and
   otherwise attacks.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pydantic import BaseModel

from dungeon_arena.ir.actions import EnemyDecision
from dungeon_arena.ir.enemies import AIBehavior

if TYPE_CHECKING:
    from dungeon_arena.ir.enemies import AIBehaviorProfile
    from dungeon_arena.sim.core.rng import GameRNG

DEFENSIVE_HP_THRESHOLD = 0.5
THREAT_FRACTION = 0.2
PREDICTION_SPREAD = 5.0

_PERSONALITIES: dict[AIBehavior, str] = {
    AIBehavior.AGGRESSIVE: "Charges straight in and keeps swinging.",
    AIBehavior.RANGED: "Keeps its distance and favours special attacks.",
    AIBehavior.BOSS: "Shifts tactics as the fight turns against it.",
}


class AISnapshot(BaseModel):
    """The slice of fight state an enemy looks at when deciding."""

    player_hp: int
    player_max_hp: int
    player_attack: int
    player_defense: int
    enemy_hp: int
    enemy_max_hp: int
    enemy_attack: int
    enemy_defense: int
    player_defended: bool = False
    enemy_defended: bool = False
    turns_elapsed: int = 0

    @property
    def enemy_hp_fraction(self) -> float:
        return self.enemy_hp / self.enemy_max_hp


def decide_enemy_action(
    profile: AIBehaviorProfile,
    snapshot: AISnapshot,
    rng: GameRNG,
) -> EnemyDecision:
    """Choose this turn's action for one enemy.

    The predicted player damage is always drawn first; later draws happen
    only on the branches that need them.

    Parameters
    ----------
    profile:
        The enemy archetype's AI weights.
    snapshot:
        Current fight state.
    rng:
        The enemy's per-turn stream.

    Returns
    -------
    EnemyDecision
        ``flee`` is only possible when ``flee_threshold > 0``.
    """
    hp_fraction = snapshot.enemy_hp_fraction
    if profile.flee_threshold > 0 and hp_fraction < profile.flee_threshold:
        return EnemyDecision.FLEE

    predicted = (
        snapshot.player_attack
        - snapshot.enemy_defense
        + rng.random_uniform(-PREDICTION_SPREAD, PREDICTION_SPREAD)
    )
    if hp_fraction < DEFENSIVE_HP_THRESHOLD and predicted > snapshot.enemy_hp * THREAT_FRACTION:
        if profile.defensiveness > rng.random_float() and not snapshot.enemy_defended:
            return EnemyDecision.DEFEND

    if profile.behavior == AIBehavior.BOSS:
        return decide_boss_action(profile, snapshot, rng)

    roll = rng.random_float()
    if profile.ranged_preference > rng.random_float():
        return EnemyDecision.ABILITY
    if profile.defensiveness > roll:
        return EnemyDecision.DEFEND
    return EnemyDecision.ATTACK


def decide_boss_action(
    profile: AIBehaviorProfile,
    snapshot: AISnapshot,
    rng: GameRNG,
) -> EnemyDecision:
    """HP-banded boss weights.  Exactly one draw per call.

    ======== ======= ======= ========
    HP       defend  ability attack
    ======== ======= ======= ========
    > 75%    --      30%     70%
    50-75%   30%     30%     40%
    25-50%   40%     30%     30%
    <= 25%   --      60%     40%
    ======== ======= ======= ========
    """
    hp_fraction = snapshot.enemy_hp_fraction
    roll = rng.random_float()

    if hp_fraction > 0.75:
        return EnemyDecision.ATTACK if roll < 0.7 else EnemyDecision.ABILITY
    if hp_fraction > 0.5:
        if roll < 0.3:
            return EnemyDecision.DEFEND
        if roll < 0.6:
            return EnemyDecision.ABILITY
        return EnemyDecision.ATTACK
    if hp_fraction > 0.25:
        if roll < 0.4:
            return EnemyDecision.DEFEND
        if roll < 0.7:
            return EnemyDecision.ABILITY
        return EnemyDecision.ATTACK
    return EnemyDecision.ABILITY if roll < 0.6 else EnemyDecision.ATTACK


def estimate_enemy_damage(
    enemy_attack: int, player_defense: int, critical: bool = False,
) -> int:
    """Expected (variance-free) damage of one enemy hit, for UI previews."""
    damage = max(1, math.floor(enemy_attack - player_defense / 2))
    if critical:
        damage = math.floor(damage * 1.5)
    return damage


def describe_behavior(behavior: AIBehavior | str) -> str:
    """Return a one-line personality blurb for an AI behaviour."""
    return _PERSONALITIES[AIBehavior(behavior)]

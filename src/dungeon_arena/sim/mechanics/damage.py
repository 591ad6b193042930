"""Damage resolution -- hit/miss, critical rolls, final damage.

Two formula families exist and are deliberately kept apart:

* **PvP mode** (:func:`resolve_pvp_attack`) -- composite hit chance from
  accuracy vs. evasion, accuracy-scaled crit chance, multiplicative
  defense, an integer variance of +/-15, and a bleed mitigation.
* **Live-encounter mode** (:func:`resolve_encounter_attack`) -- miss chance
  straight from accuracy, a flat crit chance, a multiplicative
  ``U(0.8, 1.2)`` variance and half-weight defense.

:func:`resolve_special_ability` is shared by both call sites.

Every resolver applies its damage to the defender and returns an
:class:`AttackOutcome`.  Every non-miss damage value is at least 1.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from dungeon_arena.ir.status_effects import EffectKind
from dungeon_arena.sim.mechanics.modifiers import get_attack_modifier, is_defending
from dungeon_arena.sim.mechanics.status_effects import (
    EffectApplicationResult,
    get_effect,
    grant_effect,
)

if TYPE_CHECKING:
    from dungeon_arena.sim.content.registry import ContentRegistry
    from dungeon_arena.sim.core.entities import Combatant
    from dungeon_arena.sim.core.rng import GameRNG

logger = logging.getLogger(__name__)

CRIT_MULTIPLIER = 1.5
DEFEND_MULTIPLIER = 0.6

# PvP tuning
PVP_BASE_HIT = 0.85
PVP_MIN_HIT = 0.2
PVP_MAX_HIT = 0.95
PVP_DEFENDED_HIT_PENALTY = 0.15
PVP_MAX_CRIT = 0.25
PVP_ATTACK_SCALE = 1.1
PVP_DEFENSE_SCALE = 0.9
PVP_VARIANCE = 15
PVP_BLEED_MITIGATION = 0.85
PVP_CRIT_BLEED_CHANCE = 0.3

# Special ability tuning
ABILITY_HP_COST = 0.10
ABILITY_ATTACK_SCALE = 1.8
ABILITY_MIN_DAMAGE = 5


class AttackOutcome(BaseModel):
    """Result of one resolved attack or ability."""

    damage: int = 0
    critical: bool = False
    missed: bool = False
    hp_cost: int = 0
    """HP the actor paid (special ability only)."""

    effects: list[EffectApplicationResult] = Field(default_factory=list)
    """Effects inflicted by the resolver itself (PvP crit bleed)."""

    message: str = ""


# ---------------------------------------------------------------------------
# PvP mode
# ---------------------------------------------------------------------------

def pvp_hit_chance(attacker: Combatant, defender: Combatant) -> float:
    """Return the PvP hit probability, clamped to ``[0.2, 0.95]``."""
    accuracy_bonus = (attacker.stats.accuracy - 50) / 100 * 0.15
    evasion_penalty = (defender.stats.evasion - 50) / 100 * 0.15
    defend_penalty = PVP_DEFENDED_HIT_PENALTY if is_defending(defender) else 0.0
    chance = PVP_BASE_HIT + accuracy_bonus - evasion_penalty - defend_penalty
    return max(PVP_MIN_HIT, min(PVP_MAX_HIT, chance))


def pvp_crit_chance(accuracy: int) -> float:
    """Return the PvP crit probability for an accuracy rating."""
    return max(0.0, min(PVP_MAX_CRIT, 0.10 + (accuracy - 80) / 200))


def resolve_pvp_attack(
    attacker: Combatant,
    defender: Combatant,
    *,
    rng: GameRNG,
    registry: ContentRegistry,
    turn: int = 0,
) -> AttackOutcome:
    """Resolve a PvP basic attack and apply it to *defender*.

    Draw order: hit roll, crit roll, variance, and on a crit the bleed roll.

    Parameters
    ----------
    attacker, defender:
        The two combatants; *defender* is mutated.
    rng:
        Draw source.
    registry:
        Needed to create the crit-induced bleed.
    turn:
        Turn number recorded on an inflicted bleed.
    """
    if rng.random_float() > pvp_hit_chance(attacker, defender):
        return AttackOutcome(missed=True, message=f"{attacker.name}'s attack missed!")

    critical = rng.random_float() < pvp_crit_chance(attacker.stats.accuracy)
    attack = attacker.stats.attack * get_attack_modifier(attacker.effects)
    damage = (
        math.floor(attack * PVP_ATTACK_SCALE)
        - math.floor(defender.stats.defense * PVP_DEFENSE_SCALE)
        + rng.random_int(-PVP_VARIANCE, PVP_VARIANCE)
    )
    if critical:
        damage = math.floor(damage * CRIT_MULTIPLIER)
    if is_defending(defender):
        damage = math.floor(damage * DEFEND_MULTIPLIER)
    if get_effect(defender.effects, EffectKind.BLEED) is not None:
        damage = math.floor(damage * PVP_BLEED_MITIGATION)
    damage = max(1, damage)

    defender.take_damage(damage)
    outcome = AttackOutcome(damage=damage, critical=critical)

    if critical and rng.random_float() < PVP_CRIT_BLEED_CHANCE:
        # Legacy PvP bleed is a presence flag: it never stacks.
        if get_effect(defender.effects, EffectKind.BLEED) is None:
            effect = grant_effect(defender.effects, EffectKind.BLEED, attacker.id, turn, registry)
            cfg = registry.get_effect_config(EffectKind.BLEED)
            outcome.effects.append(EffectApplicationResult(
                kind=EffectKind.BLEED,
                applied=True,
                resisted=False,
                message=f"{cfg.icon} bleed applied!",
                effect=effect,
            ))

    if critical:
        outcome.message = f"⚡ {attacker.name} CRITICAL HIT {defender.name}! {damage} damage!"
    else:
        outcome.message = f"{attacker.name} attacks {defender.name} for {damage} damage!"
    logger.debug("pvp attack %s -> %s: %s", attacker.id, defender.id, outcome.message)
    return outcome


# ---------------------------------------------------------------------------
# Live-encounter mode
# ---------------------------------------------------------------------------

def resolve_encounter_attack(
    attacker: Combatant,
    defender: Combatant,
    crit_chance: float,
    *,
    rng: GameRNG,
) -> AttackOutcome:
    """Resolve a live-encounter attack and apply it to *defender*.

    Draw order: miss roll, crit roll, ``U(0.8, 1.2)`` variance.  A miss
    consumes only the first draw.

    Parameters
    ----------
    attacker, defender:
        The two combatants; *defender* is mutated.
    crit_chance:
        Flat critical chance for this side (player vs. enemy).
    rng:
        Draw source.
    """
    if rng.random_float() > attacker.stats.accuracy / 100:
        return AttackOutcome(missed=True, message=f"{attacker.name}'s attack missed!")

    critical = rng.random_float() < crit_chance
    raw = (
        attacker.stats.attack
        * get_attack_modifier(attacker.effects)
        * rng.random_uniform(0.8, 1.2)
    )
    if critical:
        raw *= CRIT_MULTIPLIER
    damage = max(1, math.floor(raw - defender.stats.defense / 2))
    if is_defending(defender):
        damage = max(1, math.floor(damage * DEFEND_MULTIPLIER))

    defender.take_damage(damage)
    if critical:
        message = f"\U0001f4a5 {attacker.name} lands a critical hit for {damage} damage!"
    else:
        message = f"{attacker.name} attacks {defender.name} for {damage} damage!"
    logger.debug("encounter attack %s -> %s: %s", attacker.id, defender.id, message)
    return AttackOutcome(damage=damage, critical=critical, message=message)


# ---------------------------------------------------------------------------
# Special ability
# ---------------------------------------------------------------------------

def resolve_special_ability(actor: Combatant, target: Combatant) -> AttackOutcome:
    """Trade 10% of max HP for a heavy hit that never misses.

    The HP cost never drops the actor below 1 HP.  Damage is
    ``max(5, floor(attack * atk_mod * 1.8 - defense / 4))``.  Consumes no
    random draws.
    """
    cost = math.floor(actor.stats.max_hp * ABILITY_HP_COST)
    before = actor.stats.current_hp
    actor.stats.current_hp = max(1, actor.stats.current_hp - cost)

    attack = actor.stats.attack * get_attack_modifier(actor.effects)
    damage = max(
        ABILITY_MIN_DAMAGE,
        math.floor(attack * ABILITY_ATTACK_SCALE - target.stats.defense / 4),
    )
    target.take_damage(damage)
    return AttackOutcome(
        damage=damage,
        hp_cost=before - actor.stats.current_hp,
        message=f"✨ {actor.name} uses Special Ability! {damage} damage!",
    )

"""Status effect lifecycle -- apply, grant, tick, remove, query.

Operates on a combatant's ``effects`` list (``list[StatusEffect]``) in
place.  Every rule comes from the :class:`StatusEffectConfig` table served
by the :class:`ContentRegistry`, so the engine itself carries no per-kind
constants.

Invariants maintained by every function here:

* at most one :class:`StatusEffect` per kind in a list;
* ``1 <= stacks <= max_stacks`` and ``0 <= duration <= max_duration``;
* an application attempt draws exactly one value from the RNG.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Sequence

from pydantic import BaseModel, Field

from dungeon_arena.errors import UnknownEffectError
from dungeon_arena.ir.status_effects import EffectAbility, EffectKind
from dungeon_arena.sim.core.entities import StatusEffect

if TYPE_CHECKING:
    from dungeon_arena.sim.content.registry import ContentRegistry
    from dungeon_arena.sim.core.rng import GameRNG

logger = logging.getLogger(__name__)

# Defense-based resistance: 0.3% per defense point, capped at 30%.
DEFENSE_RESIST_PER_POINT = 0.003
MAX_DEFENSE_RESIST = 0.3
MIN_APPLY_CHANCE = 0.05
CRIT_APPLY_BONUS = 0.15


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------

class EffectApplicationResult(BaseModel):
    """Outcome of one application attempt."""

    kind: EffectKind
    applied: bool
    resisted: bool
    message: str
    effect: StatusEffect | None = None
    """The created or merged effect (a live reference into the list)."""


class StatusEffectTickResult(BaseModel):
    """What one effect did during an end-of-turn tick."""

    kind: EffectKind
    damage: int = 0
    message: str
    expired: bool = False


class TickOutcome(BaseModel):
    """Aggregate result of ticking one holder's effect list."""

    new_hp: int
    total_damage: int = 0
    results: list[StatusEffectTickResult] = Field(default_factory=list)
    expired_kinds: list[EffectKind] = Field(default_factory=list)


def _plural(n: int) -> str:
    return "stack" if n == 1 else "stacks"


def _as_kind(kind: EffectKind | str) -> EffectKind:
    try:
        return EffectKind(kind)
    except ValueError:
        raise UnknownEffectError(f"Unknown status effect: {kind!r}") from None


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def get_effect(effects: Sequence[StatusEffect], kind: EffectKind | str) -> StatusEffect | None:
    """Return the effect of *kind* in *effects*, or ``None``."""
    kind = _as_kind(kind)
    for effect in effects:
        if effect.kind == kind:
            return effect
    return None


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

def try_apply_effect(
    target_effects: list[StatusEffect],
    kind: EffectKind | str,
    source_id: str | None,
    turn: int,
    target_defense: int = 0,
    bonus_chance: float = 0.0,
    bonus_stacks: int = 0,
    bonus_duration: int = 0,
    *,
    rng: GameRNG,
    registry: ContentRegistry,
) -> EffectApplicationResult:
    """Roll to apply *kind* to a target, merging with any existing instance.

    The success chance is the kind's ``base_apply_chance`` plus
    *bonus_chance*, minus a defense resist of ``0.3%`` per point (at most
    30%), and never below 5%.  A resisted roll leaves *target_effects*
    untouched.

    Parameters
    ----------
    target_effects:
        The target's effect list; mutated in place on success.
    kind:
        Effect to apply.
    source_id:
        Id of the combatant responsible, recorded on new effects.
    turn:
        Current turn number, recorded on new effects.
    target_defense:
        Target's defense stat, used for resistance.
    bonus_chance, bonus_stacks, bonus_duration:
        Attacker-specific bonuses from its effect-ability table.
    rng:
        Draw source; exactly one value is consumed.
    registry:
        Supplies the kind's config.

    Returns
    -------
    EffectApplicationResult
        ``applied`` or ``resisted`` plus a display message.

    Raises
    ------
    UnknownEffectError
        If *kind* has no registry entry.
    """
    cfg = registry.get_effect_config(kind)
    kind = cfg.kind

    resist = min(MAX_DEFENSE_RESIST, target_defense * DEFENSE_RESIST_PER_POINT)
    final_chance = max(MIN_APPLY_CHANCE, cfg.base_apply_chance + bonus_chance - resist)
    roll = rng.random_float()
    if roll > final_chance:
        logger.debug("%s resisted (roll %.3f > %.3f)", kind.value, roll, final_chance)
        return EffectApplicationResult(
            kind=kind,
            applied=False,
            resisted=True,
            message=f"Resisted {kind.value}!",
        )

    existing = get_effect(target_effects, kind)
    if existing is not None:
        existing.stacks = min(cfg.max_stacks, existing.stacks + 1 + bonus_stacks)
        existing.duration = min(
            cfg.max_duration,
            max(existing.duration, cfg.base_duration + bonus_duration),
        )
        return EffectApplicationResult(
            kind=kind,
            applied=True,
            resisted=False,
            message=f"{cfg.icon} {kind.value} stacked to {existing.stacks}!",
            effect=existing,
        )

    effect = StatusEffect(
        kind=kind,
        duration=min(cfg.max_duration, cfg.base_duration + bonus_duration),
        stacks=min(cfg.max_stacks, 1 + bonus_stacks),
        source_id=source_id,
        applied_on_turn=turn,
    )
    target_effects.append(effect)
    return EffectApplicationResult(
        kind=kind,
        applied=True,
        resisted=False,
        message=(
            f"{cfg.icon} {kind.value} applied! "
            f"({effect.stacks} {_plural(effect.stacks)}, {effect.duration} turns)"
        ),
        effect=effect,
    )


def roll_attack_effects(
    abilities: Sequence[EffectAbility],
    target_effects: list[StatusEffect],
    source_id: str | None,
    turn: int,
    target_defense: int,
    is_critical: bool,
    *,
    rng: GameRNG,
    registry: ContentRegistry,
) -> list[EffectApplicationResult]:
    """Roll every on-hit effect an attacker carries, in table order.

    A critical hit adds ``+0.15`` to each roll's chance.  Each ability
    consumes one RNG draw.
    """
    crit_bonus = CRIT_APPLY_BONUS if is_critical else 0.0
    results: list[EffectApplicationResult] = []
    for ability in abilities:
        result = try_apply_effect(
            target_effects,
            ability.effect_kind,
            source_id,
            turn,
            target_defense,
            ability.bonus_chance + crit_bonus,
            ability.bonus_stacks,
            ability.bonus_duration,
            rng=rng,
            registry=registry,
        )
        if result.applied or result.resisted:
            results.append(result)
    return results


def grant_effect(
    effects: list[StatusEffect],
    kind: EffectKind | str,
    source_id: str | None,
    turn: int,
    registry: ContentRegistry,
) -> StatusEffect:
    """Apply *kind* unconditionally (no roll), e.g. a self-applied defend.

    Merges with an existing instance under the same stack/duration caps as
    :func:`try_apply_effect`.  Returns the live effect.
    """
    cfg = registry.get_effect_config(kind)
    existing = get_effect(effects, cfg.kind)
    if existing is not None:
        existing.stacks = min(cfg.max_stacks, existing.stacks + 1)
        existing.duration = min(cfg.max_duration, max(existing.duration, cfg.base_duration))
        return existing

    effect = StatusEffect(
        kind=cfg.kind,
        duration=cfg.base_duration,
        stacks=1,
        source_id=source_id,
        applied_on_turn=turn,
    )
    effects.append(effect)
    return effect


# ---------------------------------------------------------------------------
# Removal
# ---------------------------------------------------------------------------

def remove_effect(effects: list[StatusEffect], kind: EffectKind | str) -> bool:
    """Remove the effect of *kind*.  Returns ``True`` if one was present."""
    kind = _as_kind(kind)
    for i, effect in enumerate(effects):
        if effect.kind == kind:
            del effects[i]
            return True
    return False


def clear_all_effects(effects: list[StatusEffect]) -> list[EffectKind]:
    """Cleanse every effect.  Returns the kinds that were removed."""
    removed = [e.kind for e in effects]
    effects.clear()
    return removed


# ---------------------------------------------------------------------------
# End-of-turn tick
# ---------------------------------------------------------------------------

def process_status_effects(
    effects: list[StatusEffect],
    max_hp: int,
    current_hp: int,
    *,
    registry: ContentRegistry,
) -> TickOutcome:
    """Tick every effect once: deal DoT, decrement durations, drop expired.

    Damaging kinds deal ``max(1, floor(max_hp * damage_per_stack * stacks))``
    each; HP never goes below 0.  Expired effects are removed from
    *effects* in place.  The caller applies ``new_hp`` to the holder.

    Parameters
    ----------
    effects:
        The holder's effect list; mutated in place.
    max_hp, current_hp:
        The holder's HP before the tick.
    registry:
        Supplies each kind's config.

    Returns
    -------
    TickOutcome
        New HP, total damage, per-effect results and expired kinds.  An
        empty list returns ``new_hp == current_hp`` and no results.
    """
    outcome = TickOutcome(new_hp=current_hp)
    hp = current_hp

    for effect in effects:
        cfg = registry.get_effect_config(effect.kind)
        damage = 0
        if cfg.damage_per_stack > 0:
            damage = max(1, int(max_hp * cfg.damage_per_stack * effect.stacks))
            hp = max(0, hp - damage)
            outcome.total_damage += damage

        effect.duration -= 1
        expired = effect.duration <= 0
        if expired:
            outcome.expired_kinds.append(effect.kind)

        if damage > 0:
            message = (
                f"{cfg.icon} {effect.kind.value} deals {damage} damage "
                f"({effect.stacks} {_plural(effect.stacks)})"
            )
            if expired:
                message += " - expired"
        elif expired:
            message = f"{cfg.icon} {effect.kind.value} expired"
        else:
            message = f"{cfg.icon} {effect.kind.value} active ({effect.duration} turns left)"

        outcome.results.append(
            StatusEffectTickResult(
                kind=effect.kind, damage=damage, message=message, expired=expired,
            )
        )

    effects[:] = [e for e in effects if e.duration > 0]
    outcome.new_hp = hp
    return outcome


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def serialize_effects(
    effects: Sequence[StatusEffect], registry: ContentRegistry,
) -> list[dict[str, Any]]:
    """Render effects for a client payload, joined with their UI metadata."""
    rendered: list[dict[str, Any]] = []
    for effect in effects:
        cfg = registry.get_effect_config(effect.kind)
        rendered.append({
            "type": effect.kind.value,
            "duration": effect.duration,
            "stacks": effect.stacks,
            "icon": cfg.icon,
            "color": cfg.color,
            "description": cfg.description,
            "prevents_action": cfg.prevents_action,
        })
    return rendered

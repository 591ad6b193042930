"""Combat modifiers derived from a combatant's active status effects.

Pure read-only queries: none of these functions mutate the effect list.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from dungeon_arena.ir.status_effects import EffectKind
from dungeon_arena.sim.core.entities import BLEED_HEALING_MODIFIER

if TYPE_CHECKING:
    from dungeon_arena.sim.core.entities import Combatant, StatusEffect

# Per-stack penalties and the floor every multiplier is clamped to.
WEAKNESS_PER_STACK = 0.10
SLOW_PER_STACK = 0.15
MODIFIER_FLOOR = 0.5


def _find(effects: Sequence[StatusEffect], kind: EffectKind) -> StatusEffect | None:
    for effect in effects:
        if effect.kind == kind:
            return effect
    return None


def is_stunned(effects: Sequence[StatusEffect]) -> bool:
    """Return ``True`` if a stun with turns remaining is present."""
    return any(e.kind == EffectKind.STUN and e.duration > 0 for e in effects)


def get_attack_modifier(effects: Sequence[StatusEffect]) -> float:
    """Return the attack multiplier: ``-10%`` per weakness stack, floored at 0.5."""
    weakness = _find(effects, EffectKind.WEAKNESS)
    if weakness is None:
        return 1.0
    return max(MODIFIER_FLOOR, 1 - weakness.stacks * WEAKNESS_PER_STACK)


def get_speed_modifier(effects: Sequence[StatusEffect]) -> float:
    """Return the speed multiplier: ``-15%`` per slow stack, floored at 0.5."""
    slow = _find(effects, EffectKind.SLOW)
    if slow is None:
        return 1.0
    return max(MODIFIER_FLOOR, 1 - slow.stacks * SLOW_PER_STACK)


def get_healing_modifier(effects: Sequence[StatusEffect]) -> float:
    """Return the healing multiplier: halved while bleeding."""
    if _find(effects, EffectKind.BLEED) is not None:
        return BLEED_HEALING_MODIFIER
    return 1.0


def is_defending(combatant: Combatant) -> bool:
    """Return ``True`` if *combatant* braced this turn.

    PvP sets the transient ``defended`` flag; live encounters grant a
    one-turn ``defend`` effect.  Either counts.
    """
    if combatant.defended:
        return True
    defend = _find(combatant.effects, EffectKind.DEFEND)
    return defend is not None and defend.duration > 0

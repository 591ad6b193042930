"""Core combat mechanics for the arena engine.

Re-exports the primary functions from each mechanics module for convenience.

Usage::

    from dungeon_arena.sim.mechanics import (
        try_apply_effect, roll_attack_effects, grant_effect,
        process_status_effects, serialize_effects,
        is_stunned, get_attack_modifier, get_speed_modifier,
        resolve_pvp_attack, resolve_encounter_attack, resolve_special_ability,
    )
"""

# -- modifiers ---------------------------------------------------------------
from .modifiers import (
    get_attack_modifier,
    get_healing_modifier,
    get_speed_modifier,
    is_defending,
    is_stunned,
)

# -- status effects ----------------------------------------------------------
from .status_effects import (
    EffectApplicationResult,
    StatusEffectTickResult,
    TickOutcome,
    clear_all_effects,
    get_effect,
    grant_effect,
    process_status_effects,
    remove_effect,
    roll_attack_effects,
    serialize_effects,
    try_apply_effect,
)

# -- damage ------------------------------------------------------------------
from .damage import (
    AttackOutcome,
    pvp_crit_chance,
    pvp_hit_chance,
    resolve_encounter_attack,
    resolve_pvp_attack,
    resolve_special_ability,
)

__all__ = [
    # modifiers
    "is_stunned",
    "is_defending",
    "get_attack_modifier",
    "get_speed_modifier",
    "get_healing_modifier",
    # status effects
    "EffectApplicationResult",
    "StatusEffectTickResult",
    "TickOutcome",
    "try_apply_effect",
    "roll_attack_effects",
    "grant_effect",
    "process_status_effects",
    "remove_effect",
    "clear_all_effects",
    "get_effect",
    "serialize_effects",
    # damage
    "AttackOutcome",
    "pvp_hit_chance",
    "pvp_crit_chance",
    "resolve_pvp_attack",
    "resolve_encounter_attack",
    "resolve_special_ability",
]

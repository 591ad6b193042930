"""Static definitions for the combat engine.

Status-effect configuration, enemy archetypes, and the action union are
plain Pydantic models that load cleanly from the JSON files in
``dungeon_arena/data/`` and are consumed by the simulation layer.
"""

from .actions import (
    ACTION_TYPES,
    Ability,
    Action,
    Attack,
    Defend,
    EnemyDecision,
    parse_action,
)
from .enemies import AIBehavior, AIBehaviorProfile, EnemyTemplate
from .status_effects import EffectAbility, EffectKind, StatusEffectConfig

__all__ = [
    # actions
    "ACTION_TYPES",
    "Ability",
    "Action",
    "Attack",
    "Defend",
    "EnemyDecision",
    "parse_action",
    # enemies
    "AIBehavior",
    "AIBehaviorProfile",
    "EnemyTemplate",
    # status effects
    "EffectAbility",
    "EffectKind",
    "StatusEffectConfig",
]

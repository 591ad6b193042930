from .entities import Combatant, CombatantStats, Enemy, PlayerCombatant, StatusEffect
from .rng import GameRNG

__all__ = [
    "Combatant",
    "CombatantStats",
    "Enemy",
    "GameRNG",
    "PlayerCombatant",
    "StatusEffect",
]

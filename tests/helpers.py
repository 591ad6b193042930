"""Shared builders and a scripted RNG double for combat tests."""

from __future__ import annotations

from typing import Any, Sequence

from dungeon_arena.sim.core.entities import (
    Combatant,
    CombatantStats,
    Enemy,
    PlayerCombatant,
    StatusEffect,
)


class SequenceRNG:
    """Replays a fixed script of draws in call order.

    ``random_float``, ``random_uniform`` and ``random_int`` each consume the
    next scripted value as-is.  ``fork`` returns the same object so that
    forked AI streams read from the one script.
    """

    def __init__(self, values: Sequence[float], seed: int = 0) -> None:
        self.values = list(values)
        self.seed = seed
        self.calls: list[str] = []

    def _next(self, label: str) -> Any:
        if not self.values:
            raise AssertionError(f"SequenceRNG exhausted on {label} (after {self.calls})")
        self.calls.append(label)
        return self.values.pop(0)

    def random_float(self) -> float:
        return self._next("float")

    def random_uniform(self, low: float, high: float) -> float:
        return self._next("uniform")

    def random_int(self, low: int, high: int) -> int:
        value = self._next("int")
        assert low <= value <= high
        return value

    def fork(self, *parts: object) -> SequenceRNG:
        return self

    @property
    def remaining(self) -> int:
        return len(self.values)


def make_stats(**kwargs: Any) -> CombatantStats:
    defaults = dict(max_hp=100, current_hp=100, attack=20, defense=10, speed=10, accuracy=80, evasion=10)
    defaults.update(kwargs)
    return CombatantStats(**defaults)


def make_combatant(id: str = "a1", name: str = "Alice", **stats: Any) -> Combatant:
    return Combatant(id=id, name=name, stats=make_stats(**stats))


def make_player(**kwargs: Any) -> PlayerCombatant:
    stats = kwargs.pop("stats", None) or make_stats(accuracy=90)
    defaults = dict(id="p1", name="Hero", stats=stats, agent_class="warrior")
    defaults.update(kwargs)
    return PlayerCombatant(**defaults)


def make_enemy(**kwargs: Any) -> Enemy:
    stats = kwargs.pop("stats", None) or make_stats(max_hp=30, current_hp=30, attack=8, defense=3, accuracy=85)
    defaults = dict(id="e1", name="Goblin", stats=stats, enemy_type="goblin")
    defaults.update(kwargs)
    return Enemy(**defaults)


def effect(kind: str, duration: int = 3, stacks: int = 1) -> StatusEffect:
    return StatusEffect(kind=kind, duration=duration, stacks=stacks)

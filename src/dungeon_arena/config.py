"""Engine settings.

Tunables that are not game content (content lives in ``data/*.json`` and is
served by :class:`~dungeon_arena.sim.content.registry.ContentRegistry`).
Values can be overridden from the environment with ``DUNGEON_ARENA_*``
variables, e.g. ``DUNGEON_ARENA_FLEE_CHANCE=0.4``.
"""

from __future__ import annotations

import os
from typing import Mapping

from pydantic import BaseModel, Field

ENV_PREFIX = "DUNGEON_ARENA_"


class EngineSettings(BaseModel):
    """Runtime configuration shared by the battle and encounter services."""

    model_config = {"frozen": True}

    session_idle_timeout_s: float = Field(default=900.0, gt=0)
    """Seconds a session may sit untouched before ``sweep_idle`` drops it."""

    flee_chance: float = Field(default=0.5, ge=0, le=1)
    """Probability that the player escapes an encounter."""

    player_crit_chance: float = Field(default=0.15, ge=0, le=1)
    """Flat crit chance for player attacks in live encounters."""

    enemy_crit_chance: float = Field(default=0.12, ge=0, le=1)
    """Flat crit chance for enemy attacks in live encounters."""

    default_player_class: str = "warrior"
    """Effect-ability table used when a player's class is unknown."""

    default_enemy_type: str = "goblin"
    """AI profile used when an enemy type is unknown."""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineSettings:
        """Build settings from ``DUNGEON_ARENA_*`` variables.

        Unset variables keep their defaults; malformed values raise
        ``pydantic.ValidationError``.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, str] = {}
        for name in cls.model_fields:
            raw = env.get(ENV_PREFIX + name.upper())
            if raw is not None:
                overrides[name] = raw
        return cls.model_validate(overrides)

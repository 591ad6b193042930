"""Content registry -- loads and serves status-effect configs, enemy
archetypes, and player-class effect tables for the combat engine.

Default content is loaded from the JSON files shipped in
``dungeon_arena/data/``.  Every entry is validated through the Pydantic
models in :mod:`dungeon_arena.ir` on load, so a malformed table fails at
start-up rather than mid-battle.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from dungeon_arena.errors import UnknownEffectError
from dungeon_arena.ir.enemies import AIBehaviorProfile, EnemyTemplate
from dungeon_arena.ir.status_effects import (
    EffectAbility,
    EffectKind,
    StatusEffectConfig,
)

logger = logging.getLogger(__name__)

# Default paths relative to the installed package.
_DATA_DIR = Path(__file__).resolve().parents[2] / "data"  # sim/content -> dungeon_arena
_DEFAULT_STATUS_EFFECTS_PATH = _DATA_DIR / "status_effects.json"
_DEFAULT_ENEMIES_PATH = _DATA_DIR / "enemies.json"
_DEFAULT_PLAYER_CLASSES_PATH = _DATA_DIR / "player_classes.json"

DEFAULT_ENEMY_TYPE = "goblin"
DEFAULT_PLAYER_CLASS = "warrior"


class ContentRegistry:
    """Loads and serves all static combat content.

    The registry is the single source of truth for effect rules during
    resolution.  It is an owned object: services create one and pass it to
    the engine functions explicitly.

    Usage::

        registry = ContentRegistry()
        registry.load_default_status_effects()
        registry.load_default_enemies()
        registry.load_default_player_classes()

        cfg = registry.get_effect_config(EffectKind.BLEED)
        profile = registry.get_ai_profile("boss_lich")
    """

    def __init__(
        self,
        default_enemy_type: str = DEFAULT_ENEMY_TYPE,
        default_player_class: str = DEFAULT_PLAYER_CLASS,
    ) -> None:
        self.status_effects: dict[EffectKind, StatusEffectConfig] = {}
        self.enemies: dict[str, EnemyTemplate] = {}
        self.player_classes: dict[str, list[EffectAbility]] = {}
        self.default_enemy_type = default_enemy_type
        self.default_player_class = default_player_class

    @classmethod
    def load_defaults(cls, **kwargs: Any) -> ContentRegistry:
        """Return a registry with every bundled content table loaded."""
        registry = cls(**kwargs)
        registry.load_default_status_effects()
        registry.load_default_enemies()
        registry.load_default_player_classes()
        return registry

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_default_status_effects(self, path: str | Path | None = None) -> None:
        """Load the status-effect table from a JSON file.

        Parameters
        ----------
        path:
            Path to the JSON file.  Defaults to
            ``data/status_effects.json`` inside the package.
        """
        if path is None:
            path = _DEFAULT_STATUS_EFFECTS_PATH
        path = Path(path)

        with open(path, encoding="utf-8") as f:
            raw_configs: list[dict[str, Any]] = json.load(f)

        for raw in raw_configs:
            cfg = StatusEffectConfig.model_validate(raw)
            self.status_effects[cfg.kind] = cfg

    def load_default_enemies(self, path: str | Path | None = None) -> None:
        """Load enemy archetypes from a JSON file.

        Parameters
        ----------
        path:
            Path to the JSON file.  Defaults to ``data/enemies.json``
            inside the package.
        """
        if path is None:
            path = _DEFAULT_ENEMIES_PATH
        path = Path(path)

        with open(path, encoding="utf-8") as f:
            raw_enemies: list[dict[str, Any]] = json.load(f)

        for raw in raw_enemies:
            template = EnemyTemplate.model_validate(raw)
            self.enemies[template.type] = template

    def load_default_player_classes(self, path: str | Path | None = None) -> None:
        """Load per-class on-hit effect tables from a JSON file.

        Parameters
        ----------
        path:
            Path to the JSON file.  Defaults to
            ``data/player_classes.json`` inside the package.
        """
        if path is None:
            path = _DEFAULT_PLAYER_CLASSES_PATH
        path = Path(path)

        with open(path, encoding="utf-8") as f:
            raw_classes: dict[str, list[dict[str, Any]]] = json.load(f)

        for class_name, abilities in raw_classes.items():
            self.player_classes[class_name] = [
                EffectAbility.model_validate(a) for a in abilities
            ]

    def set_fallbacks(self, enemy_type: str, player_class: str) -> None:
        """Choose the entries served for unknown enemy types and classes.

        Raises
        ------
        ValueError
            If either entry is not loaded.
        """
        player_class = player_class.lower().strip()
        if enemy_type not in self.enemies:
            raise ValueError(f"Fallback enemy type {enemy_type!r} is not loaded")
        if player_class not in self.player_classes:
            raise ValueError(f"Fallback player class {player_class!r} is not loaded")
        self.default_enemy_type = enemy_type
        self.default_player_class = player_class

    # ------------------------------------------------------------------
    # Status effect queries
    # ------------------------------------------------------------------

    def get_effect_config(self, kind: EffectKind | str) -> StatusEffectConfig:
        """Return the :class:`StatusEffectConfig` for *kind*.

        Raises
        ------
        UnknownEffectError
            If *kind* is not a known effect or has no loaded entry.
        """
        try:
            kind = EffectKind(kind)
        except ValueError:
            raise UnknownEffectError(f"Unknown status effect: {kind!r}") from None
        cfg = self.status_effects.get(kind)
        if cfg is None:
            raise UnknownEffectError(f"No config loaded for status effect: {kind.value!r}")
        return cfg

    # ------------------------------------------------------------------
    # Enemy queries
    # ------------------------------------------------------------------

    def get_enemy_template(self, enemy_type: str) -> EnemyTemplate | None:
        """Return the :class:`EnemyTemplate` for *enemy_type*, or ``None``."""
        return self.enemies.get(enemy_type)

    def get_ai_profile(self, enemy_type: str) -> AIBehaviorProfile:
        """Return the AI profile for *enemy_type*.

        Unknown types fall back to the default enemy type's profile (the
        goblin, unless configured otherwise) and log a warning.
        """
        template = self.enemies.get(enemy_type)
        if template is None:
            logger.warning(
                "Unknown enemy type %r, using %r AI profile",
                enemy_type, self.default_enemy_type,
            )
            template = self.enemies[self.default_enemy_type]
        return template.ai

    def get_enemy_abilities(self, enemy_type: str) -> list[EffectAbility]:
        """Return the on-hit effect table for *enemy_type* (empty if unknown)."""
        template = self.enemies.get(enemy_type)
        if template is None:
            return []
        return template.effect_abilities

    def list_enemy_types(self) -> list[str]:
        """Return a list of all registered enemy types."""
        return list(self.enemies.keys())

    # ------------------------------------------------------------------
    # Player class queries
    # ------------------------------------------------------------------

    def get_player_abilities(self, agent_class: str | None) -> list[EffectAbility]:
        """Return the on-hit effect table for a player class.

        Class names are case-insensitive.  Unknown classes fall back to the
        default class (warrior) with a logged warning.
        """
        key = (agent_class or "").lower().strip()
        abilities = self.player_classes.get(key)
        if abilities is None:
            logger.warning(
                "Unknown player class %r, using %r effect table",
                agent_class, self.default_player_class,
            )
            abilities = self.player_classes.get(self.default_player_class, [])
        return abilities

    # ------------------------------------------------------------------
    # Representation
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"ContentRegistry(status_effects={len(self.status_effects)}, "
            f"enemies={len(self.enemies)}, "
            f"player_classes={len(self.player_classes)})"
        )

"""Interfaces for the collaborators the engine hands work off to.

The engine never rolls loot and never writes to a database.  When an
encounter is won it builds a :class:`LootRequest` and, if a
:class:`LootEngine` was injected, asks it for a :class:`LootResult`.
Finished battles and encounters are handed to an :class:`OutcomeStore` as
plain ``model_dump()`` dicts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field


class LootRequest(BaseModel):
    """What the loot roller needs to know about a won encounter."""

    depth: int
    difficulty: str
    """``easy``, ``normal``, ``hard`` or ``nightmare`` (from depth)."""

    magic_find: float = 0.0
    enemy_type: str
    """Type of the first enemy in the encounter's roster."""


class LootResult(BaseModel):
    """Rewards rolled by the loot engine.  Opaque to the combat engine."""

    gold: int = 0
    xp: int = 0
    items: list[dict[str, Any]] = Field(default_factory=list)
    materials: list[dict[str, Any]] = Field(default_factory=list)


class LootEngine(ABC):
    """Rolls rewards for a won encounter."""

    @abstractmethod
    def roll_loot(self, request: LootRequest) -> LootResult:
        """Return the rewards for *request*."""


class OutcomeStore(ABC):
    """Persists finished battles and encounters."""

    @abstractmethod
    def save_battle(self, battle: dict[str, Any]) -> None:
        """Persist a completed battle snapshot."""

    @abstractmethod
    def save_encounter(self, encounter: dict[str, Any]) -> None:
        """Persist a finished encounter snapshot."""

"""Domain exceptions for the combat engine.

Most errors also subclass the builtin the engine would otherwise raise
(``ValueError``, ``KeyError``, ``RuntimeError``) so callers that only know
about builtins keep working.
"""

from __future__ import annotations


class ArenaError(Exception):
    """Base exception for every engine-level error."""


class InvalidActionError(ArenaError, ValueError):
    """Raised when an action payload is not one of attack/defend/ability."""


class NotFoundError(ArenaError, KeyError):
    """Raised when a battle or session id is not registered."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message instead.
        return str(self.args[0]) if self.args else ""


class TargetNotFoundError(NotFoundError):
    """Raised when an attack names an enemy that is not in the encounter."""


class UnknownEffectError(ArenaError, ValueError):
    """Raised when a status-effect kind has no registry entry."""


class InvalidStatsError(ArenaError):
    """Raised when combatant stats violate their invariants.

    Not a ``ValueError``: it is raised from a pydantic validator and must
    reach the caller as-is rather than wrapped in ``ValidationError``.
    """


class BattleOverError(ArenaError):
    """Raised when a turn is submitted to a completed battle."""


class EncounterInactiveError(ArenaError):
    """Raised when an encounter action arrives outside an encounter."""


class EngineError(ArenaError, RuntimeError):
    """Raised when resolution fails mid-turn.

    The services restore the pre-turn snapshot before raising this, so the
    session is still consistent but should be re-validated by the caller.
    """

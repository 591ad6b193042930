"""Combat actions -- a closed tagged union of what a combatant can declare.

Transport payloads arrive as loose dicts (``{"type": "attack", "target_id":
...}``); :func:`parse_action` turns them into one of the three action
models or raises :class:`~dungeon_arena.errors.InvalidActionError`.
Resolution sites match on the concrete class and must handle all three.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from dungeon_arena.errors import InvalidActionError


class Attack(BaseModel):
    """Basic weapon attack against *target_id*.

    PvP battles ignore the target (there is only one opponent); live
    encounters require it.
    """

    type: Literal["attack"] = "attack"
    target_id: str | None = None


class Defend(BaseModel):
    """Brace for incoming attacks until the end of the turn."""

    type: Literal["defend"] = "defend"


class Ability(BaseModel):
    """Class special ability: trades HP for a heavy, unmissable hit."""

    type: Literal["ability"] = "ability"
    target_id: str | None = None


Action = Annotated[Union[Attack, Defend, Ability], Field(discriminator="type")]

_ACTION_ADAPTER: TypeAdapter[Attack | Defend | Ability] = TypeAdapter(Action)

ACTION_TYPES = frozenset({"attack", "defend", "ability"})


def parse_action(payload: Any) -> Attack | Defend | Ability:
    """Validate a raw action payload.

    Accepts an already-built action model, a mapping with a ``type`` key,
    or a bare action-type string.
    """
    if isinstance(payload, (Attack, Defend, Ability)):
        return payload
    if isinstance(payload, str):
        payload = {"type": payload}
    try:
        return _ACTION_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        kind = payload.get("type") if isinstance(payload, dict) else payload
        raise InvalidActionError(f"Invalid action: {kind!r}") from exc


class EnemyDecision(str, Enum):
    """What an enemy's AI chose to do this turn."""

    ATTACK = "attack"
    DEFEND = "defend"
    ABILITY = "ability"
    FLEE = "flee"

"""Tests for the action union and payload parsing."""

import pytest

from dungeon_arena.errors import InvalidActionError
from dungeon_arena.ir.actions import (
    ACTION_TYPES,
    Ability,
    Attack,
    Defend,
    EnemyDecision,
    parse_action,
)


# ---------------------------------------------------------------------------
# parse_action
# ---------------------------------------------------------------------------

class TestParseAction:
    def test_attack_dict_with_target(self):
        action = parse_action({"type": "attack", "target_id": "e1"})

        assert isinstance(action, Attack)
        assert action.target_id == "e1"

    def test_bare_string(self):
        assert isinstance(parse_action("defend"), Defend)

    def test_model_passes_through(self):
        ability = Ability(target_id="e2")

        assert parse_action(ability) is ability

    def test_target_optional(self):
        assert parse_action({"type": "ability"}).target_id is None

    @pytest.mark.parametrize("payload", ["heal", {"type": "flee"}, {}, 42, None])
    def test_invalid_payloads_rejected(self, payload):
        with pytest.raises(InvalidActionError, match="Invalid action"):
            parse_action(payload)

    def test_invalid_action_is_value_error(self):
        with pytest.raises(ValueError):
            parse_action("cast_fireball")


# ---------------------------------------------------------------------------
# Closed sets
# ---------------------------------------------------------------------------

class TestActionSets:
    def test_action_types(self):
        assert ACTION_TYPES == {"attack", "defend", "ability"}

    def test_enemy_decisions_include_flee(self):
        assert {d.value for d in EnemyDecision} == {"attack", "defend", "ability", "flee"}

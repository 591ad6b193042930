"""Tests for combatant models: stat invariants, damage and healing."""

import pytest
from pydantic import ValidationError

from dungeon_arena.errors import InvalidStatsError
from dungeon_arena.sim.core.entities import Combatant, CombatantStats, StatusEffect
from dungeon_arena.sim.mechanics.modifiers import get_healing_modifier
from tests.helpers import effect, make_combatant, make_player, make_stats


# ---------------------------------------------------------------------------
# CombatantStats invariants
# ---------------------------------------------------------------------------

class TestStatInvariants:
    def test_valid_stats(self):
        stats = make_stats(current_hp=0)

        assert stats.current_hp == 0

    def test_zero_max_hp_rejected(self):
        with pytest.raises(InvalidStatsError, match="max_hp"):
            CombatantStats(max_hp=0, current_hp=0, attack=1, defense=1)

    def test_current_above_max_rejected(self):
        with pytest.raises(InvalidStatsError, match="current_hp"):
            make_stats(max_hp=50, current_hp=51)

    def test_negative_current_rejected(self):
        with pytest.raises(InvalidStatsError):
            make_stats(current_hp=-1)

    @pytest.mark.parametrize("field", ["attack", "defense", "speed", "accuracy", "evasion"])
    def test_negative_stat_rejected(self, field):
        with pytest.raises(InvalidStatsError, match=field):
            make_stats(**{field: -1})

    def test_not_wrapped_in_validation_error(self):
        with pytest.raises(InvalidStatsError) as excinfo:
            make_stats(max_hp=-5, current_hp=0)

        assert not isinstance(excinfo.value, ValidationError)

    def test_nested_stats_checked(self):
        stats = {"max_hp": 10, "current_hp": 20, "attack": 1, "defense": 1}

        with pytest.raises(InvalidStatsError, match="current_hp"):
            Combatant(id="c1", name="Nested", stats=stats)

    def test_nested_stats_from_payload(self):
        payload = {
            "id": "c1", "name": "Nested",
            "stats": {"max_hp": 10, "current_hp": 10, "attack": -3, "defense": 1},
        }

        with pytest.raises(InvalidStatsError, match="attack"):
            Combatant.model_validate(payload)


# ---------------------------------------------------------------------------
# take_damage / heal
# ---------------------------------------------------------------------------

class TestTakeDamage:
    def test_reduces_hp(self):
        c = make_combatant()

        assert c.take_damage(30) == 30
        assert c.stats.current_hp == 70

    def test_clamped_at_zero(self):
        c = make_combatant(current_hp=10)

        assert c.take_damage(25) == 10
        assert c.stats.current_hp == 0
        assert c.is_dead

    def test_non_positive_amount_ignored(self):
        c = make_combatant()

        assert c.take_damage(0) == 0
        assert c.take_damage(-5) == 0
        assert c.stats.current_hp == 100

    def test_hp_fraction(self):
        assert make_combatant(current_hp=25).hp_fraction == 0.25


class TestHeal:
    def test_heal_capped_at_max(self):
        c = make_combatant(current_hp=90)

        assert c.heal(50) == 10
        assert c.stats.current_hp == 100

    def test_bleed_halves_healing(self):
        c = make_combatant(current_hp=50)
        c.effects.append(effect("bleed"))

        assert c.heal(20) == 10
        assert c.stats.current_hp == 60

    def test_other_effects_do_not_reduce_healing(self):
        c = make_combatant(current_hp=50)
        c.effects.append(effect("poison"))

        assert c.heal(20) == 20

    def test_healing_modifier_matches_effect_query(self):
        c = make_combatant()
        assert c.healing_modifier == get_healing_modifier(c.effects) == 1.0

        c.effects.append(effect("bleed"))
        assert c.healing_modifier == get_healing_modifier(c.effects) == 0.5


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class TestModels:
    def test_status_effect_defaults(self):
        e = StatusEffect(kind="stun", duration=1)

        assert e.stacks == 1
        assert e.source_id is None
        assert e.applied_on_turn == 0

    def test_player_defaults(self):
        player = make_player()

        assert player.agent_class == "warrior"
        assert player.level == 1
        assert player.defended is False

    def test_deep_copy_is_independent(self):
        c = make_combatant()
        copy = c.model_copy(deep=True)
        copy.take_damage(10)
        copy.effects.append(effect("burn"))

        assert c.stats.current_hp == 100
        assert c.effects == []

"""Tests for damage resolution -- PvP mode, live-encounter mode, special ability."""

import pytest

from dungeon_arena.ir.status_effects import EffectKind
from dungeon_arena.sim.core.rng import GameRNG
from dungeon_arena.sim.mechanics.damage import (
    pvp_crit_chance,
    pvp_hit_chance,
    resolve_encounter_attack,
    resolve_pvp_attack,
    resolve_special_ability,
)
from tests.helpers import SequenceRNG, effect, make_combatant


def _pair(**defender_stats):
    attacker = make_combatant("a1", "Alice")
    defender = make_combatant("a2", "Bob", **defender_stats)
    return attacker, defender


# ---------------------------------------------------------------------------
# PvP mode
# ---------------------------------------------------------------------------

class TestPvpChances:
    def test_hit_chance_clamped_high(self):
        attacker, defender = _pair()

        # 0.85 + 0.045 + 0.06 exceeds the 0.95 cap
        assert pvp_hit_chance(attacker, defender) == 0.95

    def test_defended_target_is_harder_to_hit(self):
        attacker, defender = _pair()
        defender.defended = True

        assert pvp_hit_chance(attacker, defender) == pytest.approx(0.805)

    def test_crit_chance_scales_with_accuracy(self):
        assert pvp_crit_chance(80) == pytest.approx(0.10)
        assert pvp_crit_chance(100) == pytest.approx(0.20)

    def test_crit_chance_bounds(self):
        assert pvp_crit_chance(30) == 0.0
        assert pvp_crit_chance(200) == 0.25


class TestPvpAttack:
    def test_basic_hit(self, registry):
        attacker, defender = _pair()
        outcome = resolve_pvp_attack(attacker, defender, rng=SequenceRNG([0.5, 0.5, 0]), registry=registry)

        # floor(20 * 1.1) - floor(10 * 0.9) = 13
        assert outcome.damage == 13
        assert not outcome.critical
        assert outcome.message == "Alice attacks Bob for 13 damage!"
        assert defender.stats.current_hp == 87

    def test_variance_added(self, registry):
        attacker, defender = _pair()
        outcome = resolve_pvp_attack(attacker, defender, rng=SequenceRNG([0.5, 0.5, -4]), registry=registry)

        assert outcome.damage == 9

    def test_miss_consumes_one_draw(self, registry):
        attacker, defender = _pair()
        rng = SequenceRNG([0.96, 0.0, 0.0])
        outcome = resolve_pvp_attack(attacker, defender, rng=rng, registry=registry)

        assert outcome.missed
        assert outcome.damage == 0
        assert outcome.message == "Alice's attack missed!"
        assert rng.remaining == 2
        assert defender.stats.current_hp == 100

    def test_critical_without_bleed(self, registry):
        attacker, defender = _pair()
        outcome = resolve_pvp_attack(attacker, defender, rng=SequenceRNG([0.5, 0.05, 0, 0.9]), registry=registry)

        assert outcome.critical
        assert outcome.damage == 19
        assert outcome.message == "⚡ Alice CRITICAL HIT Bob! 19 damage!"
        assert outcome.effects == []

    def test_critical_can_inflict_bleed(self, registry):
        attacker, defender = _pair()
        outcome = resolve_pvp_attack(
            attacker, defender, rng=SequenceRNG([0.5, 0.05, 0, 0.1]), registry=registry, turn=4,
        )

        assert [r.kind for r in outcome.effects] == [EffectKind.BLEED]
        bleed = defender.effects[0]
        assert (bleed.kind, bleed.source_id, bleed.applied_on_turn) == (EffectKind.BLEED, "a1", 4)

    def test_crit_bleed_never_stacks(self, registry):
        attacker, defender = _pair()
        defender.effects.append(effect("bleed", duration=2))
        outcome = resolve_pvp_attack(attacker, defender, rng=SequenceRNG([0.5, 0.05, 0, 0.1]), registry=registry)

        assert outcome.effects == []
        assert defender.effects[0].stacks == 1

    def test_defended_mitigation(self, registry):
        attacker, defender = _pair()
        defender.defended = True
        outcome = resolve_pvp_attack(attacker, defender, rng=SequenceRNG([0.5, 0.5, 0]), registry=registry)

        assert outcome.damage == 7

    def test_bleeding_defender_mitigation(self, registry):
        attacker, defender = _pair()
        defender.effects.append(effect("bleed"))
        outcome = resolve_pvp_attack(attacker, defender, rng=SequenceRNG([0.5, 0.5, 0]), registry=registry)

        assert outcome.damage == 11

    def test_weakness_lowers_damage(self, registry):
        attacker, defender = _pair()
        attacker.effects.append(effect("weakness", stacks=2))
        outcome = resolve_pvp_attack(attacker, defender, rng=SequenceRNG([0.5, 0.5, 0]), registry=registry)

        assert outcome.damage == 8

    def test_damage_floor(self, registry):
        attacker, defender = _pair(defense=100)
        attacker.stats.attack = 1
        outcome = resolve_pvp_attack(attacker, defender, rng=SequenceRNG([0.5, 0.5, -15]), registry=registry)

        assert outcome.damage == 1

    def test_hits_always_deal_damage(self, registry):
        rng = GameRNG(77)
        for _ in range(300):
            attacker, defender = _pair(defense=60)
            attacker.stats.attack = 3
            outcome = resolve_pvp_attack(attacker, defender, rng=rng, registry=registry)
            assert outcome.missed or outcome.damage >= 1


# ---------------------------------------------------------------------------
# Live-encounter mode
# ---------------------------------------------------------------------------

class TestEncounterAttack:
    def test_basic_hit(self):
        attacker, defender = _pair()
        outcome = resolve_encounter_attack(attacker, defender, 0.15, rng=SequenceRNG([0.5, 0.5, 1.0]))

        # floor(20 - 10 / 2)
        assert outcome.damage == 15
        assert outcome.message == "Alice attacks Bob for 15 damage!"
        assert defender.stats.current_hp == 85

    def test_miss_when_roll_exceeds_accuracy(self):
        attacker, defender = _pair()
        rng = SequenceRNG([0.85, 0.0, 1.0])
        outcome = resolve_encounter_attack(attacker, defender, 0.15, rng=rng)

        assert outcome.missed
        assert rng.remaining == 2

    def test_critical(self):
        attacker, defender = _pair()
        outcome = resolve_encounter_attack(attacker, defender, 0.15, rng=SequenceRNG([0.5, 0.1, 1.0]))

        assert outcome.critical
        assert outcome.damage == 25
        assert outcome.message == "\U0001f4a5 Alice lands a critical hit for 25 damage!"

    def test_defend_effect_mitigates(self):
        attacker, defender = _pair()
        defender.effects.append(effect("defend", duration=1))
        outcome = resolve_encounter_attack(attacker, defender, 0.15, rng=SequenceRNG([0.5, 0.5, 1.0]))

        assert outcome.damage == 9

    def test_weakness(self):
        attacker, defender = _pair()
        attacker.effects.append(effect("weakness", stacks=2))
        outcome = resolve_encounter_attack(attacker, defender, 0.15, rng=SequenceRNG([0.5, 0.5, 1.0]))

        assert outcome.damage == 11

    def test_damage_floor(self):
        attacker, defender = _pair(defense=100)
        attacker.stats.attack = 1
        outcome = resolve_encounter_attack(attacker, defender, 0.15, rng=SequenceRNG([0.5, 0.5, 0.8]))

        assert outcome.damage == 1


# ---------------------------------------------------------------------------
# Special ability
# ---------------------------------------------------------------------------

class TestSpecialAbility:
    def test_costs_hp_and_hits_hard(self):
        actor, target = _pair()
        outcome = resolve_special_ability(actor, target)

        # floor(20 * 1.8 - 10 / 4)
        assert outcome.damage == 33
        assert outcome.hp_cost == 10
        assert actor.stats.current_hp == 90
        assert target.stats.current_hp == 67
        assert outcome.message == "✨ Alice uses Special Ability! 33 damage!"

    def test_cost_never_kills(self):
        actor, target = _pair()
        actor.stats.current_hp = 5
        outcome = resolve_special_ability(actor, target)

        assert actor.stats.current_hp == 1
        assert outcome.hp_cost == 4

    def test_minimum_damage(self):
        actor, target = _pair()
        actor.stats.attack = 1

        assert resolve_special_ability(actor, target).damage == 5

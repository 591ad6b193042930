"""Tests for PvP battle orchestration."""

import pytest

from dungeon_arena.errors import BattleOverError, InvalidActionError, NotFoundError
from dungeon_arena.ir.actions import Attack, Defend
from dungeon_arena.sim.battle import (
    apply_legacy_dot,
    calculate_rewards,
    check_win_condition,
    create_battle,
    get_action_order,
    process_turn,
    surrender,
)
from dungeon_arena.sim.core.rng import GameRNG
from dungeon_arena.sim.telemetry import BattleTelemetry
from tests.helpers import SequenceRNG, effect, make_combatant

# Order draws (agent1 first) followed by two plain 13-damage hits.
BOTH_HIT = [1, 0, 0.5, 0.5, 0, 0.5, 0.5, 0]


class _Clock:
    def __init__(self, now: float = 10.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _make_battle(clock=None, **kwargs):
    alice = make_combatant("a1", "Alice", **kwargs.pop("alice", {}))
    bob = make_combatant("a2", "Bob", **kwargs.pop("bob", {}))
    return create_battle(alice, bob, clock=clock or _Clock())


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

class TestCreateBattle:
    def test_combatants_are_copied(self):
        alice = make_combatant("a1", "Alice")
        bob = make_combatant("a2", "Bob")
        battle = create_battle(alice, bob, clock=_Clock())
        alice.take_damage(50)

        assert battle.agent1.stats.current_hp == 100
        assert battle.agent1 is not alice

    def test_initial_state(self):
        battle = _make_battle()

        assert battle.status == "in_progress"
        assert battle.turns == []
        assert battle.winner_id is None
        assert battle.started_at == 10.0

    def test_same_id_rejected(self):
        alice = make_combatant("a1", "Alice")
        with pytest.raises(ValueError):
            create_battle(alice, alice.model_copy(), clock=_Clock())

    def test_rng_not_serialized(self):
        battle = _make_battle()
        battle.rng = GameRNG(1)

        assert "rng" not in battle.model_dump()


# ---------------------------------------------------------------------------
# Action order
# ---------------------------------------------------------------------------

class TestActionOrder:
    def test_faster_roll_goes_first(self):
        battle = _make_battle()
        first, second = get_action_order(battle, SequenceRNG([0, 1]))

        assert (first.id, second.id) == ("a2", "a1")

    def test_ties_go_to_agent1(self):
        battle = _make_battle()
        first, _ = get_action_order(battle, SequenceRNG([0, 0]))

        assert first.id == "a1"

    def test_slow_affects_order(self):
        battle = _make_battle()
        battle.agent1.effects.append(effect("slow", stacks=2))
        first, _ = get_action_order(battle, SequenceRNG([2, 0]))

        # 10 * 0.7 + 2 = 9 < 10
        assert first.id == "a2"


# ---------------------------------------------------------------------------
# process_turn
# ---------------------------------------------------------------------------

class TestProcessTurn:
    def test_both_attack(self, registry):
        battle = _make_battle()
        turn = process_turn(battle, "attack", {"type": "attack"}, rng=SequenceRNG(BOTH_HIT), registry=registry)

        assert turn.turn_number == 1
        assert [a.agent_id for a in turn.actions] == ["a1", "a2"]
        assert [a.damage for a in turn.actions] == [13, 13]
        assert battle.agent1.stats.current_hp == 87
        assert battle.agent2.stats.current_hp == 87
        assert turn.end_of_turn_damage == {"a1": 0, "a2": 0}
        assert battle.turns == [turn]

    def test_defend_then_attack(self, registry):
        battle = _make_battle()
        turn = process_turn(battle, Defend(), Attack(), rng=SequenceRNG([1, 0, 0.5, 0.5, 0]), registry=registry)

        assert turn.actions[0].message == "Alice takes a defensive stance!"
        assert turn.actions[1].damage == 7
        assert battle.agent1.defended is False

    def test_ability(self, registry):
        battle = _make_battle()
        turn = process_turn(battle, "ability", "defend", rng=SequenceRNG([1, 0]), registry=registry)

        assert turn.actions[0].type == "ability"
        assert battle.agent1.stats.current_hp == 90
        assert battle.agent2.stats.current_hp == 100 - 33

    def test_kill_stops_the_turn(self, registry):
        clock = _Clock(10.0)
        battle = _make_battle(clock=clock, bob={"current_hp": 10})
        clock.now = 12.5
        turn = process_turn(battle, "attack", "attack", rng=SequenceRNG([1, 0, 0.5, 0.5, 0]), registry=registry, clock=clock)

        assert len(turn.actions) == 1
        assert turn.end_of_turn_damage == {}
        assert battle.status == "completed"
        assert battle.winner_id == "a1"
        assert battle.ended_at == 12.5
        assert battle.duration_ms == 2500

    def test_completed_battle_rejects_turns(self, registry):
        battle = _make_battle(bob={"current_hp": 10})
        process_turn(battle, "attack", "attack", rng=SequenceRNG([1, 0, 0.5, 0.5, 0]), registry=registry)
        snapshot = battle.model_dump()

        with pytest.raises(BattleOverError):
            process_turn(battle, "attack", "attack", rng=SequenceRNG(BOTH_HIT), registry=registry)
        assert battle.model_dump() == snapshot

    def test_invalid_action_mutates_nothing(self, registry):
        battle = _make_battle()
        rng = SequenceRNG(BOTH_HIT)

        with pytest.raises(InvalidActionError):
            process_turn(battle, "attack", "heal", rng=rng, registry=registry)
        assert battle.turns == []
        assert rng.remaining == len(BOTH_HIT)

    def test_crit_records_bleed(self, registry):
        battle = _make_battle()
        turn = process_turn(battle, "attack", "defend", rng=SequenceRNG([1, 0, 0.5, 0.05, 0, 0.1]), registry=registry)

        assert turn.actions[0].critical
        assert turn.actions[0].effect == "bleed"
        # bleed is present at end of turn: flat 5% of max HP
        assert turn.end_of_turn_damage["a2"] == 5


# ---------------------------------------------------------------------------
# Legacy damage over time
# ---------------------------------------------------------------------------

class TestLegacyDot:
    def test_flat_rates_ignore_stacks(self):
        agent = make_combatant()
        agent.effects.extend([effect("bleed", stacks=3), effect("burn"), effect("poison", stacks=5)])

        # 5 + 8 + 3
        assert apply_legacy_dot(agent) == 16
        assert agent.stats.current_hp == 84

    def test_never_decays(self):
        agent = make_combatant()
        agent.effects.append(effect("burn", duration=2))
        for _ in range(5):
            apply_legacy_dot(agent)

        assert agent.effects[0].duration == 2
        assert agent.stats.current_hp == 60

    def test_clears_defended(self):
        agent = make_combatant()
        agent.defended = True
        apply_legacy_dot(agent)

        assert agent.defended is False

    def test_dot_can_end_the_battle(self, registry):
        battle = _make_battle(alice={"current_hp": 5})
        battle.agent1.effects.append(effect("burn"))
        process_turn(battle, "defend", "defend", rng=SequenceRNG([1, 0]), registry=registry)

        assert battle.winner_id == "a2"
        assert battle.turns[0].end_of_turn_damage["a1"] == 5


# ---------------------------------------------------------------------------
# Win condition and surrender
# ---------------------------------------------------------------------------

class TestEndings:
    def test_no_winner_while_both_stand(self):
        assert check_win_condition(_make_battle()) is None

    def test_both_down_reports_agent2(self):
        battle = _make_battle()
        battle.agent1.stats.current_hp = 0
        battle.agent2.stats.current_hp = 0

        assert check_win_condition(battle) == "a2"

    def test_surrender(self):
        battle = _make_battle()

        assert surrender(battle, "a1", clock=_Clock(11.0)) == "a2"
        assert battle.is_over
        with pytest.raises(BattleOverError):
            surrender(battle, "a2")

    def test_surrender_unknown_agent(self):
        with pytest.raises(NotFoundError):
            surrender(_make_battle(), "ghost")

    def test_finish_only_once(self):
        battle = _make_battle()
        battle.finish("a1", _Clock(11.0))
        battle.finish("a2", _Clock(20.0))

        assert battle.winner_id == "a1"
        assert battle.duration_ms == 1000


# ---------------------------------------------------------------------------
# Whole battles
# ---------------------------------------------------------------------------

def _fight(seed: int, registry) -> list[tuple]:
    battle = _make_battle()
    rng = GameRNG(seed)
    log = []
    while not battle.is_over:
        turn = process_turn(battle, "attack", "attack", rng=rng, registry=registry)
        log.extend((a.agent_id, a.damage, a.critical, a.missed) for a in turn.actions)
    return log


class TestWholeBattles:
    def test_same_seed_replays_identically(self, registry):
        assert _fight(31, registry) == _fight(31, registry)

    def test_hp_only_goes_down_and_battle_ends(self, registry):
        battle = _make_battle()
        rng = GameRNG(8)
        total = 200
        for _ in range(500):
            process_turn(battle, "attack", "defend", rng=rng, registry=registry)
            new_total = battle.agent1.stats.current_hp + battle.agent2.stats.current_hp
            assert new_total <= total
            total = new_total
            if battle.is_over:
                break

        assert battle.is_over
        assert len(battle.turns) == len({t.turn_number for t in battle.turns})

    def test_telemetry_summary(self, registry):
        battle = _make_battle()
        process_turn(battle, "attack", "attack", rng=SequenceRNG(BOTH_HIT), registry=registry)
        telemetry = BattleTelemetry.from_battle(battle)

        assert telemetry.turns == 1
        assert telemetry.damage_by_agent == {"a1": 13, "a2": 13}
        assert telemetry.misses == {"a1": 0, "a2": 0}


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------

class TestRewards:
    def test_equal_fighters(self):
        rewards = calculate_rewards(
            make_combatant("a1"), make_combatant("a2"), rng=SequenceRNG([0.5]),
        )

        assert rewards.experience == 100
        assert rewards.gold == 75
        assert rewards.rating_change == 16

    def test_beating_a_bigger_opponent(self):
        winner = make_combatant("a1")
        loser = make_combatant("a2", max_hp=150, current_hp=0)
        rewards = calculate_rewards(winner, loser, rng=SequenceRNG([0.0]))

        assert rewards.experience == 200
        assert rewards.gold == 50

    def test_favourite_gains_less(self):
        rewards = calculate_rewards(
            make_combatant("a1"), make_combatant("a2"), 1200, 1000, rng=SequenceRNG([0.99]),
        )

        assert rewards.rating_change == 8
        assert rewards.gold == 99

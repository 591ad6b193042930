"""Combat walkthrough: run seeded encounters and battles and check the results."""

import sys
sys.path.insert(0, "src")

import logging
from collections import Counter

from dungeon_arena.sim.battle import create_battle, process_turn
from dungeon_arena.sim.content.registry import ContentRegistry
from dungeon_arena.sim.core.entities import Combatant, CombatantStats, PlayerCombatant
from dungeon_arena.sim.core.rng import GameRNG
from dungeon_arena.sim.encounter import spawn_enemy
from dungeon_arena.sim.enemy_ai import AISnapshot, decide_enemy_action
from dungeon_arena.sim.events import TurnResult
from dungeon_arena.sim.service import EncounterService
from dungeon_arena.sim.telemetry import BattleTelemetry


def separator(title):
    print(f"\n{'='*60}")
    print(f"  {title}")
    print(f"{'='*60}")


def make_player(agent_class="warrior", level=3):
    stats = CombatantStats(max_hp=120, current_hp=120, attack=18, defense=8, speed=12, accuracy=90, evasion=10)
    return PlayerCombatant(id="hero", name="Hero", stats=stats, agent_class=agent_class, level=level)


logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
reg = ContentRegistry.load_defaults()


# ============================================================
# Trace A: a full live encounter
# ============================================================
separator("TRACE A: Hero vs two goblins and an orc (seed 42)")

service = EncounterService(reg)
session = service.open_session(make_player(), dungeon_id="demo", depth=2, seed=42)
roster = [spawn_enemy(reg, t, player_level=3) for t in ("goblin", "goblin", "orc")]
service.enter_encounter(session.session_id, roster)

event = None
while session.in_encounter:
    target = session.living_enemies[0]
    event = service.act(session.session_id, {"type": "attack", "target_id": target.id})
    print(f"-- turn {session.turn_count} --")
    for line in event.messages:
        print(f"  {line}")

print(f"\nResult: {event.event}, player HP {session.player.stats.current_hp}/{session.player.stats.max_hp}")
print(f"Telemetry: {session.telemetry}")
assert not isinstance(event, TurnResult)
print("PASS: encounter reached a terminal state!")


# ============================================================
# Trace B: replaying a seed gives the same fight
# ============================================================
separator("TRACE B: determinism across replays")

def replay(seed):
    svc = EncounterService(reg)
    s = svc.open_session(make_player("rogue"), seed=seed, session_id="replay")
    svc.enter_encounter("replay", [spawn_enemy(reg, "wraith", 3).model_copy(update={"id": "w1"})])
    payloads = []
    while s.in_encounter:
        payloads.append(svc.act("replay", {"type": "attack", "target_id": "w1"}).to_payload())
    return payloads

first, second = replay(7), replay(7)
print(f"Turns: {len(first)}")
assert first == second
print("PASS: identical seed, identical fight!")


# ============================================================
# Trace C: boss decision split at full HP
# ============================================================
separator("TRACE C: Lich King decisions at full HP (10,000 draws)")

profile = reg.get_ai_profile("boss_lich")
snapshot = AISnapshot(
    player_hp=120, player_max_hp=120, player_attack=18, player_defense=8,
    enemy_hp=150, enemy_max_hp=150, enemy_attack=22, enemy_defense=10,
)
root = GameRNG(2024)
counts = Counter(decide_enemy_action(profile, snapshot, root.fork("ai", i)).value for i in range(10_000))
for decision, n in counts.most_common():
    print(f"  {decision:8s} {n / 10_000:.1%}")
assert abs(counts["attack"] / 10_000 - 0.7) < 0.03
print("PASS: boss attacks ~70% of the time above 75% HP!")


# ============================================================
# Trace D: PvP battle
# ============================================================
separator("TRACE D: PvP duel (seed 5)")

alice = Combatant(id="alice", name="Alice", stats=CombatantStats(max_hp=100, current_hp=100, attack=22, defense=8, accuracy=85))
bob = Combatant(id="bob", name="Bob", stats=CombatantStats(max_hp=110, current_hp=110, attack=19, defense=10, accuracy=80))
battle = create_battle(alice, bob)
rng = GameRNG(5)
while not battle.is_over:
    turn = process_turn(battle, "attack", "ability" if len(battle.turns) % 3 == 2 else "attack", rng=rng, registry=reg)
    for action in turn.actions:
        print(f"  T{turn.turn_number}: {action.message}")

summary = BattleTelemetry.from_battle(battle)
print(f"\nWinner: {battle.winner_id} after {summary.turns} turns")
print(f"Damage: {summary.damage_by_agent}  Crits: {summary.crits}  Misses: {summary.misses}")
assert battle.winner_id in {"alice", "bob"}
print("PASS: duel finished with a winner!")

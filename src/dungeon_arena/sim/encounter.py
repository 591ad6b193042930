"""Live 1-vs-N dungeon encounters.

One call to :func:`process_action` is one full turn:

1. the player's declared action (skipped while stunned);
2. every living enemy, in roster order, acts on its AI decision (skipped
   while stunned);
3. end-of-turn effect ticks on the player and on each living enemy;
4. dead enemies are pruned and the terminal state is evaluated.

All randomness flows from the ``rng`` argument.  Each enemy's AI draws
from its own stream, forked from the session RNG with the session id,
enemy id, turn number and action ordinal.
"""

from __future__ import annotations

import logging
import math
import uuid
from typing import TYPE_CHECKING, Any, Sequence

from pydantic import BaseModel

from dungeon_arena.config import EngineSettings
from dungeon_arena.errors import EncounterInactiveError
from dungeon_arena.ir.actions import Ability, Attack, Defend, EnemyDecision, parse_action
from dungeon_arena.ir.status_effects import EffectKind
from dungeon_arena.sim.collaborators import LootRequest
from dungeon_arena.sim.core.entities import CombatantStats, Enemy
from dungeon_arena.sim.enemy_ai import AISnapshot, decide_enemy_action
from dungeon_arena.sim.events import (
    EffectEvent,
    EncounterFled,
    EncounterLost,
    EncounterStarted,
    EncounterWon,
    EnemyActionResult,
    EntityTick,
    TurnResult,
    combatant_view,
    enemy_view,
)
from dungeon_arena.sim.mechanics.damage import resolve_encounter_attack, resolve_special_ability
from dungeon_arena.sim.mechanics.modifiers import is_defending, is_stunned
from dungeon_arena.sim.mechanics.status_effects import (
    EffectApplicationResult,
    clear_all_effects,
    grant_effect,
    process_status_effects,
    roll_attack_effects,
)
from dungeon_arena.sim.telemetry import EncounterTelemetry

if TYPE_CHECKING:
    from dungeon_arena.ir.enemies import EnemyTemplate
    from dungeon_arena.sim.collaborators import LootEngine
    from dungeon_arena.sim.content.registry import ContentRegistry
    from dungeon_arena.sim.core.entities import Combatant
    from dungeon_arena.sim.core.game_state import EncounterSession
    from dungeon_arena.sim.core.rng import GameRNG

logger = logging.getLogger(__name__)

PLAYER_TARGET = "player"
LEVEL_SCALE_PER_LEVEL = 0.1


# ---------------------------------------------------------------------------
# Roster helpers
# ---------------------------------------------------------------------------

class EnemySpawn(BaseModel):
    """One roster entry handed over by the map generator."""

    enemy_type: str
    name: str
    stats: CombatantStats
    id: str | None = None
    """Fixed id for the spawned enemy; a random one is assigned if unset."""


def difficulty_for_depth(depth: int) -> str:
    """Map a dungeon depth to its difficulty tier."""
    if depth <= 3:
        return "easy"
    if depth <= 6:
        return "normal"
    if depth <= 9:
        return "hard"
    return "nightmare"


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def scale_enemy_stats(template: EnemyTemplate, player_level: int) -> CombatantStats:
    """Scale an archetype's stats to the player's level.

    Every level of difference from the archetype's base level moves HP,
    attack and defense by 10%.  Speed, accuracy and evasion do not scale.
    HP never drops below 1.
    """
    scale = 1 + (player_level - template.base_level) * LEVEL_SCALE_PER_LEVEL
    hp = max(1, _round_half_up(template.base_hp * scale))
    return CombatantStats(
        max_hp=hp,
        current_hp=hp,
        attack=max(0, _round_half_up(template.base_attack * scale)),
        defense=max(0, _round_half_up(template.base_defense * scale)),
        speed=template.base_speed,
        accuracy=template.accuracy,
        evasion=template.evasion,
    )


def spawn_enemy(
    registry: ContentRegistry, enemy_type: str, player_level: int = 1,
) -> EnemySpawn:
    """Build a roster entry for *enemy_type* scaled to *player_level*.

    Raises
    ------
    KeyError
        If *enemy_type* has no template.
    """
    template = registry.get_enemy_template(enemy_type)
    if template is None:
        raise KeyError(f"Unknown enemy type: {enemy_type!r}")
    return EnemySpawn(
        enemy_type=template.type,
        name=template.name,
        stats=scale_enemy_stats(template, player_level),
    )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def start_encounter(
    session: EncounterSession,
    roster: Sequence[EnemySpawn],
    *,
    registry: ContentRegistry,
) -> EncounterStarted:
    """Seed the session's enemies from *roster* and open the encounter.

    The turn counter is reset and the player's lingering effects are
    cleansed.

    Raises
    ------
    ValueError
        If *roster* is empty or an encounter is already running.
    """
    if not roster:
        raise ValueError("Cannot start an encounter with an empty roster")
    if session.in_encounter:
        raise ValueError(f"Session {session.session_id!r} is already in an encounter")

    session.enemies = [
        Enemy(
            id=spawn.id or uuid.uuid4().hex,
            name=spawn.name,
            stats=spawn.stats.model_copy(),
            enemy_type=spawn.enemy_type,
        )
        for spawn in roster
    ]
    session.roster_types = [spawn.enemy_type for spawn in roster]
    session.turn_count = 0
    session.in_encounter = True
    session.status = "active"
    clear_all_effects(session.player.effects)
    session.player.defended = False
    session.telemetry = EncounterTelemetry(
        enemy_types=list(session.roster_types),
        player_hp_start=session.player.stats.current_hp,
        player_hp_end=session.player.stats.current_hp,
    )

    logger.info(
        "Encounter started in session %s at depth %d: %s",
        session.session_id, session.depth, ", ".join(session.roster_types),
    )
    return EncounterStarted(
        session_id=session.session_id,
        player=combatant_view(session.player, registry),
        enemies=[enemy_view(e, registry) for e in session.enemies],
    )


def flee_encounter(
    session: EncounterSession,
    *,
    rng: GameRNG,
    settings: EngineSettings | None = None,
) -> EncounterFled:
    """Attempt to escape.  Succeeds with ``settings.flee_chance``.

    A failed attempt leaves the encounter running and costs no turn.

    Raises
    ------
    EncounterInactiveError
        If no encounter is running.
    """
    if not session.in_encounter:
        raise EncounterInactiveError("No active encounter")
    settings = settings or EngineSettings()

    escaped = rng.random_float() < settings.flee_chance
    if not escaped:
        return EncounterFled(
            session_id=session.session_id, escaped=False, message="Unable to escape!",
        )

    session.in_encounter = False
    session.status = "fled"
    if session.telemetry is not None:
        session.telemetry.result = "fled"
    logger.info("Player fled encounter in session %s", session.session_id)
    return EncounterFled(session_id=session.session_id, escaped=True, message="You escaped!")


# ---------------------------------------------------------------------------
# Turn processing
# ---------------------------------------------------------------------------

class _TurnLog:
    """Collects the messages and effect events of one turn."""

    def __init__(self) -> None:
        self.messages: list[str] = []
        self.effect_events: list[EffectEvent] = []

    def effects(
        self, results: list[EffectApplicationResult], target: str, prefix: str = "",
    ) -> list[str]:
        for r in results:
            self.messages.append(prefix + r.message)
            self.effect_events.append(
                EffectEvent(type=r.kind.value, target=target, message=r.message)
            )
        return [r.message for r in results]


def _snapshot(session: EncounterSession, enemy: Enemy) -> AISnapshot:
    player = session.player
    return AISnapshot(
        player_hp=player.stats.current_hp,
        player_max_hp=player.stats.max_hp,
        player_attack=player.stats.attack,
        player_defense=player.stats.defense,
        enemy_hp=enemy.stats.current_hp,
        enemy_max_hp=enemy.stats.max_hp,
        enemy_attack=enemy.stats.attack,
        enemy_defense=enemy.stats.defense,
        player_defended=is_defending(player),
        enemy_defended=is_defending(enemy),
        turns_elapsed=session.turn_count,
    )


def _tick(
    combatant: Combatant, label: str, log: _TurnLog, target: str, registry: ContentRegistry,
) -> EntityTick:
    outcome = process_status_effects(
        combatant.effects,
        combatant.stats.max_hp,
        combatant.stats.current_hp,
        registry=registry,
    )
    combatant.stats.current_hp = outcome.new_hp
    for r in outcome.results:
        log.messages.append(f"[{label}] {r.message}")
        if r.damage > 0:
            log.effect_events.append(
                EffectEvent(type=r.kind.value, target=target, message=r.message)
            )
    return EntityTick(
        damage=outcome.total_damage, messages=[r.message for r in outcome.results],
    )


def process_action(
    session: EncounterSession,
    action: Any,
    *,
    rng: GameRNG,
    registry: ContentRegistry,
    settings: EngineSettings | None = None,
    loot_engine: LootEngine | None = None,
) -> TurnResult | EncounterWon | EncounterLost:
    """Resolve one player action and the enemies' responses.

    Parameters
    ----------
    session:
        The live session; mutated in place.
    action:
        The player's declared action (model, dict or type string).  Attack
        and ability need a ``target_id`` naming an enemy in the encounter.
    rng:
        The session's combat stream.
    registry:
        Effect configs, AI profiles and effect-ability tables.
    settings:
        Crit chances and fallbacks; defaults to :class:`EngineSettings`.
    loot_engine:
        Asked for rewards when the encounter is won.

    Returns
    -------
    TurnResult | EncounterWon | EncounterLost
        The event to send to the client.

    Raises
    ------
    EncounterInactiveError
        If no encounter is running.
    InvalidActionError
        If the action is malformed.
    TargetNotFoundError
        If the attack/ability target is not in the encounter.

    No state is mutated when any of these is raised.
    """
    if not session.in_encounter:
        raise EncounterInactiveError("No active encounter")
    parsed = parse_action(action)
    target = None
    if isinstance(parsed, (Attack, Ability)):
        target = session.get_enemy(parsed.target_id)
    settings = settings or EngineSettings()

    session.turn_count += 1
    turn = session.turn_count
    player = session.player
    telemetry = session.telemetry
    log = _TurnLog()
    result = TurnResult(
        session_id=session.session_id,
        turn=turn,
        player_action=parsed.type,
        player=combatant_view(player, registry),
    )

    # -- player phase ---------------------------------------------------------

    if is_stunned(player.effects):
        result.player_action = "stunned"
        log.messages.append("\U0001f4ab You are stunned and cannot act!")
        log.effect_events.append(
            EffectEvent(type=EffectKind.STUN.value, target=PLAYER_TARGET, message="Stunned! Turn skipped.")
        )
    elif isinstance(parsed, Attack):
        outcome = resolve_encounter_attack(player, target, settings.player_crit_chance, rng=rng)
        result.player_damage = outcome.damage
        result.player_critical = outcome.critical
        result.player_missed = outcome.missed
        log.messages.append(outcome.message)
        if not outcome.missed:
            applied = roll_attack_effects(
                registry.get_player_abilities(player.agent_class),
                target.effects,
                player.id,
                turn,
                target.stats.defense,
                outcome.critical,
                rng=rng,
                registry=registry,
            )
            result.player_effects_applied = log.effects(applied, target.id)
            if telemetry is not None:
                for r in applied:
                    if r.applied:
                        telemetry.record_effect(r.kind.value)
    elif isinstance(parsed, Defend):
        grant_effect(player.effects, EffectKind.DEFEND, player.id, turn, registry)
        log.messages.append("\U0001f6e1️ You brace for incoming attacks! (40% damage reduction)")
    else:
        outcome = resolve_special_ability(player, target)
        result.player_damage = outcome.damage
        log.messages.append(outcome.message)

    if telemetry is not None:
        telemetry.damage_dealt += result.player_damage

    # -- enemy phase ----------------------------------------------------------

    hp_before_enemies = player.stats.current_hp
    decisions: list[str] = []
    for ordinal, enemy in enumerate(session.living_enemies):
        if is_stunned(enemy.effects):
            result.enemy_actions.append(EnemyActionResult(
                enemy_id=enemy.id, enemy_name=enemy.name, action="stunned", stunned=True,
            ))
            log.messages.append(f"\U0001f4ab {enemy.name} is stunned!")
            log.effect_events.append(
                EffectEvent(type=EffectKind.STUN.value, target=enemy.id, message=f"{enemy.name} stunned")
            )
            decisions.append("stunned")
            continue

        profile = registry.get_ai_profile(enemy.enemy_type)
        ai_rng = rng.fork("ai", session.session_id, enemy.id, turn, ordinal)
        decision = decide_enemy_action(profile, _snapshot(session, enemy), ai_rng)
        decisions.append(decision.value)
        logger.debug("Enemy %s (%s) decided %s", enemy.id, enemy.enemy_type, decision.value)

        if decision in (EnemyDecision.ATTACK, EnemyDecision.ABILITY):
            outcome = resolve_encounter_attack(enemy, player, settings.enemy_crit_chance, rng=rng)
            log.messages.append(outcome.message)
            entry = EnemyActionResult(
                enemy_id=enemy.id,
                enemy_name=enemy.name,
                action=decision.value,
                damage=outcome.damage,
                critical=outcome.critical,
                missed=outcome.missed,
            )
            if not outcome.missed:
                applied = roll_attack_effects(
                    registry.get_enemy_abilities(enemy.enemy_type),
                    player.effects,
                    enemy.id,
                    turn,
                    player.stats.defense,
                    outcome.critical,
                    rng=rng,
                    registry=registry,
                )
                entry.effects_applied = log.effects(applied, PLAYER_TARGET, prefix=f"{enemy.name}: ")
            result.enemy_actions.append(entry)
        elif decision == EnemyDecision.DEFEND:
            grant_effect(enemy.effects, EffectKind.DEFEND, enemy.id, turn, registry)
            log.messages.append(f"\U0001f6e1️ {enemy.name} takes a defensive stance!")
            result.enemy_actions.append(EnemyActionResult(
                enemy_id=enemy.id, enemy_name=enemy.name, action=decision.value,
            ))
        else:
            session.enemies.remove(enemy)
            log.messages.append(f"{enemy.name} flees from the fight!")
            result.enemy_actions.append(EnemyActionResult(
                enemy_id=enemy.id, enemy_name=enemy.name, action=decision.value,
            ))

    # -- end-of-turn ticks ----------------------------------------------------

    result.dot[PLAYER_TARGET] = _tick(player, "You", log, PLAYER_TARGET, registry)
    for enemy in session.living_enemies:
        result.dot[enemy.id] = _tick(enemy, enemy.name, log, enemy.id, registry)

    session.enemies = session.living_enemies

    if telemetry is not None:
        telemetry.turns = turn
        telemetry.damage_taken += hp_before_enemies - player.stats.current_hp
        telemetry.player_hp_end = player.stats.current_hp
        telemetry.enemy_decisions_per_turn.append(decisions)

    # -- terminal evaluation --------------------------------------------------

    if player.is_dead:
        session.in_encounter = False
        session.status = "lost"
        if telemetry is not None:
            telemetry.result = "lost"
        logger.info("Encounter lost in session %s on turn %d", session.session_id, turn)
        return EncounterLost(
            session_id=session.session_id,
            turn=turn,
            messages=log.messages,
            effect_events=log.effect_events,
            player=combatant_view(player, registry),
        )

    if not session.enemies:
        session.in_encounter = False
        session.status = "won"
        if telemetry is not None:
            telemetry.result = "won"
        request = LootRequest(
            depth=session.depth,
            difficulty=difficulty_for_depth(session.depth),
            magic_find=session.magic_find,
            enemy_type=session.roster_types[0] if session.roster_types else settings.default_enemy_type,
        )
        loot = loot_engine.roll_loot(request) if loot_engine is not None else None
        logger.info("Encounter won in session %s on turn %d", session.session_id, turn)
        return EncounterWon(
            session_id=session.session_id,
            turn=turn,
            loot_request=request,
            loot=loot,
            messages=log.messages,
            effect_events=log.effect_events,
            player=combatant_view(player, registry),
        )

    result.messages = log.messages
    result.effect_events = log.effect_events
    result.player = combatant_view(player, registry)
    result.enemies = [enemy_view(e, registry) for e in session.enemies]
    return result

"""Service layer -- wires the content registry, session registries, RNGs
and external collaborators around the pure engine functions.

A transport adapter (socket handler, HTTP route, test) talks only to
:class:`BattleService` and :class:`EncounterService`.  Both:

* keep their live state in an owned :class:`SessionRegistry` and process
  each session under its lock;
* snapshot the session before a turn and restore it if the engine fails
  mid-turn, raising :class:`~dungeon_arena.errors.EngineError`;
* hand finished battles/encounters to an optional :class:`OutcomeStore`.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING, Any, Callable, Sequence

from dungeon_arena.config import EngineSettings
from dungeon_arena.errors import ArenaError, EngineError
from dungeon_arena.sim.battle import calculate_rewards, create_battle, process_turn, surrender
from dungeon_arena.sim.core.game_state import Battle, EncounterSession
from dungeon_arena.sim.core.rng import GameRNG
from dungeon_arena.sim.encounter import flee_encounter, process_action, start_encounter
from dungeon_arena.sim.events import (
    ActionResult,
    BattleEnd,
    BattleStart,
    EncounterFled,
    EncounterLost,
    EncounterStarted,
    EncounterWon,
    TurnResult,
    combatant_view,
)
from dungeon_arena.sim.sessions import SessionRegistry

if TYPE_CHECKING:
    from dungeon_arena.sim.battle import BattleRewards
    from dungeon_arena.sim.collaborators import LootEngine, OutcomeStore
    from dungeon_arena.sim.content.registry import ContentRegistry
    from dungeon_arena.sim.core.entities import Combatant, PlayerCombatant
    from dungeon_arena.sim.encounter import EnemySpawn

logger = logging.getLogger(__name__)


def _new_seed() -> int:
    return uuid.uuid4().int & 0xFFFFFFFF


# ---------------------------------------------------------------------------
# PvP
# ---------------------------------------------------------------------------

class BattleService:
    """Runs PvP battles held in a :class:`SessionRegistry`.

    Parameters
    ----------
    registry:
        Loaded content.
    settings:
        Engine settings; defaults to :class:`EngineSettings`.  Its
        fallback enemy type and player class are applied to *registry*.
    store:
        Receives every completed battle.
    sessions:
        Battle registry; a fresh one is created if omitted.  An injected
        registry is used as-is, even when empty.
    clock:
        Wall-clock time source in seconds.
    """

    def __init__(
        self,
        registry: ContentRegistry,
        settings: EngineSettings | None = None,
        *,
        store: OutcomeStore | None = None,
        sessions: SessionRegistry[Battle] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.registry = registry
        self.settings = settings or EngineSettings()
        self.store = store
        registry.set_fallbacks(self.settings.default_enemy_type, self.settings.default_player_class)
        if sessions is None:
            sessions = SessionRegistry(self.settings.session_idle_timeout_s, name="battles")
        self.sessions: SessionRegistry[Battle] = sessions
        self._clock = clock

    def start_battle(
        self,
        agent1: Combatant,
        agent2: Combatant,
        *,
        seed: int | None = None,
        ratings: tuple[int, int] = (1000, 1000),
    ) -> BattleStart:
        """Create and register a battle.  Returns the ``battle_start`` event."""
        battle = create_battle(agent1, agent2, clock=self._clock)
        battle.seed = _new_seed() if seed is None else seed
        battle.ratings = ratings
        battle.rng = GameRNG(battle.seed)
        self.sessions.create(battle.id, battle)
        return BattleStart(
            battle_id=battle.id,
            agent1=combatant_view(battle.agent1, self.registry),
            agent2=combatant_view(battle.agent2, self.registry),
        )

    def get_battle(self, battle_id: str) -> Battle:
        """Return a registered battle.  Raises ``NotFoundError`` if missing."""
        return self.sessions.get(battle_id)

    def submit_turn(
        self, battle_id: str, action1: Any, action2: Any,
    ) -> ActionResult | BattleEnd:
        """Resolve one turn of a registered battle.

        Raises
        ------
        NotFoundError
            If the battle is not registered.
        BattleOverError, InvalidActionError
            Raised by the engine before any mutation.
        EngineError
            If resolution failed mid-turn; the battle is rolled back.
        """
        with self.sessions.acquire(battle_id) as battle:
            snapshot = battle.model_copy(deep=True)
            try:
                turn = process_turn(
                    battle, action1, action2,
                    rng=battle.rng, registry=self.registry, clock=self._clock,
                )
            except ArenaError:
                raise
            except Exception as exc:
                self.sessions.replace(battle_id, snapshot)
                logger.exception("Turn failed for battle %s; state restored", battle_id)
                raise EngineError(f"Turn failed for battle {battle_id!r}") from exc

            if battle.is_over:
                return self._finish(battle)
            return ActionResult(
                battle_id=battle.id,
                turn_number=turn.turn_number,
                actions=turn.actions,
                end_of_turn_damage=turn.end_of_turn_damage,
                agent1=combatant_view(battle.agent1, self.registry),
                agent2=combatant_view(battle.agent2, self.registry),
            )

    def surrender(self, battle_id: str, agent_id: str) -> BattleEnd:
        """Concede *battle_id* on behalf of *agent_id*."""
        with self.sessions.acquire(battle_id) as battle:
            surrender(battle, agent_id, clock=self._clock)
            return self._finish(battle)

    def rewards_for(self, battle: Battle) -> BattleRewards:
        """Compute the winner's rewards for a completed battle."""
        if battle.winner_id is None:
            raise ValueError(f"Battle {battle.id!r} has no winner yet")
        winner = battle.get_agent(battle.winner_id)
        loser = battle.opponent_of(battle.winner_id)
        r1, r2 = battle.ratings
        winner_rating, loser_rating = (r1, r2) if winner is battle.agent1 else (r2, r1)
        return calculate_rewards(
            winner, loser, winner_rating, loser_rating, rng=battle.rng,
        )

    def _finish(self, battle: Battle) -> BattleEnd:
        winner = battle.get_agent(battle.winner_id)
        loser = battle.opponent_of(battle.winner_id)
        rewards = self.rewards_for(battle)
        if self.store is not None:
            self.store.save_battle(battle.model_dump(mode="json"))
        self.sessions.remove(battle.id)
        return BattleEnd(
            battle_id=battle.id,
            winner_id=winner.id,
            loser_id=loser.id,
            winner_name=winner.name,
            loser_name=loser.name,
            message=f"{winner.name} wins!",
            turns=len(battle.turns),
            duration_ms=battle.duration_ms,
            rewards=rewards,
        )

    def sweep_idle(self) -> list[str]:
        """Drop battles idle past ``session_idle_timeout_s``.  Returns their ids."""
        return self.sessions.sweep_idle()


# ---------------------------------------------------------------------------
# Live encounters
# ---------------------------------------------------------------------------

class EncounterService:
    """Runs live dungeon sessions held in a :class:`SessionRegistry`.

    Parameters
    ----------
    registry:
        Loaded content.
    settings:
        Engine settings; defaults to :class:`EngineSettings`.  Its
        fallback enemy type and player class are applied to *registry*.
    loot_engine:
        Asked for rewards when an encounter is won.
    store:
        Receives every finished encounter (won, lost or fled).
    sessions:
        Session registry; a fresh one is created if omitted.
    """

    def __init__(
        self,
        registry: ContentRegistry,
        settings: EngineSettings | None = None,
        *,
        loot_engine: LootEngine | None = None,
        store: OutcomeStore | None = None,
        sessions: SessionRegistry[EncounterSession] | None = None,
    ) -> None:
        self.registry = registry
        self.settings = settings or EngineSettings()
        self.loot_engine = loot_engine
        self.store = store
        registry.set_fallbacks(self.settings.default_enemy_type, self.settings.default_player_class)
        if sessions is None:
            sessions = SessionRegistry(self.settings.session_idle_timeout_s, name="encounters")
        self.sessions: SessionRegistry[EncounterSession] = sessions

    def open_session(
        self,
        player: PlayerCombatant,
        *,
        dungeon_id: str = "",
        depth: int = 1,
        magic_find: float = 0.0,
        seed: int | None = None,
        session_id: str | None = None,
    ) -> EncounterSession:
        """Register a new dungeon session for a copy of *player*."""
        session = EncounterSession(
            session_id=session_id or uuid.uuid4().hex,
            dungeon_id=dungeon_id,
            depth=depth,
            magic_find=magic_find,
            player=player.model_copy(deep=True),
            seed=_new_seed() if seed is None else seed,
        )
        session.rng = GameRNG(session.seed)
        self.sessions.create(session.session_id, session)
        logger.info("Opened session %s (dungeon %s, depth %d)", session.session_id, dungeon_id, depth)
        return session

    def get_session(self, session_id: str) -> EncounterSession:
        """Return a registered session.  Raises ``NotFoundError`` if missing."""
        return self.sessions.get(session_id)

    def enter_encounter(
        self, session_id: str, roster: Sequence[EnemySpawn],
    ) -> EncounterStarted:
        """Start an encounter from the map generator's roster."""
        with self.sessions.acquire(session_id) as session:
            return start_encounter(session, roster, registry=self.registry)

    def act(
        self, session_id: str, action: Any,
    ) -> TurnResult | EncounterWon | EncounterLost:
        """Resolve one player action in the session's encounter.

        Raises
        ------
        NotFoundError
            If the session is not registered.
        EncounterInactiveError, InvalidActionError, TargetNotFoundError
            Raised by the engine before any mutation.
        EngineError
            If resolution failed mid-turn; the session is rolled back.
        """
        with self.sessions.acquire(session_id) as session:
            snapshot = session.model_copy(deep=True)
            try:
                event = process_action(
                    session, action,
                    rng=session.rng,
                    registry=self.registry,
                    settings=self.settings,
                    loot_engine=self.loot_engine,
                )
            except ArenaError:
                raise
            except Exception as exc:
                self.sessions.replace(session_id, snapshot)
                logger.exception("Turn failed for session %s; state restored", session_id)
                raise EngineError(f"Turn failed for session {session_id!r}") from exc

            if isinstance(event, (EncounterWon, EncounterLost)):
                self._save(session)
            return event

    def flee(self, session_id: str) -> EncounterFled:
        """Try to escape the session's current encounter."""
        with self.sessions.acquire(session_id) as session:
            event = flee_encounter(session, rng=session.rng, settings=self.settings)
            if event.escaped:
                self._save(session)
            return event

    def close_session(self, session_id: str) -> EncounterSession | None:
        """Drop a session on disconnect or abandon."""
        session = self.sessions.remove(session_id)
        if session is not None:
            logger.info("Closed session %s", session_id)
        return session

    def sweep_idle(self) -> list[str]:
        """Drop sessions idle past ``session_idle_timeout_s``."""
        return self.sessions.sweep_idle()

    def _save(self, session: EncounterSession) -> None:
        if self.store is not None:
            self.store.save_encounter(session.model_dump(mode="json"))

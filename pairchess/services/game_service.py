"""Orchestration of communication from the transport to the game sessions and the store (and the reverse direction)."""

import logging
import threading
import time
from typing import Callable, Iterable, Optional, Self, TypeVar

from pairchess.api.models import (
    CreateGameRequest,
    GameEndedEvent,
    GameUpdate,
    MoveRequest,
    ResignRequest,
)
from pairchess.chess.fen import STARTING_FEN
from pairchess.chess.game import GameSession, Outcome
from pairchess.core.config import Settings
from pairchess.core.exceptions import GameEndedError
from pairchess.core.models import DrawByRule, GameId
from pairchess.core.shared_types import Color
from pairchess.db.repository import SessionStore
from pairchess.services.clock import ClockSupervisor
from pairchess.services.locks import GameLockTable
from pairchess.services.observers import GameObserver

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GameService:
    """
    Entry point for the transport collaborator.
    ----

    * every operation on a game runs while holding that game's lock (never a global one)
    * sessions are cached while the game is active, and rehydrated from the store when missing (e.g. after a restart)
    * every change is published to the observers; the end of a game is announced exactly once
    """

    def __init__(
        self,
        store: SessionStore,
        observers: Iterable[GameObserver] = (),
        clock_seconds: Optional[float] = None,
        clock_increment: float = 0.0,
        time_source: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.observers: list[GameObserver] = list(observers)
        self.clock_seconds = clock_seconds
        self.clock_increment = clock_increment
        self.clock = ClockSupervisor(self.force_timeout, time_source=time_source)
        self._locks = GameLockTable()
        self._sessions: dict[GameId, GameSession] = {}
        self._sessions_lock = threading.Lock()

    @classmethod
    def from_settings(cls, store: SessionStore, settings: Settings, observers: Iterable[GameObserver] = ()) -> Self:
        """Service with the clock supervisor ticking in the background. Call shutdown() to stop it."""
        service = cls(
            store,
            observers,
            clock_seconds=settings.default_clock_seconds,
            clock_increment=settings.clock_increment_seconds,
        )
        service.clock.run_in_background(settings.clock_tick_interval)
        return service

    def shutdown(self) -> None:
        self.clock.shutdown()

    def subscribe(self, observer: GameObserver) -> None:
        self.observers.append(observer)

    # -- Transport facing operations ---
    def create_game(self, request: CreateGameRequest) -> GameUpdate:
        """Matchmaking paired two participants: start their game."""
        session = GameSession.create(
            self.store,
            white_id=request.white_id,
            black_id=request.black_id,
            starting_fen=request.starting_fen or STARTING_FEN,
        )
        with self._locks.hold(session.game_id):
            self._cache(session)
            budget = request.clock_seconds or self.clock_seconds
            if budget:
                self.clock.start(
                    session.game_id,
                    budget,
                    self.clock_increment,
                    first_to_move=session.position.color_to_move,
                )
            return self._emit(session, session.snapshot())

    def submit_move(self, request: MoveRequest, acquire_timeout: Optional[float] = None) -> GameUpdate:
        """Make a move attempt. Moves on one game are applied in the order they get hold of the game's lock."""
        with self._locks.hold(request.game_id, acquire_timeout):
            session = self._session(request.game_id)
            mover = session.position.color_to_move

            if not session.result.ended and self.clock.is_flagged(request.game_id, mover):
                # the flag fell before the move arrived: the timeout wins
                self._emit(session, session.force_timeout(mover))
                raise GameEndedError(f"Game {request.game_id} is over: {mover} ran out of time.")

            outcome = session.submit_move(request.participant_id, request.notation)
            if not outcome.just_ended:
                self.clock.on_move(request.game_id, mover)
            return self._emit(session, outcome)

    def resign(self, request: ResignRequest, acquire_timeout: Optional[float] = None) -> GameUpdate:
        with self._locks.hold(request.game_id, acquire_timeout):
            session = self._session(request.game_id)
            return self._emit(session, session.resign(request.participant_id))

    def force_timeout(self, game_id: GameId, losing_side: Color) -> GameUpdate:
        """
        Called by the clock supervisor. A game that already ended is left alone.

        Only the side to move can run out of time: a timeout that arrives after that side got its move in is stale.
        """
        with self._locks.hold(game_id):
            session = self._session(game_id)
            if not session.result.ended and session.position.color_to_move != losing_side:
                logger.info(
                    "Game %s: ignoring stale timeout of %s, it is %s to move",
                    game_id,
                    losing_side,
                    session.position.color_to_move,
                )
                return self._to_update(session, session.snapshot())
            outcome = session.force_timeout(losing_side)
            if not outcome.just_ended:
                return self._to_update(session, outcome)
            return self._emit(session, outcome)

    def get_game(self, game_id: GameId) -> GameUpdate:
        """Current state of a game (also of an ended one)."""
        with self._locks.hold(game_id):
            session = self._session(game_id)
            return self._to_update(session, session.snapshot())

    # -- Internal helpers --
    def _session(self, game_id: GameId) -> GameSession:
        """Cached session, or rebuilt from the store. Caller holds the game's lock."""
        with self._sessions_lock:
            session = self._sessions.get(game_id)
        if session is not None:
            return session

        session = GameSession.rehydrate(self.store, game_id)
        if not session.result.ended:
            self._cache(session)
        return session

    def _cache(self, session: GameSession) -> None:
        with self._sessions_lock:
            self._sessions[session.game_id] = session

    def _evict(self, game_id: GameId) -> None:
        with self._sessions_lock:
            self._sessions.pop(game_id, None)

    def _emit(self, session: GameSession, outcome: Outcome) -> GameUpdate:
        """Publish the update; announce the end of the game if this operation ended it."""
        update = self._to_update(session, outcome)
        for observer in self.observers:
            _notify(observer.publish, update)

        if outcome.just_ended:
            self.clock.stop(session.game_id)
            self._evict(session.game_id)
            event = GameEndedEvent(
                game_id=session.game_id,
                white_id=session.players[Color.WHITE],
                black_id=session.players[Color.BLACK],
                winner=outcome.result.winner,
                termination=outcome.result.termination,
            )
            logger.info("Game %s ended: %s", session.game_id, outcome.result)
            for observer in self.observers:
                _notify(observer.game_ended, event)
        return update

    def _to_update(self, session: GameSession, outcome: Outcome) -> GameUpdate:
        result = outcome.result
        return GameUpdate(
            game_id=session.game_id,
            white_id=session.players[Color.WHITE],
            black_id=session.players[Color.BLACK],
            fen=outcome.fen,
            ply_count=outcome.ply_count,
            last_move=outcome.last_move,
            last_move_san=outcome.last_move_san,
            ended=result.ended,
            winner=result.winner,
            termination=result.termination,
            draw_reason=result.reason if isinstance(result, DrawByRule) else None,
        )


def _notify(callback: Callable[[T], object], payload: T) -> None:
    """The change is already stored: a failing observer must not turn it into an error for the caller."""
    try:
        callback(payload)
    except Exception:
        logger.warning("Observer %r failed for %r", callback, payload, exc_info=True)

"""Implementation of the SessionStore using SQLAlchemy"""

import logging
import time
from typing import Callable, Optional, TypeVar

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from pairchess.chess.fen import STARTING_FEN
from pairchess.core.exceptions import ConflictError, ConsistencyError, GameNotFoundError, StoreError
from pairchess.core.models import (
    IN_PROGRESS,
    DrawByRule,
    GameId,
    GameRecord,
    GameResult,
    MoveRecord,
    ParticipantId,
    decisive_result,
)
from pairchess.core.shared_types import Color, Termination
from pairchess.db.schema import CODE_TO_TERMINATION, TERMINATION_CODES, DBGame, DBMove, DBUser

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (ended, winner, termination) as stored in the games table
ResultColumns = tuple[bool, Optional[bool], Optional[int]]


def result_to_columns(result: GameResult) -> ResultColumns:
    """The only place where a GameResult gets flattened into the three nullable columns."""
    if not result.ended:
        return False, None, None
    winner = None if result.winner is None else result.winner == Color.WHITE
    return True, winner, TERMINATION_CODES[result.termination]


def columns_to_result(game_id: GameId, ended: bool, winner: Optional[bool], termination: Optional[int]) -> GameResult:
    """Read the three columns back as one value. Combinations that disagree are a consistency error."""
    if not ended:
        if winner is not None or termination is not None:
            raise ConsistencyError(
                f"Game {game_id} is not ended but has winner={winner}, termination={termination}."
            )
        return IN_PROGRESS

    if termination not in CODE_TO_TERMINATION:
        raise ConsistencyError(f"Game {game_id} is ended with unknown termination {termination!r}.")

    kind = CODE_TO_TERMINATION[termination]
    if kind == Termination.DRAW_RULE:
        if winner is not None:
            raise ConsistencyError(f"Game {game_id} ended in a draw but has a winner.")
        return DrawByRule()

    if winner is None:
        raise ConsistencyError(f"Game {game_id} ended by {kind} without a winner.")
    return decisive_result(kind, Color.WHITE if winner else Color.BLACK)


class SQLSessionStore:
    """
    Data stored using SQL / methods implemented using SQLAlchemy.

    Every public method runs in its own transaction. Transient database errors (OperationalError, e.g. a locked
    SQLite file) are retried a bounded number of times before a StoreError is raised.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        retries: int = 3,
        retry_delay: float = 0.05,
    ) -> None:
        self.session_factory = session_factory
        self.retries = retries
        self.retry_delay = retry_delay

    # --- WRITES ---
    def create_game(self, white_id: ParticipantId, black_id: ParticipantId, starting_fen: str) -> GameId:
        """Store new game and return the newly created game ID. Both participants get registered as users."""

        def operation(db: Session) -> GameId:
            for user_id in {white_id, black_id}:
                self._register_user(db, user_id)
            game_db = DBGame(
                w_id=white_id,
                b_id=black_id,
                ended=False,
                winner=None,
                termination=None,
                fen=starting_fen,
                start_fen=None if starting_fen == STARTING_FEN else starting_fen,
            )
            db.add(game_db)
            db.flush()
            return game_db.id

        game_id = self._transaction("create game", operation)
        logger.debug("Stored new game %s", game_id)
        return game_id

    def append_move(self, game_id: GameId, ply: int, uci: str) -> None:
        self._transaction(
            f"append ply {ply} to game {game_id}",
            lambda db: self._append_move(db, game_id, ply, uci),
        )

    def update_game_state(self, game_id: GameId, fen: str, result: GameResult) -> None:
        self._transaction(
            f"update game {game_id}",
            lambda db: self._update_game_state(db, game_id, fen, result),
        )

    def record_move(self, game_id: GameId, ply: int, uci: str, fen: str, result: GameResult) -> None:
        """The move and the state it leads to are committed together, or not at all."""

        def operation(db: Session) -> None:
            self._append_move(db, game_id, ply, uci)
            self._update_game_state(db, game_id, fen, result)

        self._transaction(f"record ply {ply} of game {game_id}", operation)

    # --- READS ---
    def load_game(self, game_id: GameId) -> GameRecord:
        return self._transaction(f"load game {game_id}", lambda db: self._to_record(self._fetch_game(db, game_id)))

    def load_moves(self, game_id: GameId) -> list[MoveRecord]:
        def operation(db: Session) -> list[MoveRecord]:
            self._fetch_game(db, game_id)
            query = select(DBMove).where(DBMove.game_id == game_id).order_by(DBMove.ply)
            return [MoveRecord(row.game_id, row.ply, row.uci) for row in db.scalars(query)]

        return self._transaction(f"load moves of game {game_id}", operation)

    def find_active_game(self, participant_id: ParticipantId) -> Optional[GameRecord]:
        def operation(db: Session) -> Optional[GameRecord]:
            query = (
                select(DBGame)
                .where(or_(DBGame.w_id == participant_id, DBGame.b_id == participant_id))
                .where(DBGame.ended.is_(False))
                .order_by(DBGame.id)
                .limit(1)
            )
            game_db = db.scalar(query)
            return self._to_record(game_db) if game_db else None

        return self._transaction(f"find active game of {participant_id}", operation)

    # -- Internal helpers --
    def _transaction(self, description: str, operation: Callable[[Session], T]) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                with self.session_factory.begin() as db:
                    return operation(db)
            except IntegrityError as err:
                raise ConflictError(f"{description}: {err.orig}") from err
            except OperationalError as err:
                if attempt > self.retries:
                    raise StoreError(f"{description} failed after {attempt} attempts: {err.orig}") from err
                logger.warning("%s failed (attempt %s), retrying: %s", description, attempt, err.orig)
                time.sleep(self.retry_delay)

    def _register_user(self, db: Session, user_id: ParticipantId) -> None:
        """insert or ignore"""
        if db.get(DBUser, user_id) is None:
            db.add(DBUser(id=user_id))

    def _append_move(self, db: Session, game_id: GameId, ply: int, uci: str) -> None:
        """Plies are contiguous: the only ply that can be written is the number of moves already stored."""
        game_db = self._fetch_game(db, game_id)
        if game_db.ended:
            raise ConflictError(f"Game {game_id} has ended, cannot append ply {ply}.")

        stored_plies = db.scalar(select(func.count()).select_from(DBMove).where(DBMove.game_id == game_id))
        if ply != stored_plies:
            raise ConflictError(f"Game {game_id}: cannot write ply {ply}, next ply is {stored_plies}.")

        db.add(DBMove(game_id=game_id, ply=ply, uci=uci))
        db.flush()

    def _update_game_state(self, db: Session, game_id: GameId, fen: str, result: GameResult) -> None:
        game_db = self._fetch_game(db, game_id)
        if game_db.ended:
            raise ConflictError(f"Game {game_id} has ended and can no longer change.")
        game_db.fen = fen
        game_db.ended, game_db.winner, game_db.termination = result_to_columns(result)

    def _fetch_game(self, db: Session, game_id: GameId) -> DBGame:
        game_db = db.get(DBGame, game_id)
        if game_db is None:
            raise GameNotFoundError(f"Game with {game_id=} not found.")
        return game_db

    def _to_record(self, game_db: DBGame) -> GameRecord:
        """Convert SQLAlchemy model to data transfer model."""
        return GameRecord(
            id=game_db.id,
            white_id=game_db.w_id,
            black_id=game_db.b_id,
            fen=game_db.fen,
            result=columns_to_result(game_db.id, game_db.ended, game_db.winner, game_db.termination),
            start_fen=game_db.start_fen,
        )

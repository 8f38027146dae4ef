"""
The GameSession is the entrypoint into the domain layer for the service layer.
It owns the lifecycle of one game: it checks whose turn it is, asks the rules for the legality of the move,
writes the move to the store and decides if the game has ended.

A GameSession is not thread-safe on its own. The GameService makes sure at most one operation per game runs at a time.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Self

from pairchess.chess.draw_rules import draw_reason
from pairchess.chess.fen import STARTING_FEN
from pairchess.chess.moves import Move
from pairchess.chess.position import Position, deserialize
from pairchess.chess.rules import is_checkmate, is_stalemate, validate_and_apply
from pairchess.chess.san import parse_move, to_san
from pairchess.core.exceptions import (
    ConsistencyError,
    FormatError,
    GameEndedError,
    IllegalMoveError,
    MoveRejectedError,
    NotAParticipantError,
    NotYourTurnError,
)
from pairchess.core.models import (
    IN_PROGRESS,
    Checkmate,
    DrawByRule,
    GameId,
    GameRecord,
    GameResult,
    MoveRecord,
    ParticipantId,
    Resignation,
    Timeout,
)
from pairchess.core.shared_types import Color, DrawReason
from pairchess.db.repository import SessionStore

logger = logging.getLogger(__name__)


class SessionState(Enum):
    WAITING = auto()  # matchmaking's concern, a GameSession is never created in it
    ACTIVE = auto()
    ENDED = auto()


@dataclass(frozen=True)
class Outcome:
    """What changed with an operation: handed to the service layer, which relays it to the participants."""

    game_id: GameId
    ply_count: int
    fen: str
    result: GameResult
    last_move: Optional[str] = None
    last_move_san: Optional[str] = None
    # True only for the operation that moved the game into ENDED
    just_ended: bool = False


@dataclass
class GameSession:
    game_id: GameId
    players: dict[Color, ParticipantId]
    store: SessionStore
    history: list[Position]  # every position of the game, the starting one first
    moves: list[Move] = field(default_factory=list)
    result: GameResult = IN_PROGRESS

    # --- CREATION ---
    @classmethod
    def create(
        cls,
        store: SessionStore,
        white_id: ParticipantId,
        black_id: ParticipantId,
        starting_fen: str = STARTING_FEN,
    ) -> Self:
        """Start a new game between two participants. The game is ACTIVE right away."""
        start = deserialize(starting_fen)
        game_id = store.create_game(white_id, black_id, start.to_fen())
        logger.info("Game %s created: white=%s black=%s", game_id, white_id, black_id)
        return cls(
            game_id=game_id,
            players={Color.WHITE: white_id, Color.BLACK: black_id},
            store=store,
            history=[start],
        )

    @classmethod
    def rehydrate(cls, store: SessionStore, game_id: GameId) -> Self:
        """Rebuild the session from the store (after a restart)."""
        record = store.load_game(game_id)
        moves = store.load_moves(game_id)
        return cls.from_record(store, record, moves)

    @classmethod
    def from_record(cls, store: SessionStore, record: GameRecord, move_records: list[MoveRecord]) -> Self:
        """
        Replay the move log from the starting position and make sure it ends up exactly where the stored game says it is.
        ----

        Any disagreement raises a ConsistencyError. The stored game is never repaired here.
        """
        plies = [entry.ply for entry in move_records]
        if plies != list(range(len(move_records))):
            raise _inconsistent(record.id, f"plies are not contiguous from 0: {plies}")

        try:
            history = [deserialize(record.start_fen or STARTING_FEN)]
        except FormatError as err:
            raise _inconsistent(record.id, f"unreadable starting position: {err}") from err

        moves: list[Move] = []
        replayed_result: GameResult = IN_PROGRESS
        for entry in move_records:
            if replayed_result.ended:
                raise _inconsistent(record.id, f"move at ply {entry.ply} was played after the game ended")
            try:
                move = Move.from_uci(entry.uci)
                new_position = validate_and_apply(history[-1], move)
            except (FormatError, IllegalMoveError) as err:
                raise _inconsistent(record.id, f"ply {entry.ply} ({entry.uci}) does not replay: {err}") from err
            history.append(new_position)
            moves.append(move)
            replayed_result = _board_result(history, mover=history[-2].color_to_move)

        if history[-1].to_fen() != record.fen:
            raise _inconsistent(
                record.id, f"log replays to {history[-1].to_fen()!r}, stored position is {record.fen!r}"
            )

        if not _results_agree(record.result, replayed_result):
            raise _inconsistent(
                record.id, f"stored result {record.result} does not match the replayed {replayed_result}"
            )

        logger.info("Game %s rehydrated at ply %s", record.id, len(moves))
        return cls(
            game_id=record.id,
            players={Color.WHITE: record.white_id, Color.BLACK: record.black_id},
            store=store,
            history=history,
            moves=moves,
            # the replay knows which draw rule fired, the stored record does not
            result=replayed_result if isinstance(record.result, DrawByRule) else record.result,
        )

    # --- STATE ---
    @property
    def position(self) -> Position:
        return self.history[-1]

    @property
    def ply_count(self) -> int:
        return len(self.moves)

    @property
    def state(self) -> SessionState:
        return SessionState.ENDED if self.result.ended else SessionState.ACTIVE

    def color_of(self, participant_id: ParticipantId) -> Optional[Color]:
        return next(
            (color for color, player in self.players.items() if player == participant_id),
            None,
        )

    def snapshot(self) -> Outcome:
        """Current state, without a change."""
        last_move = self.moves[-1].to_uci() if self.moves else None
        return Outcome(self.game_id, self.ply_count, self.position.to_fen(), self.result, last_move)

    # --- OPERATIONS ---
    def submit_move(self, participant_id: ParticipantId, notation: str) -> Outcome:
        """
        Attempt to make a move
        -----

        1. the game must still be ACTIVE
        2. it must be the participant's turn
        3. the move must be legal
        4. store the move at the next ply together with the new position and result
        5. only then update the session itself (a failing store leaves the session untouched)
        """
        self._assert_active()

        color_to_move = self.position.color_to_move
        if self.players[color_to_move] != participant_id:
            raise NotYourTurnError(
                f"It is not your turn. Waiting for {color_to_move} to make a move first."
            )

        try:
            move = parse_move(self.position, notation)
            new_position = validate_and_apply(self.position, move)
        except IllegalMoveError as err:
            raise MoveRejectedError(err.reason) from err

        san = to_san(self.position, move)
        history = self.history + [new_position]
        result = _board_result(history, mover=color_to_move)
        ply = self.ply_count

        self.store.record_move(self.game_id, ply, move.to_uci(), new_position.to_fen(), result)

        self.history = history
        self.moves = self.moves + [move]
        self.result = result
        logger.debug("Game %s ply %s: %s (%s) -> %s", self.game_id, ply, move, san, new_position)
        if result.ended:
            logger.info("Game %s ended at ply %s: %s", self.game_id, ply, result)

        return Outcome(
            game_id=self.game_id,
            ply_count=self.ply_count,
            fen=new_position.to_fen(),
            result=result,
            last_move=move.to_uci(),
            last_move_san=san,
            just_ended=result.ended,
        )

    def resign(self, participant_id: ParticipantId) -> Outcome:
        """The participant gives up: the opponent wins."""
        self._assert_active()

        color = self.color_of(participant_id)
        if color is None:
            raise NotAParticipantError(f"Participant {participant_id} does not play in game {self.game_id}.")

        return self._end(Resignation(winner=color.opponent))

    def force_timeout(self, losing_side: Color) -> Outcome:
        """Called when a side ran out of time. Does nothing if the game already ended."""
        if self.result.ended:
            return self.snapshot()
        return self._end(Timeout(winner=losing_side.opponent))

    # -- PRIVATE HELPERS ---
    def _assert_active(self) -> None:
        if self.result.ended:
            raise GameEndedError(f"Game {self.game_id} is over: {self.result}")

    def _end(self, result: GameResult) -> Outcome:
        """Ending without a move: only the result changes."""
        fen = self.position.to_fen()
        self.store.update_game_state(self.game_id, fen, result)
        self.result = result
        logger.info("Game %s ended at ply %s: %s", self.game_id, self.ply_count, result)
        return Outcome(self.game_id, self.ply_count, fen, result, just_ended=True)


# --- CHECKS FOR ENDING THE GAME ---
def _board_result(history: list[Position], mover: Color) -> GameResult:
    """
    Result decided by the board after a move by `mover`.
    Checkmate first: a mate delivered on the 100th quiet ply still wins.
    """
    position = history[-1]
    if is_checkmate(position):
        return Checkmate(winner=mover)
    if is_stalemate(position):
        return DrawByRule(DrawReason.STALEMATE)
    reason = draw_reason(history)
    if reason is not None:
        return DrawByRule(reason)
    return IN_PROGRESS


def _results_agree(stored: GameResult, replayed: GameResult) -> bool:
    """Resignation and timeout end a game the board itself does not consider finished."""
    if isinstance(stored, (Resignation, Timeout)):
        return not replayed.ended
    if isinstance(stored, DrawByRule):
        return isinstance(replayed, DrawByRule)
    return stored == replayed


def _inconsistent(game_id: GameId, detail: str) -> ConsistencyError:
    logger.error("Game %s failed the integrity check: %s", game_id, detail)
    return ConsistencyError(f"Game {game_id}: {detail}")

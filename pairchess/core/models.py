"""
Boundary layer data model(s).

These objects are passed between the Service, the domain (GameSession) and the Store.
(Decouples the data model specific to the DB layer or the domain layer from the information needed to send across boundaries)

The result of a game is a tagged union: exactly one of InProgress, Checkmate, Resignation, Timeout or DrawByRule.
Storage columns (ended / winner / termination) are only derived from it in the db layer.
"""

from dataclasses import dataclass
from typing import Optional

from pairchess.core.shared_types import Color, DrawReason, Termination

# Type aliases to make the records easier to read
GameId = int
ParticipantId = int


# --- GAME RESULT ---
@dataclass(frozen=True)
class InProgress:
    ended = False
    winner = None
    termination = None


@dataclass(frozen=True)
class Checkmate:
    winner: Color
    ended = True
    termination = Termination.CHECKMATE


@dataclass(frozen=True)
class Resignation:
    winner: Color
    ended = True
    termination = Termination.RESIGNATION


@dataclass(frozen=True)
class Timeout:
    winner: Color
    ended = True
    termination = Termination.TIMEOUT


@dataclass(frozen=True)
class DrawByRule:
    # None when read back from storage: the columns do not keep which rule fired
    reason: Optional[DrawReason] = None
    ended = True
    winner = None
    termination = Termination.DRAW_RULE


GameResult = InProgress | Checkmate | Resignation | Timeout | DrawByRule

IN_PROGRESS = InProgress()


def decisive_result(termination: Termination, winner: Color) -> GameResult:
    """Build the result variant for a game that has a winner."""
    variants = {
        Termination.CHECKMATE: Checkmate,
        Termination.RESIGNATION: Resignation,
        Termination.TIMEOUT: Timeout,
    }
    if termination not in variants:
        raise ValueError(f"{termination!r} does not produce a winner")
    return variants[termination](winner)


# --- RECORDS ---
@dataclass(frozen=True)
class GameRecord:
    """Transport-safe representation of a stored game."""

    id: GameId
    white_id: ParticipantId
    black_id: ParticipantId
    fen: str
    result: GameResult = IN_PROGRESS
    start_fen: Optional[str] = None

    @property
    def ended(self) -> bool:
        return self.result.ended

    def participant(self, color: Color) -> ParticipantId:
        return self.white_id if color == Color.WHITE else self.black_id


@dataclass(frozen=True)
class MoveRecord:
    """One row of the move log."""

    game_id: GameId
    ply: int
    uci: str

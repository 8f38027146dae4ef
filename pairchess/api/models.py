"""Requests coming from the transport collaborator, and the updates / events sent back to it"""

from typing import Optional

from pydantic import BaseModel, ValidationInfo, field_validator

from pairchess.chess.fen import is_valid_fen
from pairchess.core.exceptions import InvalidRequestError
from pairchess.core.shared_types import Color, DrawReason, Termination

GameId = int
ParticipantId = int

# longest legal notation is something like "exd8=Q+" or "e7e8q"; leave room for annotations
MAX_NOTATION_LENGTH = 12


# --- REQUEST MODELS ---
class CreateGameRequest(BaseModel):
    white_id: ParticipantId
    black_id: ParticipantId
    starting_fen: Optional[str] = None
    clock_seconds: Optional[float] = None

    @field_validator("starting_fen")
    @classmethod
    def validate_starting_fen(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value

        value = value.strip()
        if not is_valid_fen(value):
            raise InvalidRequestError(f"Cannot interpret {value!r} as a FEN string.")
        return value

    @field_validator("black_id")
    @classmethod
    def validate_opponents(cls, value: ParticipantId, info: ValidationInfo) -> ParticipantId:
        if info.data.get("white_id") == value:
            raise InvalidRequestError("A participant cannot play against themselves.")
        return value


class MoveRequest(BaseModel):
    game_id: GameId
    participant_id: ParticipantId
    notation: str

    @field_validator("notation")
    @classmethod
    def validate_notation(cls, value: str) -> str:
        value = value.strip()
        if not value or len(value) > MAX_NOTATION_LENGTH or " " in value:
            raise InvalidRequestError(f"Cannot interpret {value!r} as a move.")
        return value


class ResignRequest(BaseModel):
    game_id: GameId
    participant_id: ParticipantId


# --- OUTGOING MODELS ---
class GameUpdate(BaseModel):
    """Sent to both participants after every change of a game"""

    game_id: GameId
    white_id: ParticipantId
    black_id: ParticipantId
    fen: str
    ply_count: int
    last_move: Optional[str] = None
    last_move_san: Optional[str] = None
    ended: bool = False
    winner: Optional[Color] = None
    termination: Optional[Termination] = None
    draw_reason: Optional[DrawReason] = None

    def message(self) -> str:
        """Human readable summary, for transports that relay plain text"""
        lines = []
        if self.last_move_san:
            lines.append(f"Played {self.last_move_san}, FEN is now {self.fen}")
        if self.ended:
            outcome = f"{self.winner} wins" if self.winner else "draw"
            reason = f" ({self.draw_reason})" if self.draw_reason else ""
            lines.append(f"Game is over: {outcome} by {self.termination}{reason}.")
        return "\n".join(lines) or f"FEN is {self.fen}"


class GameEndedEvent(BaseModel):
    """Raised once per game, so matchmaking can release both participants"""

    game_id: GameId
    white_id: ParticipantId
    black_id: ParticipantId
    winner: Optional[Color] = None
    termination: Termination

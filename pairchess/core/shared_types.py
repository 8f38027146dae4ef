"""
Type definitions used across layers
"""

from enum import StrEnum


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self == Color.WHITE else Color.WHITE


class PieceType(StrEnum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"


class Termination(StrEnum):
    """Why a game ended. The storage layer owns the integer codes."""

    TIMEOUT = "timeout"
    RESIGNATION = "resignation"
    CHECKMATE = "checkmate"
    DRAW_RULE = "draw rule"


class DrawReason(StrEnum):
    """Which of the automatic draw rules ended the game."""

    STALEMATE = "stalemate"
    INSUFFICIENT_MATERIAL = "insufficient material"
    THREEFOLD_REPETITION = "threefold repetition"
    FIFTY_MOVE_RULE = "fifty move rule"

"""
Automatic draw rules, evaluated after every move.

* fifty-move rule: 100 plies without a capture or a pawn move
* threefold repetition: the same position (pieces, side to move, castling rights, en passant square) occurred three times
* insufficient material: neither side can possibly deliver mate
"""

from collections import Counter
from typing import Optional, Sequence

from pairchess.chess.pieces import MINOR_PIECES
from pairchess.chess.position import Position
from pairchess.core.shared_types import DrawReason, PieceType

FIFTY_MOVE_PLIES = 100
REPETITIONS_FOR_DRAW = 3


def fifty_move_rule(position: Position) -> bool:
    return position.half_move_clock >= FIFTY_MOVE_PLIES


def threefold_repetition(history: Sequence[Position]) -> bool:
    """History holds every position of the game, the starting position included."""
    if len(history) < REPETITIONS_FOR_DRAW:
        return False
    counts = Counter(position.repetition_key() for position in history)
    return max(counts.values()) >= REPETITIONS_FOR_DRAW


def insufficient_material(position: Position) -> bool:
    """
    Known dead positions:
    * king vs king
    * king + knight or bishop vs king
    * kings + bishops only, all bishops on the same square color
    """
    board = position.board
    non_kings = [
        (square, piece)
        for square, piece in board.position.items()
        if piece.type != PieceType.KING
    ]

    if len(non_kings) == 0:
        return True

    if len(non_kings) == 1 and non_kings[0][1].type in MINOR_PIECES:
        return True

    if all(piece.type == PieceType.BISHOP for _, piece in non_kings):
        square_colors = {square.is_light() for square, _ in non_kings}
        return len(square_colors) == 1

    return False


def draw_reason(history: Sequence[Position]) -> Optional[DrawReason]:
    """Which rule (if any) ends the game in the last position of the history."""
    current = history[-1]
    if insufficient_material(current):
        return DrawReason.INSUFFICIENT_MATERIAL
    if threefold_repetition(history):
        return DrawReason.THREEFOLD_REPETITION
    if fifty_move_rule(current):
        return DrawReason.FIFTY_MOVE_RULE
    return None

"""
Representation of a single position: the part of a game that can be encoded in a FEN string.

A Position is a value. Applying a move never changes it, but returns the Position reached after the move.
"""

from dataclasses import dataclass, replace
from typing import Optional, Self

from pairchess.chess.board import Board, Placement
from pairchess.chess.castling import (
    CASTLING_RULES,
    CastlingDirection,
    castling_direction_of,
    castling_from_fen,
    castling_to_fen,
)
from pairchess.chess.fen import STARTING_FEN, is_valid_fen
from pairchess.chess.moves import Move, is_square_attacked, pawn_direction
from pairchess.chess.square import BOARD_DIMENSIONS, Square
from pairchess.core.exceptions import InvalidFENError
from pairchess.core.shared_types import Color, PieceType

# What makes two positions "the same" for the repetition rule
RepetitionKey = tuple[str, Color, frozenset[CastlingDirection], Optional[Square]]


@dataclass(frozen=True)
class Position:
    """
    Data that can be constructed from a FEN string.
    ----

    * board: where the pieces stand
    * color_to_move: either "w" or "b" in the FEN string
    * castling_rights: the directions that have not been revoked yet (KQkq in the starting position, "-" once all are gone)
    * en_passant_square: the square a pawn can take on after the opponent's double push. If not available a "-" is used.
    * half_move_clock: number of plies since the last pawn move or capture (fifty-move rule)
    * num_turns: starts at 1 and increments after every move black makes.
    """

    board: Board
    color_to_move: Color
    castling_rights: frozenset[CastlingDirection]
    en_passant_square: Optional[Square]
    half_move_clock: int
    num_turns: int

    @classmethod
    def from_fen(cls, fen: str) -> Self:
        """Parse the FEN into data"""

        # raise an exception if invalid FEN:
        if not is_valid_fen(fen):
            raise InvalidFENError(f"Cannot interpret supplied string as FEN: {fen}")

        # extract the different components. FEN is space separated
        (
            position,
            active_color,
            castling_str,
            en_passant_algebraic,
            half_move_clock,
            num_turns,
        ) = fen.split(" ")

        board = Board.from_fen(position)
        _assert_sane_board(board, fen)

        en_passant_square = (
            Square.from_algebraic(en_passant_algebraic)
            if en_passant_algebraic != "-"
            else None
        )
        return cls(
            board=board,
            color_to_move=Color.WHITE if active_color == "w" else Color.BLACK,
            castling_rights=castling_from_fen(castling_str),
            en_passant_square=en_passant_square,
            half_move_clock=int(half_move_clock),
            num_turns=int(num_turns),
        )

    def to_fen(self) -> str:
        """reverse operation: write a FEN from the given data"""
        active_color = "w" if self.color_to_move == Color.WHITE else "b"
        castling_str = castling_to_fen(self.castling_rights)

        en_passant_algebraic = (
            self.en_passant_square.to_algebraic()
            if self.en_passant_square is not None
            else "-"
        )

        return f"{self.board.to_fen()} {active_color} {castling_str} {en_passant_algebraic} {self.half_move_clock} {self.num_turns}"

    @classmethod
    def starting_position(cls) -> Self:
        return cls.from_fen(STARTING_FEN)

    def repetition_key(self) -> RepetitionKey:
        return (
            self.board.to_fen(),
            self.color_to_move,
            self.castling_rights,
            self.en_passant_square,
        )

    def __str__(self) -> str:
        return self.to_fen()


def _assert_sane_board(board: Board, fen: str) -> None:
    """Exactly one king per color, and no pawns on the first or last rank."""
    for color in Color:
        if len(board.locate_pieces(PieceType.KING, color)) != 1:
            raise InvalidFENError(f"Expected exactly one {color} king: {fen}")

    back_ranks = {1, BOARD_DIMENSIONS[1]}
    if any(square.rank in back_ranks for square in board.locate_pieces(PieceType.PAWN)):
        raise InvalidFENError(f"Pawns cannot stand on the first or last rank: {fen}")


def _assert_reachable(position: Position, fen: str) -> None:
    """
    1. the en passant square lies behind a pawn the opponent just pushed: 6th rank with white to move, 3rd with black to move
    2. the side that just moved is not in check
    """
    if position.en_passant_square is not None:
        expected_rank = 6 if position.color_to_move == Color.WHITE else 3
        if position.en_passant_square.rank != expected_rank:
            raise InvalidFENError(f"En passant square {position.en_passant_square} with {position.color_to_move} to move: {fen}")

    opponent = position.color_to_move.opponent
    if is_square_attacked(position.board.king_square(opponent), position.color_to_move, position.board):
        raise InvalidFENError(f"{opponent} is in check while it is {position.color_to_move} to move: {fen}")


# --- Module level API ---
def starting_position() -> Position:
    return Position.starting_position()


def serialize(position: Position) -> str:
    return position.to_fen()


def deserialize(fen: str) -> Position:
    """Parse a FEN from outside the engine: besides the grammar, the position must be one a game can actually reach."""
    position = Position.from_fen(fen)
    _assert_reachable(position, fen)
    return position


def apply_raw(position: Position, move: Move) -> Position:
    """
    Mechanical update of the position with an already validated move.
    -----

    1. move the piece (substituting the promotion piece if a pawn promotes)
    2. castling: also move the rook
    3. en passant: remove the pawn that got taken
    4. revoke castling rights where needed
    5. set the en passant square if a pawn made a double push
    6. update the move counters and pass the turn
    """
    board = position.board
    moving_piece = board.piece(move.from_square)
    assert moving_piece is not None, f"no piece on {move.from_square}"
    captured_piece = board.piece(move.to_square)

    landing_piece = (
        moving_piece.promoted_to(move.promote_to) if move.promote_to else moving_piece
    )
    placements: list[Placement] = [
        (move.from_square, None),
        (move.to_square, landing_piece),
    ]

    is_pawn_move = moving_piece.type == PieceType.PAWN
    is_capture = captured_piece is not None

    if moving_piece.type == PieceType.KING:
        direction = castling_direction_of(move.from_square, move.to_square)
        if direction is not None:
            rule = CASTLING_RULES[direction]
            placements.append((rule.rook_from, None))
            placements.append((rule.rook_to, board.piece(rule.rook_from)))

    if is_en_passant_capture(position, move):
        # The pawn taken stands on the file of the en passant square, on the rank the moving pawn came from
        placements.append((Square(move.to_square.file, move.from_square.rank), None))
        is_capture = True

    return replace(
        position,
        board=board.with_changes(placements),
        color_to_move=position.color_to_move.opponent,
        castling_rights=_remaining_castling_rights(position, move, moving_piece.type),
        en_passant_square=_en_passant_square_after(move, moving_piece.type, moving_piece.color),
        half_move_clock=0 if (is_pawn_move or is_capture) else position.half_move_clock + 1,
        num_turns=position.num_turns + 1 if position.color_to_move == Color.BLACK else position.num_turns,
    )


def is_en_passant_capture(position: Position, move: Move) -> bool:
    moving_piece = position.board.piece(move.from_square)
    return (
        moving_piece is not None
        and moving_piece.type == PieceType.PAWN
        and move.to_square == position.en_passant_square
        and move.from_square.file != move.to_square.file
        and position.board.is_empty(move.to_square)
    )


def _remaining_castling_rights(
    position: Position, move: Move, piece_type: PieceType
) -> frozenset[CastlingDirection]:
    """
    Checks which rights should get revoked
    ----

    1. If you are moving your king (castling included) --> revoke both
    2. If a rook leaves its starting square --> revoke the right in that direction
    3. If anything lands on a rook's starting square (capturing it) --> revoke the right in that direction
    """
    remaining: set[CastlingDirection] = set()
    for direction in position.castling_rights:
        rule = CASTLING_RULES[direction]
        if piece_type == PieceType.KING and move.from_square == rule.king_from:
            continue
        if rule.rook_from in (move.from_square, move.to_square):
            continue
        remaining.add(direction)
    return frozenset(remaining)


def _en_passant_square_after(move: Move, piece_type: PieceType, color: Color) -> Optional[Square]:
    """The square a double pushed pawn skipped over"""
    ranks_moved = abs(move.from_square.rank - move.to_square.rank)
    if piece_type == PieceType.PAWN and ranks_moved == 2:
        return move.from_square.offset(0, pawn_direction(color))
    return None

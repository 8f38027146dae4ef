"""
Move Legality Engine
-----

Decides whether a move is legal in a position and produces the resulting position.

1. the moving piece must belong to the side to move
2. the move must follow the movement rules of the piece (moves.py), or be a valid castling / en passant move
3. the move must not leave the own king in check
4. a pawn reaching the last rank must name a promotion piece, and no other move may name one
"""

from typing import Iterator, Optional

from pairchess.chess.castling import (
    CASTLING_RULES,
    CastlingDirection,
    castling_direction_of,
    castling_directions,
)
from pairchess.chess.moves import (
    MOVEMENT_RULES,
    Move,
    is_square_attacked,
    pawn_direction,
    pawn_pushes_w_promotion,
    promotion_rank,
)
from pairchess.chess.pieces import Piece
from pairchess.chess.position import Position, apply_raw
from pairchess.chess.square import Square
from pairchess.core.exceptions import IllegalMoveError
from pairchess.core.shared_types import Color, PieceType


def validate_and_apply(position: Position, move: Move) -> Position:
    """Return the position after the move, or raise IllegalMoveError explaining why the move is not allowed."""
    board = position.board
    player_color = position.color_to_move
    moving_piece = board.piece(move.from_square)

    if moving_piece is None:
        raise IllegalMoveError(f"There is no piece on {move.from_square}.")

    if moving_piece.color != player_color:
        raise IllegalMoveError(
            f"The piece on {move.from_square} belongs to {moving_piece.color}, but it is {player_color} to move."
        )

    _check_promotion(move, moving_piece)

    unpromoted = Move(move.from_square, move.to_square)
    if unpromoted not in _candidate_moves_from(position, move.from_square):
        raise IllegalMoveError(_explain_pseudo_illegal(position, move, moving_piece))

    new_position = apply_raw(position, move)
    if _is_king_attacked(new_position, player_color):
        raise IllegalMoveError(f"{move} would leave the {player_color} king in check.")
    return new_position


def is_in_check(position: Position) -> bool:
    """Is the side to move in check?"""
    return _is_king_attacked(position, position.color_to_move)


def legal_moves(position: Position) -> list[Move]:
    return list(_iter_legal_moves(position))


def has_legal_moves(position: Position) -> bool:
    return next(_iter_legal_moves(position), None) is not None


def is_checkmate(position: Position) -> bool:
    return is_in_check(position) and not has_legal_moves(position)


def is_stalemate(position: Position) -> bool:
    return not is_in_check(position) and not has_legal_moves(position)


# --- LEGAL MOVE GENERATION ---
def _iter_legal_moves(position: Position) -> Iterator[Move]:
    """
    1. generate candidate moves for every piece of the side to move (movement rules, castling, en passant)
    2. remove the ones that leave the king in check
    3. pawn push to promotion square? --> one move for every choice of piece type
    """
    player_color = position.color_to_move
    for square in position.board.locate_color(player_color):
        for move in _candidate_moves_from(position, square):
            if _is_king_attacked(apply_raw(position, move), player_color):
                continue
            if _is_promotion_square(position, move):
                yield from pawn_pushes_w_promotion(move)
            else:
                yield move


def _candidate_moves_from(position: Position, square: Square) -> list[Move]:
    """Pseudo-legal moves of the piece on the square (without promotion choices)"""
    piece = position.board.piece(square)
    if piece is None:
        return []

    candidates = MOVEMENT_RULES[piece.type](square, position.board)
    if piece.type == PieceType.PAWN:
        candidates.extend(_en_passant_moves(position, square, piece.color))
    if piece.type == PieceType.KING:
        candidates.extend(
            _castling_move(direction)
            for direction in castling_directions(piece.color)
            if _castling_obstacle(position, direction) is None
        )
    return candidates


def _is_king_attacked(position: Position, color: Color) -> bool:
    king_square = position.board.king_square(color)
    return is_square_attacked(king_square, color.opponent, position.board)


def _is_promotion_square(position: Position, move: Move) -> bool:
    piece = position.board.piece(move.from_square)
    return (
        piece is not None
        and piece.type == PieceType.PAWN
        and move.to_square.rank == promotion_rank(piece.color)
    )


def _check_promotion(move: Move, moving_piece: Piece) -> None:
    reaches_last_rank = (
        moving_piece.type == PieceType.PAWN
        and move.to_square.rank == promotion_rank(moving_piece.color)
    )
    if reaches_last_rank and move.promote_to is None:
        raise IllegalMoveError(f"{move}: a pawn reaching the last rank must promote.")
    if not reaches_last_rank and move.promote_to is not None:
        raise IllegalMoveError(f"{move}: only a pawn reaching the last rank can promote.")


# -- CASTLING RULE HELPERS ---
def _castling_move(direction: CastlingDirection) -> Move:
    rule = CASTLING_RULES[direction]
    return Move(rule.king_from, rule.king_to)


def _castling_obstacle(position: Position, direction: CastlingDirection) -> Optional[str]:
    """
    Reason why castling in the given direction is not allowed right now, or None if it is.
    ---

    **you are allowed to castle if**

    * Castling rights are not yet revoked (and king and rook still stand on their starting squares).
    * All squares in between the king and the rook are empty.
    * You are not currently in check (you cannot castle out of check).
    * The king does not cross or land on a square that is under attack.
    """
    board = position.board
    color = direction.color
    rule = CASTLING_RULES[direction]

    if direction not in position.castling_rights:
        return "castling rights in that direction have been revoked"

    if board.piece(rule.king_from) != Piece(PieceType.KING, color) or board.piece(
        rule.rook_from
    ) != Piece(PieceType.ROOK, color):
        return "king and rook are not on their starting squares"

    if board.is_any_occupied(rule.path()):
        return "the squares between king and rook are not empty"

    if is_square_attacked(rule.king_from, color.opponent, board):
        return "cannot castle out of check"

    if any(is_square_attacked(square, color.opponent, board) for square in rule.king_route()):
        return "the king cannot cross or land on an attacked square"

    return None


# --- EN PASSANT RULE HELPERS ----
def _en_passant_moves(position: Position, square: Square, color: Color) -> list[Move]:
    """
    The pawn on the square may take en passant if it stands diagonally behind the en passant square
    and the opponent's pawn that made the double push is still there.
    """
    target = position.en_passant_square
    if target is None:
        return []

    forward = pawn_direction(color)
    stands_behind = square.rank + forward == target.rank and abs(square.file - target.file) == 1
    if not stands_behind or not position.board.is_empty(target):
        return []

    taken_square = Square(target.file, square.rank)
    if position.board.piece(taken_square) != Piece(PieceType.PAWN, color.opponent):
        return []
    return [Move(square, target)]


def _explain_pseudo_illegal(position: Position, move: Move, moving_piece: Piece) -> str:
    """Turn a failed movement check into a message for the participant."""
    if moving_piece.type == PieceType.KING:
        direction = castling_direction_of(move.from_square, move.to_square)
        if direction is not None and direction.color == moving_piece.color:
            obstacle = _castling_obstacle(position, direction)
            return f"Cannot castle with {move}: {obstacle}."

    target = position.board.piece(move.to_square)
    if target is not None and target.color == moving_piece.color:
        return f"{move}: cannot capture your own {target.type} on {move.to_square}."

    return f"{move} is not a legal {moving_piece.type} move."

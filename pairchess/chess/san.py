"""
Standard Algebraic Notation (SAN)
---

Participants may type their moves the way they read them in a book ("Nf3", "exd6", "O-O", "e8=Q+")
or as UCI coordinates ("g1f3"). SAN is resolved against the current position into a Move; only the
UCI form of a move is ever stored.
"""

import re
from typing import Optional

from pairchess.chess.castling import CastlingDirection, castling_direction_of
from pairchess.chess.moves import Move
from pairchess.chess.position import Position, apply_raw, is_en_passant_capture
from pairchess.chess.rules import is_checkmate, is_in_check, legal_moves
from pairchess.chess.square import Square
from pairchess.core.exceptions import FormatError, IllegalMoveError, InvalidMoveNotationError
from pairchess.core.shared_types import PieceType

SAN_TO_PIECE: dict[str, PieceType] = {
    "N": PieceType.KNIGHT,
    "B": PieceType.BISHOP,
    "R": PieceType.ROOK,
    "Q": PieceType.QUEEN,
    "K": PieceType.KING,
}
PIECE_TO_SAN: dict[PieceType, str] = {value: key for key, value in SAN_TO_PIECE.items()}

SAN_PATTERN = re.compile(
    r"^(?P<piece>[NBRQK])?(?P<file>[a-h])?(?P<rank>[1-8])?(?P<capture>x)?"
    r"(?P<to>[a-h][1-8])(?:=?(?P<promotion>[NBRQ]))?$"
)
KING_SIDE_CASTLING = {"O-O", "0-0"}
QUEEN_SIDE_CASTLING = {"O-O-O", "0-0-0"}
ANNOTATIONS = "+#!?"


def parse_move(position: Position, notation: str) -> Move:
    """
    Read a move typed by a participant. SAN is tried first, then UCI.

    A UCI string that parses is returned as is: validate_and_apply will report why it is illegal, if it is.
    """
    notation = notation.strip()
    try:
        return parse_san(position, notation)
    except (FormatError, IllegalMoveError) as san_error:
        try:
            return Move.from_uci(notation)
        except FormatError:
            raise san_error from None


def parse_san(position: Position, san: str) -> Move:
    """Resolve SAN into the single legal move it denotes."""
    text = san.rstrip(ANNOTATIONS)

    if text in KING_SIDE_CASTLING or text in QUEEN_SIDE_CASTLING:
        return _parse_castling(position, queen_side=text in QUEEN_SIDE_CASTLING, san=san)

    match = SAN_PATTERN.match(text)
    if match is None:
        raise InvalidMoveNotationError(f"Cannot interpret {san!r} as a move.")

    piece_type = SAN_TO_PIECE.get(match["piece"] or "", PieceType.PAWN)
    to_square = Square.from_algebraic(match["to"])
    promote_to = SAN_TO_PIECE[match["promotion"]] if match["promotion"] else None

    candidates = [
        move
        for move in legal_moves(position)
        if move.to_square == to_square
        and move.promote_to == promote_to
        and _piece_type_on(position, move.from_square) == piece_type
        and _matches_origin(move.from_square, match["file"], match["rank"])
    ]

    if not candidates:
        raise IllegalMoveError(f"{san} is not a legal move in this position.")
    if len(candidates) > 1:
        options = ", ".join(move.to_uci() for move in candidates)
        raise IllegalMoveError(f"{san} is ambiguous: could be any of {options}.")
    return candidates[0]


def to_san(position: Position, move: Move) -> str:
    """Write a (legal) move in SAN, including disambiguation and check / mate markers."""
    moving_piece = position.board.piece(move.from_square)
    assert moving_piece is not None

    direction = (
        castling_direction_of(move.from_square, move.to_square)
        if moving_piece.type == PieceType.KING
        else None
    )
    if direction is not None:
        queen_side = direction in (CastlingDirection.WHITE_QUEEN_SIDE, CastlingDirection.BLACK_QUEEN_SIDE)
        text = "O-O-O" if queen_side else "O-O"
    else:
        is_capture = position.board.piece(move.to_square) is not None or is_en_passant_capture(position, move)
        if moving_piece.type == PieceType.PAWN:
            prefix = move.from_square.to_algebraic()[0] if is_capture else ""
        else:
            prefix = PIECE_TO_SAN[moving_piece.type] + _disambiguation(position, move, moving_piece.type)
        promotion = f"={PIECE_TO_SAN[move.promote_to]}" if move.promote_to else ""
        text = f"{prefix}{'x' if is_capture else ''}{move.to_square}{promotion}"

    after = apply_raw(position, move)
    if is_checkmate(after):
        return text + "#"
    if is_in_check(after):
        return text + "+"
    return text


def _parse_castling(position: Position, queen_side: bool, san: str) -> Move:
    for move in legal_moves(position):
        if _piece_type_on(position, move.from_square) != PieceType.KING:
            continue
        direction = castling_direction_of(move.from_square, move.to_square)
        if direction is None:
            continue
        is_queen_side = direction in (CastlingDirection.WHITE_QUEEN_SIDE, CastlingDirection.BLACK_QUEEN_SIDE)
        if is_queen_side == queen_side:
            return move
    raise IllegalMoveError(f"{san}: castling is not allowed in this position.")


def _piece_type_on(position: Position, square: Square) -> Optional[PieceType]:
    piece = position.board.piece(square)
    return piece.type if piece else None


def _matches_origin(square: Square, file: Optional[str], rank: Optional[str]) -> bool:
    algebraic = square.to_algebraic()
    if file is not None and algebraic[0] != file:
        return False
    if rank is not None and algebraic[1] != rank:
        return False
    return True


def _disambiguation(position: Position, move: Move, piece_type: PieceType) -> str:
    """Origin file, rank or both when another piece of the same type could also reach the square."""
    rivals = [
        other.from_square
        for other in legal_moves(position)
        if other.to_square == move.to_square
        and other.from_square != move.from_square
        and _piece_type_on(position, other.from_square) == piece_type
    ]
    if not rivals:
        return ""

    origin = move.from_square.to_algebraic()
    if all(rival.file != move.from_square.file for rival in rivals):
        return origin[0]
    if all(rival.rank != move.from_square.rank for rival in rivals):
        return origin[1]
    return origin

"""unit tests for pairchess/chess/castling.py"""

import pytest

from pairchess.chess.castling import (
    CASTLING_RULES,
    CastlingDirection,
    CastlingSquares,
    Square,
    castling_direction_of,
    castling_directions,
    castling_from_fen,
    castling_to_fen,
)
from pairchess.core.shared_types import Color


def test_castling_squares_creation() -> None:
    """Test one case, just to have a little contract stating: 'I want to be able to create this dataclass'"""
    castling_squares = CastlingSquares.from_algebraic("e1", "g1", "h1", "f1")
    assert castling_squares.king_from == Square.from_algebraic("e1")
    assert castling_squares.king_to == Square.from_algebraic("g1")
    assert castling_squares.rook_from == Square.from_algebraic("h1")
    assert castling_squares.rook_to == Square.from_algebraic("f1")


@pytest.mark.parametrize(
    "direction, path, king_route",
    [
        (CastlingDirection.WHITE_KING_SIDE, ["f1", "g1"], ["f1", "g1"]),
        (CastlingDirection.WHITE_QUEEN_SIDE, ["d1", "c1", "b1"], ["d1", "c1"]),
        (CastlingDirection.BLACK_KING_SIDE, ["f8", "g8"], ["f8", "g8"]),
        (CastlingDirection.BLACK_QUEEN_SIDE, ["d8", "c8", "b8"], ["d8", "c8"]),
    ],
)
def test_castling_paths(direction: CastlingDirection, path: list[str], king_route: list[str]) -> None:
    """b1 must be empty for queen side castling, but it may be attacked"""
    rule = CASTLING_RULES[direction]
    assert rule.path() == [Square.from_algebraic(sq) for sq in path]
    assert rule.king_route() == [Square.from_algebraic(sq) for sq in king_route]


@pytest.mark.parametrize(
    "fen, expected_rights",
    [
        ("KQkq", set(CastlingDirection)),
        ("KQk", {CastlingDirection.WHITE_KING_SIDE, CastlingDirection.WHITE_QUEEN_SIDE, CastlingDirection.BLACK_KING_SIDE}),
        ("q", {CastlingDirection.BLACK_QUEEN_SIDE}),
        ("-", set()),
    ],
)
def test_castling_rights_fen(fen: str, expected_rights: set[CastlingDirection]) -> None:
    rights = castling_from_fen(fen)
    assert rights == frozenset(expected_rights)
    assert castling_to_fen(rights) == fen


def test_castling_directions_per_color() -> None:
    assert castling_directions(Color.WHITE) == [
        CastlingDirection.WHITE_KING_SIDE,
        CastlingDirection.WHITE_QUEEN_SIDE,
    ]
    assert all(direction.color == Color.BLACK for direction in castling_directions(Color.BLACK))


def test_castling_direction_from_king_move() -> None:
    e1, g1, f1 = (Square.from_algebraic(sq) for sq in ("e1", "g1", "f1"))
    assert castling_direction_of(e1, g1) == CastlingDirection.WHITE_KING_SIDE
    assert castling_direction_of(e1, f1) is None

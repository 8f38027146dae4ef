"""The Game board holds the configuration of pieces. Boards are never changed in place: every update returns a new Board."""

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Self

from pairchess.chess.fen import EMPTY_RUN_DIGITS
from pairchess.chess.pieces import FEN_TO_PIECE, Piece
from pairchess.chess.square import ALL_SQUARES, BOARD_DIMENSIONS, Square
from pairchess.core.exceptions import InvalidFENError
from pairchess.core.shared_types import Color, PieceType

# (square, piece) to place. A piece of None empties the square.
Placement = tuple[Square, Optional[Piece]]


@dataclass(frozen=True)
class Board:
    # only occupied squares are stored
    position: Mapping[Square, Piece] = field(default_factory=dict)

    def __hash__(self) -> int:
        # the mapping itself is unhashable, its items are
        return hash(frozenset(self.position.items()))

    @classmethod
    def from_fen(cls, fen_str: str) -> Self:
        """Construct a board using a given FEN string.

        That is, we supply the first part of the FEN string that denotes the board position
        ex. standard starting position:
        rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR
        means:
        * black pieces are on the 8th rank, starting with rook on a8, knight on b8, etc.
        * pawns cover 7th rank entirely
        * ranks 6 through 3 have 8 consecutive empty squares
        * rank 2 are the white pawns (capital letters)
        * 1st rank are the white pieces. Again, left-to-right reads a1-h1.
        """
        position: dict[Square, Piece] = {}
        fen_by_ranks = fen_str.split("/")
        if len(fen_by_ranks) != BOARD_DIMENSIONS[1]:
            raise InvalidFENError(f"Expected {BOARD_DIMENSIONS[1]} ranks: {fen_str!r}")

        for rank_idx, fen_one_rank in enumerate(fen_by_ranks):
            # FEN string is read from top rank (8th) to bottom rank (1st)
            rank = BOARD_DIMENSIONS[1] - rank_idx
            # ... but the first character is the a-file, so reads in normal direction
            file = 1
            for character in fen_one_rank:
                if character.lower() in FEN_TO_PIECE:
                    position[Square(file, rank)] = Piece.from_fen(character)
                    file += 1
                elif character in EMPTY_RUN_DIGITS:
                    # A number denotes the amount of empty squares after each other
                    file += int(character)
                else:
                    raise InvalidFENError(f"Unexpected character {character!r} in {fen_str!r}")
            if file - 1 != BOARD_DIMENSIONS[0]:
                raise InvalidFENError(f"Rank {rank} does not have {BOARD_DIMENSIONS[0]} files: {fen_str!r}")
        return cls(position)

    def to_fen(self) -> str:
        """Ranks are separated by slashes in FEN string."""
        return "/".join(
            self._rank_to_fen(rank) for rank in range(BOARD_DIMENSIONS[1], 0, -1)
        )

    def _rank_to_fen(self, rank: int) -> str:
        """FEN string of a single rank"""
        fen_characters: list[str] = []
        empty_count = 0
        for file in range(1, BOARD_DIMENSIONS[0] + 1):
            piece = self.piece(Square(file, rank))

            if piece is not None:
                if empty_count > 0:
                    fen_characters.append(str(empty_count))
                    empty_count = 0
                fen_characters.append(piece.to_fen())
            else:
                empty_count += 1

        # if the entire rank is empty, then we still place this number in the string
        if empty_count > 0:
            fen_characters.append(str(empty_count))
        return "".join(fen_characters)

    def piece(self, square: Square) -> Optional[Piece]:
        return self.position.get(square)

    def is_empty(self, square: Square) -> bool:
        return square not in self.position

    def is_any_occupied(self, squares: Iterable[Square]) -> bool:
        return any(not self.is_empty(square) for square in squares)

    def empty_squares(self) -> list[Square]:
        return [square for square in ALL_SQUARES if self.is_empty(square)]

    def locate_pieces(self, piece_type: PieceType, color: Optional[Color] = None) -> list[Square]:
        return [
            square
            for square, piece in self.position.items()
            if piece.type == piece_type and (color is None or piece.color == color)
        ]

    def locate_color(self, color: Color) -> list[Square]:
        return [
            square for square, piece in self.position.items() if piece.color == color
        ]

    def king_square(self, color: Color) -> Square:
        """Every legal position has exactly one king per color."""
        return next(
            square
            for square, piece in self.position.items()
            if piece.type == PieceType.KING and piece.color == color
        )

    def pieces(self) -> list[Piece]:
        return list(self.position.values())

    def with_changes(self, placements: Iterable[Placement]) -> Self:
        """New board with the given squares filled (or emptied, for a None piece)."""
        position = dict(self.position)
        for square, piece in placements:
            if piece is None:
                position.pop(square, None)
            else:
                position[square] = piece
        return type(self)(position)

    def count_material(self) -> dict[Color, int]:
        """Tally the points of material each player has on the board"""
        return {color: self._count_material_player(color) for color in Color}

    def _count_material_player(self, color: Color) -> int:
        """Tally the points of material for a specific player"""
        return sum(piece.points for piece in self.position.values() if piece.color == color)

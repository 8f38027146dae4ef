"""Unit tests for pairchess/chess/draw_rules.py"""

import pytest

from pairchess.chess.draw_rules import (
    FIFTY_MOVE_PLIES,
    draw_reason,
    fifty_move_rule,
    insufficient_material,
    threefold_repetition,
)
from pairchess.chess.moves import Move
from pairchess.chess.position import Position, starting_position
from pairchess.chess.rules import validate_and_apply
from pairchess.core.shared_types import DrawReason

KNIGHT_SHUFFLE = ["g1f3", "g8f6", "f3g1", "f6g8"]


def history_of(start: Position, uci_moves: list[str]) -> list[Position]:
    history = [start]
    for uci in uci_moves:
        history.append(validate_and_apply(history[-1], Move.from_uci(uci)))
    return history


@pytest.mark.parametrize(
    "fen",
    [
        "4k3/8/8/8/8/8/8/4K3 w - - 0 1",  # bare kings
        "4k3/8/8/8/8/8/8/2B1K3 w - - 0 1",  # king and bishop vs king
        "4k3/8/8/8/8/8/8/1N2K3 b - - 0 1",  # king and knight vs king
        "4k3/8/8/8/8/8/8/2b1K1B1 w - - 0 1",  # bishops on squares of the same color (c1 and g1 are both dark)
    ],
)
def test_insufficient_material(fen: str) -> None:
    assert insufficient_material(Position.from_fen(fen))


@pytest.mark.parametrize(
    "fen",
    [
        "4k3/8/8/8/8/8/4P3/4K3 w - - 0 1",  # a pawn can still promote
        "4k3/8/8/8/8/8/8/3RK3 w - - 0 1",  # rook
        "4k3/8/8/8/8/8/8/1NN1K3 w - - 0 1",  # two knights
        "4k3/8/8/8/8/8/8/2b1KB2 w - - 0 1",  # bishops on squares of different color
        "4k3/8/8/8/8/8/8/2BNK3 w - - 0 1",  # bishop and knight
    ],
)
def test_sufficient_material(fen: str) -> None:
    assert not insufficient_material(Position.from_fen(fen))


def test_fifty_move_rule() -> None:
    assert not fifty_move_rule(Position.from_fen(f"4k3/8/8/8/8/8/8/3RK3 w - - {FIFTY_MOVE_PLIES - 1} 60"))
    assert fifty_move_rule(Position.from_fen(f"4k3/8/8/8/8/8/8/3RK3 w - - {FIFTY_MOVE_PLIES} 60"))


def test_threefold_repetition_needs_three_occurrences() -> None:
    """The starting position occurs for the second time after 4 plies, and a third time after 8"""
    history = history_of(starting_position(), KNIGHT_SHUFFLE * 2)
    assert not threefold_repetition(history[:5])
    assert not threefold_repetition(history[:8])
    assert threefold_repetition(history)


def test_repetition_ignores_move_counters() -> None:
    """Same pieces, different clocks: still the same position"""
    first = Position.from_fen("4k3/8/8/8/8/8/8/3RK3 w - - 0 1")
    second = Position.from_fen("4k3/8/8/8/8/8/8/3RK3 w - - 4 3")
    third = Position.from_fen("4k3/8/8/8/8/8/8/3RK3 w - - 8 5")
    assert threefold_repetition([first, second, third])


def test_repetition_includes_castling_rights() -> None:
    with_rights = Position.from_fen("4k3/8/8/8/8/8/8/R3K3 w Q - 0 1")
    without_rights = Position.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 4 3")
    assert not threefold_repetition([with_rights, without_rights, without_rights])


def test_draw_reason() -> None:
    assert draw_reason([starting_position()]) is None
    assert draw_reason([Position.from_fen("4k3/8/8/8/8/8/8/4K3 w - - 0 1")]) == DrawReason.INSUFFICIENT_MATERIAL
    assert draw_reason(history_of(starting_position(), KNIGHT_SHUFFLE * 2)) == DrawReason.THREEFOLD_REPETITION
    assert draw_reason([Position.from_fen("4k3/8/8/8/8/8/8/3RK3 w - - 100 70")]) == DrawReason.FIFTY_MOVE_RULE


def test_insufficient_material_reported_first() -> None:
    """A position can match several rules at once, insufficient material takes precedence"""
    position = Position.from_fen("4k3/8/8/8/8/8/8/4K3 w - - 100 70")
    assert draw_reason([position, position, position]) == DrawReason.INSUFFICIENT_MATERIAL

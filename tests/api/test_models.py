"""Unit tests for pairchess/api/models.py"""

import pytest
from pydantic import ValidationError

from pairchess.api.models import CreateGameRequest, GameEndedEvent, GameUpdate, MoveRequest
from pairchess.chess.fen import STARTING_FEN
from pairchess.core.shared_types import Color, DrawReason, Termination


# -- Validation - CreateGameRequest --
def test_valid_fen() -> None:
    """Test that CreateGameRequest accepts a valid FEN string."""
    request = CreateGameRequest(white_id=1, black_id=2, starting_fen=STARTING_FEN)
    assert request.starting_fen == STARTING_FEN


def test_starting_fen_is_optional() -> None:
    """Should be able to not supply a starting FEN, and validator just returns None."""
    request = CreateGameRequest(white_id=1, black_id=2)
    assert request.starting_fen is None
    assert request.clock_seconds is None


def test_starting_fen_is_stripped() -> None:
    request = CreateGameRequest(white_id=1, black_id=2, starting_fen=f"  {STARTING_FEN}\n")
    assert request.starting_fen == STARTING_FEN


@pytest.mark.parametrize(
    "invalid_fen",
    [
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0",  # only 5 space-separated values
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1 extra",  # too many space-separated values
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBN w KQkq - 0 1",  # a rank with 7 files
        "",
    ],
)
def test_invalid_fen(invalid_fen: str) -> None:
    """Structurally invalid FEN gets rejected before a game is created"""
    with pytest.raises(ValidationError, match="FEN"):
        CreateGameRequest(white_id=1, black_id=2, starting_fen=invalid_fen)


def test_cannot_play_against_yourself() -> None:
    with pytest.raises(ValidationError, match="against themselves"):
        CreateGameRequest(white_id=7, black_id=7)


# -- Validation - MoveRequest --
@pytest.mark.parametrize("notation, expected", [("e2e4", "e2e4"), (" Nf3 ", "Nf3"), ("exd8=Q+", "exd8=Q+"), ("O-O-O", "O-O-O")])
def test_valid_notation(notation: str, expected: str) -> None:
    request = MoveRequest(game_id=1, participant_id=2, notation=notation)
    assert request.notation == expected


@pytest.mark.parametrize("notation", ["", "   ", "e2 e4", "a" * 13])
def test_invalid_notation(notation: str) -> None:
    with pytest.raises(ValidationError):
        MoveRequest(game_id=1, participant_id=2, notation=notation)


# -- Outgoing models --
def test_update_message_for_a_move() -> None:
    update = GameUpdate(game_id=1, white_id=1, black_id=2, fen="fen", ply_count=1, last_move="g1f3", last_move_san="Nf3")
    assert update.message() == "Played Nf3, FEN is now fen"


def test_update_message_for_a_win() -> None:
    update = GameUpdate(
        game_id=1,
        white_id=1,
        black_id=2,
        fen="fen",
        ply_count=7,
        last_move="h5f7",
        last_move_san="Qxf7#",
        ended=True,
        winner=Color.WHITE,
        termination=Termination.CHECKMATE,
    )
    assert update.message() == "Played Qxf7#, FEN is now fen\nGame is over: white wins by checkmate."


def test_update_message_for_a_draw() -> None:
    update = GameUpdate(
        game_id=1,
        white_id=1,
        black_id=2,
        fen="fen",
        ply_count=8,
        ended=True,
        termination=Termination.DRAW_RULE,
        draw_reason=DrawReason.THREEFOLD_REPETITION,
    )
    assert update.message() == "Game is over: draw by draw rule (threefold repetition)."


def test_update_message_without_changes() -> None:
    update = GameUpdate(game_id=1, white_id=1, black_id=2, fen="fen", ply_count=0)
    assert update.message() == "FEN is fen"


def test_game_ended_event() -> None:
    event = GameEndedEvent(game_id=3, white_id=1, black_id=2, termination=Termination.TIMEOUT, winner=Color.BLACK)
    assert event.winner == Color.BLACK
    assert event.model_dump()["termination"] == "timeout"

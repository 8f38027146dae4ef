"""Unit tests for pairchess/db/database.py"""

from sqlalchemy import inspect

from pairchess.chess.fen import STARTING_FEN
from pairchess.core.config import Settings
from pairchess.core.models import IN_PROGRESS
from pairchess.db.database import build_store, make_engine


def test_make_engine_creates_tables(tmp_path) -> None:
    engine = make_engine(Settings(database_url=f"sqlite:///{tmp_path / 'games.db'}"))
    assert {"users", "games", "moves"} <= set(inspect(engine).get_table_names())


def test_build_store_from_settings(tmp_path) -> None:
    settings = Settings(database_url=f"sqlite:///{tmp_path / 'games.db'}", store_retries=1, store_retry_delay=0)
    store = build_store(settings)
    assert store.retries == 1

    game_id = store.create_game(1, 2, STARTING_FEN)
    store.record_move(game_id, 0, "e2e4", STARTING_FEN, IN_PROGRESS)

    # a second store on the same file sees what the first one wrote
    reopened = build_store(settings)
    assert reopened.load_game(game_id).white_id == 1
    assert [entry.uci for entry in reopened.load_moves(game_id)] == ["e2e4"]

"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

import threading
from typing import Iterator, Optional

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from pairchess.chess.fen import STARTING_FEN
from pairchess.core.exceptions import ConflictError, GameNotFoundError, StoreError
from pairchess.core.models import IN_PROGRESS, GameRecord, GameResult, MoveRecord
from pairchess.db.schema import Base
from pairchess.db.sql_repository import SQLSessionStore

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture
def session_factory() -> Iterator[sessionmaker[Session]]:
    """Connection to a test database. Tables are removed at teardown to make unit tests of the store independent of each other."""
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sql_store(session_factory: sessionmaker[Session]) -> SQLSessionStore:
    return SQLSessionStore(session_factory, retries=2, retry_delay=0)


# --- MOCK DEPENDENCIES ----
class MockStore:
    """Mock the SessionStore using dictionaries. Writes can be made to fail to test rollbacks."""

    def __init__(self) -> None:
        self.games: dict[int, GameRecord] = {}
        self.moves: dict[int, list[MoveRecord]] = {}
        self.fail_writes = False
        self.write_count = 0
        self._lock = threading.Lock()

    def create_game(self, white_id: int, black_id: int, starting_fen: str) -> int:
        with self._lock:
            game_id = len(self.games) + 1
            self.games[game_id] = GameRecord(
                id=game_id,
                white_id=white_id,
                black_id=black_id,
                fen=starting_fen,
                result=IN_PROGRESS,
                start_fen=None if starting_fen == STARTING_FEN else starting_fen,
            )
            self.moves[game_id] = []
            return game_id

    def append_move(self, game_id: int, ply: int, uci: str) -> None:
        with self._lock:
            self._write()
            self._append(game_id, ply, uci)

    def update_game_state(self, game_id: int, fen: str, result: GameResult) -> None:
        with self._lock:
            self._write()
            self._update(game_id, fen, result)

    def record_move(self, game_id: int, ply: int, uci: str, fen: str, result: GameResult) -> None:
        with self._lock:
            self._write()
            self._append(game_id, ply, uci)
            self._update(game_id, fen, result)

    def load_game(self, game_id: int) -> GameRecord:
        if game_id not in self.games:
            raise GameNotFoundError(f"Game with {game_id=} not found.")
        return self.games[game_id]

    def load_moves(self, game_id: int) -> list[MoveRecord]:
        self.load_game(game_id)
        return list(self.moves[game_id])

    def find_active_game(self, participant_id: int) -> Optional[GameRecord]:
        return next(
            (
                game
                for game in self.games.values()
                if participant_id in (game.white_id, game.black_id) and not game.ended
            ),
            None,
        )

    def _write(self) -> None:
        if self.fail_writes:
            raise StoreError("database unavailable")
        self.write_count += 1

    def _append(self, game_id: int, ply: int, uci: str) -> None:
        if ply != len(self.moves[game_id]):
            raise ConflictError(f"ply {ply} conflicts with {len(self.moves[game_id])} stored moves")
        self.moves[game_id].append(MoveRecord(game_id, ply, uci))

    def _update(self, game_id: int, fen: str, result: GameResult) -> None:
        game = self.games[game_id]
        self.games[game_id] = GameRecord(
            id=game.id,
            white_id=game.white_id,
            black_id=game.black_id,
            fen=fen,
            result=result,
            start_fen=game.start_fen,
        )


@pytest.fixture
def mock_store() -> MockStore:
    return MockStore()


class RecordingObserver:
    """Collects everything the GameService publishes."""

    def __init__(self) -> None:
        self.updates = []
        self.ended_events = []

    def publish(self, update) -> None:
        self.updates.append(update)

    def game_ended(self, event) -> None:
        self.ended_events.append(event)


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()

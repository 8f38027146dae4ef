"""Protocol for the Session Store (implemented with SQLAlchemy in sql_repository.py, mocked in the tests)"""

from typing import Optional, Protocol

from pairchess.core.models import GameId, GameRecord, GameResult, MoveRecord, ParticipantId


class SessionStore(Protocol):
    """Durable record of all games and their move logs"""

    def create_game(self, white_id: ParticipantId, black_id: ParticipantId, starting_fen: str) -> GameId:
        """Store a new game (with both participants) in its starting position and return its ID."""
        ...

    def append_move(self, game_id: GameId, ply: int, uci: str) -> None:
        """Add a move to the log. Raises ConflictError if the ply already exists or is not the next one."""
        ...

    def update_game_state(self, game_id: GameId, fen: str, result: GameResult) -> None:
        """Overwrite the current position and result of a game."""
        ...

    def record_move(self, game_id: GameId, ply: int, uci: str, fen: str, result: GameResult) -> None:
        """append_move + update_game_state in one transaction."""
        ...

    def load_game(self, game_id: GameId) -> GameRecord:
        """Raises GameNotFoundError for unknown IDs."""
        ...

    def load_moves(self, game_id: GameId) -> list[MoveRecord]:
        """The move log, ordered by ply."""
        ...

    def find_active_game(self, participant_id: ParticipantId) -> Optional[GameRecord]:
        """The participant's unfinished game, if any."""
        ...

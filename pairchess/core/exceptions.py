"""
All errors raised by the engine.

Everything derives from GameError, so the transport layer can catch a single type and report the message back.
"""


class GameError(Exception):
    """Base class of every error the engine reports to its callers."""


# --- MALFORMED INPUT ---
class FormatError(GameError):
    """Untrusted input (FEN, move notation, square name) could not be parsed."""


class InvalidFENError(FormatError):
    pass


class InvalidMoveNotationError(FormatError):
    pass


class InvalidRequestError(GameError, ValueError):
    """Raised from request validators. Being a ValueError lets pydantic turn it into a ValidationError."""


# --- CHESS RULES ---
class IllegalMoveError(GameError):
    """The move breaks the rules of chess. The position it was tried on stays untouched."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


# --- GAME SESSION ---
class SessionError(GameError):
    """The request was rejected by the game session. No state was changed."""


class NotYourTurnError(SessionError):
    pass


class GameEndedError(SessionError):
    pass


class MoveRejectedError(SessionError):
    """Session level wrapper around an IllegalMoveError."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Illegal move: {reason}")
        self.reason = reason


class NotAParticipantError(SessionError):
    pass


class SessionBusyError(SessionError):
    """The caller gave up waiting for the game's exclusion. Nothing was attempted."""


class AlreadyPlayingError(SessionError):
    """Matchmaking: the participant is already waiting or playing."""


# --- PERSISTENCE ---
class StoreError(GameError):
    """A durable write or read failed."""


class ConflictError(StoreError):
    """A move was written at a ply that already exists (or would leave a gap)."""


class GameNotFoundError(StoreError):
    pass


class ConsistencyError(StoreError):
    """
    The stored move log does not replay to the stored game state.
    Requires manual intervention: the game is never repaired automatically.
    """

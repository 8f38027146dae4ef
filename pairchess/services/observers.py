"""Collaborators that get told about game changes (the transport, matchmaking)"""

from typing import Protocol

from pairchess.api.models import GameEndedEvent, GameUpdate


class GameObserver(Protocol):
    def publish(self, update: GameUpdate) -> None:
        """Relay a new position and/or result to both participants."""
        ...

    def game_ended(self, event: GameEndedEvent) -> None:
        """Called exactly once per game, after the final update was published."""
        ...

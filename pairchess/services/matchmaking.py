"""
First come, first served pairing.

The first participant asking for a game waits; the next one gets paired with them. The one who waited plays white.
Participants are released back to the pool when their game ends (the Matchmaker observes the GameService).
"""

import logging
import threading
from collections import deque
from typing import Optional

from pairchess.api.models import CreateGameRequest, GameEndedEvent, GameUpdate
from pairchess.core.exceptions import AlreadyPlayingError
from pairchess.core.models import GameId, ParticipantId
from pairchess.services.game_service import GameService

logger = logging.getLogger(__name__)


class Matchmaker:
    def __init__(self, service: GameService) -> None:
        self.service = service
        self._lock = threading.Lock()
        self._waiting: deque[ParticipantId] = deque()
        self._playing: dict[ParticipantId, GameId] = {}
        service.subscribe(self)

    def request_game(self, participant_id: ParticipantId) -> Optional[GameUpdate]:
        """Returns the new game if an opponent was waiting, otherwise None (the participant now waits)."""
        with self._lock:
            self._assert_available(participant_id)

            if not self._waiting:
                self._waiting.append(participant_id)
                logger.debug("Participant %s is waiting for an opponent", participant_id)
                return None

            opponent = self._waiting.popleft()
            update = self.service.create_game(CreateGameRequest(white_id=opponent, black_id=participant_id))
            self._playing[opponent] = update.game_id
            self._playing[participant_id] = update.game_id
            logger.info("Paired %s (white) with %s (black) in game %s", opponent, participant_id, update.game_id)
            return update

    def cancel(self, participant_id: ParticipantId) -> bool:
        """Leave the queue. False if the participant was not waiting."""
        with self._lock:
            if participant_id not in self._waiting:
                return False
            self._waiting.remove(participant_id)
            return True

    def is_waiting(self, participant_id: ParticipantId) -> bool:
        with self._lock:
            return participant_id in self._waiting

    def game_of(self, participant_id: ParticipantId) -> Optional[GameId]:
        with self._lock:
            if participant_id in self._playing:
                return self._playing[participant_id]
        active = self.service.store.find_active_game(participant_id)
        return None if active is None else active.id

    # -- GameObserver ---
    def publish(self, update: GameUpdate) -> None:
        pass

    def game_ended(self, event: GameEndedEvent) -> None:
        """Release both participants back to the pool."""
        with self._lock:
            for participant_id in (event.white_id, event.black_id):
                if self._playing.get(participant_id) == event.game_id:
                    del self._playing[participant_id]

    def _assert_available(self, participant_id: ParticipantId) -> None:
        if participant_id in self._waiting:
            raise AlreadyPlayingError(f"Participant {participant_id} is already waiting for an opponent.")

        if participant_id in self._playing:
            raise AlreadyPlayingError(
                f"Participant {participant_id} is already playing game {self._playing[participant_id]}."
            )

        # after a restart the in-memory pool is empty, the store still knows about unfinished games
        active = self.service.store.find_active_game(participant_id)
        if active is not None:
            self._playing[participant_id] = active.id
            raise AlreadyPlayingError(f"Participant {participant_id} is already playing game {active.id}.")

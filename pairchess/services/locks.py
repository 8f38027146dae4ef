"""Mutual exclusion scoped to a single game: operations on different games never wait for each other."""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

from pairchess.core.exceptions import SessionBusyError
from pairchess.core.models import GameId


@dataclass
class _GameLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    # callers holding or waiting for the lock
    users: int = 0


class GameLockTable:
    """
    One lock per game id, kept only while somebody holds or waits for it.
    The registry lock is only held while looking up, creating or dropping a game's entry.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._locks: dict[GameId, _GameLock] = {}

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)

    def is_held(self, game_id: GameId) -> bool:
        with self._registry_lock:
            entry = self._locks.get(game_id)
            return entry is not None and entry.lock.locked()

    @contextmanager
    def hold(self, game_id: GameId, timeout: Optional[float] = None) -> Iterator[None]:
        """
        Hold the game's exclusion for the duration of the block.
        With a timeout the caller gives up (SessionBusyError) instead of waiting longer; nothing has been done at that point.
        """
        entry = self._check_out(game_id)
        try:
            acquired = entry.lock.acquire() if timeout is None else entry.lock.acquire(timeout=timeout)
            if not acquired:
                raise SessionBusyError(f"Game {game_id} is busy, gave up after {timeout}s.")
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._check_in(game_id, entry)

    def _check_out(self, game_id: GameId) -> _GameLock:
        with self._registry_lock:
            entry = self._locks.setdefault(game_id, _GameLock())
            entry.users += 1
            return entry

    def _check_in(self, game_id: GameId, entry: _GameLock) -> None:
        with self._registry_lock:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[game_id]

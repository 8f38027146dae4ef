"""
Clock Supervisor
---

Keeps a time budget per side for every game with a clock. The side to move has its clock running;
once it reaches zero the supervisor reports a timeout. Flag checks happen in tick(), which a background
thread calls at a fixed interval (or the tests call directly with a fake time source).
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from pairchess.core.exceptions import GameError
from pairchess.core.models import GameId
from pairchess.core.shared_types import Color

logger = logging.getLogger(__name__)

TimeoutHandler = Callable[[GameId, Color], object]


@dataclass
class GameClock:
    remaining: dict[Color, float]
    running: Color
    started_at: float
    increment: float = 0.0
    # set once tick() handed the timeout to the handler; the clock stays until the game is stopped
    flag_reported: bool = False

    def time_left(self, color: Color, now: float) -> float:
        if color != self.running:
            return self.remaining[color]
        return self.remaining[color] - (now - self.started_at)


class ClockSupervisor:
    def __init__(self, on_timeout: TimeoutHandler, time_source: Callable[[], float] = time.monotonic) -> None:
        self.on_timeout = on_timeout
        self.time_source = time_source
        self._lock = threading.Lock()
        self._clocks: dict[GameId, GameClock] = {}
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(
        self,
        game_id: GameId,
        budget_seconds: float,
        increment_seconds: float = 0.0,
        first_to_move: Color = Color.WHITE,
    ) -> None:
        with self._lock:
            self._clocks[game_id] = GameClock(
                remaining={Color.WHITE: budget_seconds, Color.BLACK: budget_seconds},
                running=first_to_move,
                started_at=self.time_source(),
                increment=increment_seconds,
            )
        logger.debug("Clock started for game %s: %ss + %ss", game_id, budget_seconds, increment_seconds)

    def on_move(self, game_id: GameId, mover: Color) -> None:
        """Charge the mover for the time spent, add the increment and start the opponent's clock."""
        with self._lock:
            clock = self._clocks.get(game_id)
            if clock is None:
                return
            now = self.time_source()
            clock.remaining[mover] = clock.time_left(mover, now) + clock.increment
            clock.running = mover.opponent
            clock.started_at = now
            clock.flag_reported = False

    def stop(self, game_id: GameId) -> None:
        with self._lock:
            self._clocks.pop(game_id, None)

    def remaining(self, game_id: GameId) -> Optional[dict[Color, float]]:
        with self._lock:
            clock = self._clocks.get(game_id)
            if clock is None:
                return None
            now = self.time_source()
            return {color: max(0.0, clock.time_left(color, now)) for color in Color}

    def is_flagged(self, game_id: GameId, color: Color) -> bool:
        """Has the given side run out of time?"""
        with self._lock:
            clock = self._clocks.get(game_id)
            return clock is not None and clock.time_left(color, self.time_source()) <= 0

    def tick(self) -> list[tuple[GameId, Color]]:
        """
        Report every side whose time ran out. The handler is called outside the supervisor's lock:
        it takes the game's own lock, and a move holding that lock may be calling on_move right now.

        An expired clock is reported once but kept: until the game is stopped, is_flagged keeps telling a move
        that gets hold of the game before the handler does that its side has already lost on time.
        """
        with self._lock:
            now = self.time_source()
            expired = [
                (game_id, clock.running, clock)
                for game_id, clock in self._clocks.items()
                if not clock.flag_reported and clock.time_left(clock.running, now) <= 0
            ]
            for _, _, clock in expired:
                clock.flag_reported = True

        reported: list[tuple[GameId, Color]] = []
        for game_id, losing_side, clock in expired:
            logger.info("Game %s: %s ran out of time", game_id, losing_side)
            reported.append((game_id, losing_side))
            try:
                self.on_timeout(game_id, losing_side)
            except GameError:
                logger.exception("Timeout of game %s could not be recorded, retrying on the next tick", game_id)
                with self._lock:
                    clock.flag_reported = False
        return reported

    # --- BACKGROUND THREAD ---
    def run_in_background(self, interval: float) -> None:
        if self._thread is not None:
            return
        self._stopped.clear()
        self._thread = threading.Thread(target=self._loop, args=(interval,), name="clock-supervisor", daemon=True)
        self._thread.start()

    def shutdown(self) -> None:
        self._stopped.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _loop(self, interval: float) -> None:
        while not self._stopped.wait(interval):
            self.tick()

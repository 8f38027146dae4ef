"""Unit tests for pairchess/services/locks.py"""

import threading

import pytest

from pairchess.core.exceptions import SessionBusyError
from pairchess.services.locks import GameLockTable


def test_busy_game_gives_up_after_timeout() -> None:
    table = GameLockTable()
    with table.hold(1):
        assert table.is_held(1)
        with pytest.raises(SessionBusyError):
            with table.hold(1, timeout=0.01):
                pytest.fail("must not enter a busy game")
        # the caller who gave up does not take the entry away from the one holding it
        assert table.is_held(1)
    assert not table.is_held(1)


def test_lock_released_after_error() -> None:
    table = GameLockTable()
    with pytest.raises(RuntimeError):
        with table.hold(1):
            raise RuntimeError("boom")
    assert not table.is_held(1)
    with table.hold(1, timeout=0.01):
        pass


def test_entries_are_dropped_when_unused() -> None:
    """A long running service touches many games: only the ones in use keep an entry"""
    table = GameLockTable()
    for game_id in range(100):
        with table.hold(game_id):
            assert len(table) == 1
    assert len(table) == 0


def test_waiting_caller_keeps_the_entry() -> None:
    """The holder leaving must not drop the lock a second caller is waiting for"""
    table = GameLockTable()
    entered = threading.Event()
    release = threading.Event()
    order = []

    def hold_first() -> None:
        with table.hold(1):
            entered.set()
            release.wait(timeout=5)
            order.append("first")

    def hold_second() -> None:
        with table.hold(1):
            order.append("second")

    first = threading.Thread(target=hold_first)
    first.start()
    assert entered.wait(timeout=5)
    second = threading.Thread(target=hold_second)
    second.start()
    release.set()
    first.join()
    second.join()

    assert order == ["first", "second"]
    assert len(table) == 0


def test_other_games_do_not_wait() -> None:
    """While game 1 is held by another thread, game 2 can still be entered"""
    table = GameLockTable()
    entered = threading.Event()
    release = threading.Event()

    def hold_game_one() -> None:
        with table.hold(1):
            entered.set()
            release.wait(timeout=5)

    worker = threading.Thread(target=hold_game_one)
    worker.start()
    try:
        assert entered.wait(timeout=5)
        with table.hold(2, timeout=0.5):
            pass
        with pytest.raises(SessionBusyError):
            with table.hold(1, timeout=0.01):
                pass
    finally:
        release.set()
        worker.join()

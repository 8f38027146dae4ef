"""Unit tests for pairchess/services/matchmaking.py"""

import pytest

from pairchess.api.models import ResignRequest
from pairchess.core.exceptions import AlreadyPlayingError
from pairchess.services.game_service import GameService
from pairchess.services.matchmaking import Matchmaker


@pytest.fixture
def matchmaker(mock_store) -> Matchmaker:
    return Matchmaker(GameService(mock_store))


def test_first_come_first_served(matchmaker: Matchmaker) -> None:
    """The participant who waited plays white"""
    assert matchmaker.request_game(10) is None
    assert matchmaker.is_waiting(10)

    update = matchmaker.request_game(20)
    assert update is not None
    assert update.white_id == 10
    assert update.black_id == 20
    assert not matchmaker.is_waiting(10)
    assert matchmaker.game_of(10) == update.game_id
    assert matchmaker.game_of(20) == update.game_id


def test_pairs_in_arrival_order(matchmaker: Matchmaker) -> None:
    matchmaker.request_game(1)
    first = matchmaker.request_game(2)
    matchmaker.request_game(3)
    second = matchmaker.request_game(4)
    assert (first.white_id, first.black_id) == (1, 2)
    assert (second.white_id, second.black_id) == (3, 4)
    assert first.game_id != second.game_id


def test_cannot_wait_twice(matchmaker: Matchmaker) -> None:
    matchmaker.request_game(1)
    with pytest.raises(AlreadyPlayingError):
        matchmaker.request_game(1)


def test_cannot_queue_while_playing(matchmaker: Matchmaker) -> None:
    matchmaker.request_game(1)
    matchmaker.request_game(2)
    with pytest.raises(AlreadyPlayingError):
        matchmaker.request_game(1)


def test_released_when_game_ends(matchmaker: Matchmaker) -> None:
    matchmaker.request_game(1)
    update = matchmaker.request_game(2)
    matchmaker.service.resign(ResignRequest(game_id=update.game_id, participant_id=2))

    assert matchmaker.game_of(1) is None
    assert matchmaker.game_of(2) is None
    assert matchmaker.request_game(2) is None
    assert matchmaker.request_game(1).white_id == 2


def test_cancel(matchmaker: Matchmaker) -> None:
    matchmaker.request_game(1)
    assert matchmaker.cancel(1)
    assert not matchmaker.is_waiting(1)
    assert not matchmaker.cancel(1)

    # the next participant waits instead of being paired
    assert matchmaker.request_game(2) is None


def test_unfinished_game_in_store_blocks_pairing(mock_store) -> None:
    """After a restart the queue is empty, but the store still knows who is playing"""
    before = Matchmaker(GameService(mock_store))
    before.request_game(1)
    update = before.request_game(2)

    after = Matchmaker(GameService(mock_store))
    assert after.game_of(2) == update.game_id
    with pytest.raises(AlreadyPlayingError):
        after.request_game(1)
    assert after.game_of(1) == update.game_id

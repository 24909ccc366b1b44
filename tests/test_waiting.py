"""Tests for waiting.py: the bounded game queue."""

from datetime import datetime

import pytest

from shuttleq.errors import CapacityError, ValidationError
from shuttleq.models import Game, Party, Player, PlayerStatus
from shuttleq.waiting import DEFAULT_CAPACITY, WaitingQueue


def _make_game(seq, court_id=None):
    return Game(id=f"g{seq}", first_party=Party([f"a{seq}"]),
                second_party=Party([f"b{seq}"]), sequence_index=seq,
                started_at=datetime(2026, 3, 9, 18, 0), court_id=court_id)


class TestWaitingQueue:
    def test_fifo(self):
        queue = WaitingQueue()
        for i in range(3):
            queue.enqueue(_make_game(i), [])
        assert len(queue) == 3
        assert queue.peek().game.id == "g0"
        assert [queue.dequeue().game.id for _ in range(3)] == ["g0", "g1", "g2"]
        assert queue.dequeue() is None
        assert queue.peek() is None

    def test_capacity(self):
        queue = WaitingQueue()
        assert queue.capacity == DEFAULT_CAPACITY
        for i in range(DEFAULT_CAPACITY):
            queue.enqueue(_make_game(i), [])
        assert queue.is_full()
        with pytest.raises(CapacityError):
            queue.enqueue(_make_game(99), [])
        assert len(queue) == DEFAULT_CAPACITY

    def test_disabled(self):
        queue = WaitingQueue(0)
        assert not queue.enabled
        with pytest.raises(CapacityError):
            queue.enqueue(_make_game(0), [])

    def test_negative_capacity(self):
        with pytest.raises(ValidationError):
            WaitingQueue(-1)

    def test_game_with_court(self):
        queue = WaitingQueue()
        with pytest.raises(ValidationError):
            queue.enqueue(_make_game(0, court_id="c1"), [])

    def test_push_front(self):
        queue = WaitingQueue()
        queue.enqueue(_make_game(0), [])
        queue.enqueue(_make_game(1), [])
        entry = queue.dequeue()
        queue.push_front(entry)
        assert [e.game.id for e in queue] == ["g0", "g1"]

    def test_remove(self):
        queue = WaitingQueue()
        for i in range(3):
            queue.enqueue(_make_game(i), [])
        assert queue.remove("g1").game.id == "g1"
        assert [e.game.id for e in queue] == ["g0", "g2"]
        with pytest.raises(ValidationError):
            queue.remove("g1")

    def test_entry_keeps_player_snapshot(self):
        queue = WaitingQueue()
        player = Player(id="a0", name="Alice", status=PlayerStatus.playing)
        entry = queue.enqueue(_make_game(0), [player])
        player.status = PlayerStatus.available
        assert entry.players[0] is not player
        assert entry.players[0].status == PlayerStatus.playing

"""Waiting queue: games built while every court is busy."""

import logging
from collections import deque
from dataclasses import replace
from typing import Optional

from shuttleq.errors import CapacityError, ValidationError
from shuttleq.models import Game, Player, WaitingQueueEntry

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 6


class WaitingQueue:
    """Bounded FIFO of games without a court."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 0:
            raise ValidationError(f"Waiting queue capacity must be >= 0, got {capacity}")
        self.capacity = capacity
        self._entries: deque[WaitingQueueEntry] = deque()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))

    @property
    def enabled(self) -> bool:
        return self.capacity > 0

    def is_full(self) -> bool:
        return len(self._entries) >= self.capacity

    def enqueue(self, game: Game, players: list[Player]) -> WaitingQueueEntry:
        if game.court_id is not None:
            raise ValidationError(f"Game {game.id} is already on a court")
        if self.is_full():
            raise CapacityError(f"Waiting queue is full ({self.capacity} games)")
        entry = WaitingQueueEntry(game=game, players=[replace(p) for p in players])
        self._entries.append(entry)
        logger.info(
            f"Game {game.sequence_index} queued ({len(self._entries)}/{self.capacity})"
        )
        return entry

    def peek(self) -> Optional[WaitingQueueEntry]:
        return self._entries[0] if self._entries else None

    def dequeue(self) -> Optional[WaitingQueueEntry]:
        return self._entries.popleft() if self._entries else None

    def push_front(self, entry: WaitingQueueEntry) -> None:
        """Put an entry back at the head, e.g. when no court could take it."""
        self._entries.appendleft(entry)

    def remove(self, game_id: str) -> WaitingQueueEntry:
        for entry in self._entries:
            if entry.game.id == game_id:
                self._entries.remove(entry)
                return entry
        raise ValidationError(f"No queued game {game_id}")

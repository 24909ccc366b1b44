"""Court allocator: the fixed court pool, games on courts, and locking.

Court status transitions:

    available   -> playing      start_game
    playing     -> available    end_game
    playing     -> unavailable  end_game, when locked during play
    available  <-> unavailable  toggle_lock

Anything else raises StateConflictError.
"""

import logging
from typing import Iterable, Optional

from shuttleq.errors import StateConflictError, ValidationError
from shuttleq.models import Court, CourtSlot, CourtStatus, Game, Player
from shuttleq.players import PlayerRegistry

logger = logging.getLogger(__name__)


class CourtAllocator:
    """Maps court id to its CourtSlot."""

    def __init__(self, players: PlayerRegistry):
        self._players = players
        self._slots: dict[str, CourtSlot] = {}

    def provision(self, courts: Iterable[Court]) -> None:
        """Set up the court pool. Runs once; the pool is fixed afterwards."""
        if self._slots:
            raise ValidationError("Courts are already provisioned")
        slots: dict[str, CourtSlot] = {}
        for court in courts:
            if court.id in slots:
                raise ValidationError(f"Duplicate court id: {court.id}")
            if court.status is CourtStatus.playing:
                raise ValidationError(f"{court.name} cannot start out playing")
            slots[court.id] = CourtSlot(court=court)
        for slot in slots.values():
            if slot.court.locked:
                slot.court.status = CourtStatus.unavailable
        self._slots = slots
        logger.info(f"Provisioned {len(slots)} courts")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._slots)

    def get_slot(self, court_id: str) -> CourtSlot:
        slot = self._slots.get(court_id)
        if slot is None:
            raise ValidationError(f"Unknown court: {court_id}")
        return slot

    def get_court(self, court_id: str) -> Court:
        return self.get_slot(court_id).court

    def list_courts(self) -> list[Court]:
        return sorted((s.court for s in self._slots.values()),
                      key=lambda c: c.display_index)

    def active_games(self) -> list[Game]:
        return [s.game for s in self._slots.values() if s.game is not None]

    def get_next_available_court(self) -> Optional[Court]:
        """Lowest display index among unlocked, available courts."""
        for court in self.list_courts():
            if court.is_allocatable:
                return court
        return None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start_game(self, court_id: str, game: Game, players: list[Player]) -> CourtSlot:
        slot = self.get_slot(court_id)
        court = slot.court
        if not court.is_allocatable or slot.is_active:
            raise StateConflictError(
                f"{court.name} is {court.status.value}"
                f"{' and locked' if court.locked else ''}; cannot start a game"
            )
        game.court_id = court.id
        court.status = CourtStatus.playing
        slot.game = game
        slot.players = list(players)
        logger.info(
            f"Game {game.sequence_index} started on {court.name}: "
            f"{', '.join(p.name for p in players)}"
        )
        return slot

    def end_game(self, court_id: str, round_index: int) -> Game:
        """Finish the game on a court and requeue its players into ``round_index``."""
        slot = self.get_slot(court_id)
        court = slot.court
        if slot.game is None:
            raise StateConflictError(f"{court.name} has no active game")

        game = slot.game
        released = list(game.player_ids)
        keys = self._players.plan_requeue(released, round_index)
        self._players.apply_requeue(keys)

        slot.game = None
        slot.players = []
        court.status = CourtStatus.unavailable if court.locked else CourtStatus.available
        logger.info(
            f"Game {game.sequence_index} ended on {court.name}; "
            f"court is now {court.status.value}"
        )
        return game

    def toggle_lock(self, court_id: str) -> Court:
        """Flip the lock. A playing court keeps playing until its game ends."""
        slot = self.get_slot(court_id)
        court = slot.court
        court.locked = not court.locked
        if not slot.is_active:
            court.status = CourtStatus.unavailable if court.locked else CourtStatus.available
        logger.info(f"{court.name} {'locked' if court.locked else 'unlocked'}")
        return court

    def set_score(self, court_id: str, first: int, second: int) -> Game:
        slot = self.get_slot(court_id)
        if slot.game is None:
            raise StateConflictError(f"{slot.court.name} has no active game")
        if first < 0 or second < 0:
            raise ValidationError(f"Scores must not be negative: {first}-{second}")
        slot.game.first_party.score = first
        slot.game.second_party.score = second
        return slot.game

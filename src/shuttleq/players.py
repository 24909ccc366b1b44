"""Player registry: players, their status and their fairness ordering."""

import logging
import uuid
from datetime import date, datetime
from typing import Callable, Iterable, Optional

from shuttleq.errors import (
    ConfigurationLimitError, StateConflictError, ValidationError,
)
from shuttleq.models import Player, PlayerStatus
from shuttleq.queue_key import (
    generate_queue_key, queue_key_order, queue_key_position, queue_key_round,
)

logger = logging.getLogger(__name__)


class PlayerRegistry:
    """Owns every Player, keyed by id.

    Players are never removed; retiring one keeps it resolvable from the games
    that reference it.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now,
                 since: date | None = None):
        self._players: dict[str, Player] = {}
        self._clock = clock
        self._since = since if since is not None else clock().date()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._players)

    def __contains__(self, player_id: str) -> bool:
        return player_id in self._players

    def find(self, player_id: str) -> Optional[Player]:
        return self._players.get(player_id)

    def get(self, player_id: str) -> Player:
        player = self._players.get(player_id)
        if player is None:
            raise ValidationError(f"Unknown player: {player_id}")
        return player

    def find_by_name(self, name: str) -> Optional[Player]:
        name = name.strip()
        for player in self._players.values():
            if player.name == name:
                return player
        return None

    def list_players(self, include_retired: bool = False) -> list[Player]:
        """All players in registration order."""
        players = sorted(self._players.values(), key=lambda p: p.index)
        if include_retired:
            return players
        return [p for p in players if p.status is not PlayerStatus.retired]

    def list_available(self) -> list[Player]:
        """Available players, longest-waiting first."""
        available = [p for p in self._players.values() if p.is_available]
        return sorted(available, key=lambda p: (queue_key_order(p.queue_key), p.index))

    def list_available_in_round(self, round_index: int) -> list[Player]:
        return [p for p in self.list_available()
                if queue_key_round(p.queue_key) == round_index]

    def count_in_round(self, round_index: int) -> int:
        """Number of non-retired players whose key falls in ``round_index``."""
        return sum(
            1 for p in self._players.values()
            if p.status is not PlayerStatus.retired
            and p.queue_key and queue_key_round(p.queue_key) == round_index
        )

    def next_position(self, round_index: int) -> int:
        """First free position at the back of ``round_index``."""
        positions = [
            queue_key_position(p.queue_key) for p in self._players.values()
            if p.queue_key and queue_key_round(p.queue_key) == round_index
        ]
        return max(positions) + 1 if positions else 0

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _key(self, round_index: int, position: int) -> str:
        return generate_queue_key(round_index, position,
                                  now=self._clock(), since=self._since)

    def register(self, name: str, round_index: int) -> Player:
        """Add a new available player at the back of ``round_index``."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Player name must not be empty")
        if self.find_by_name(name) is not None:
            raise ValidationError(f"Player name already taken: {name}")

        queue_key = self._key(round_index, self.next_position(round_index))
        player = Player(
            id=str(uuid.uuid4()),
            name=name,
            status=PlayerStatus.available,
            queue_key=queue_key,
            index=len(self._players),
        )
        self._players[player.id] = player
        logger.info(f"Registered player {player.name} ({player.id}) key={queue_key}")
        return player

    def retire(self, player_id: str) -> Player:
        player = self.get(player_id)
        if player.status is PlayerStatus.retired:
            raise StateConflictError(f"{player.name} is already retired")
        if player.status is PlayerStatus.playing:
            raise StateConflictError(f"{player.name} is playing and cannot retire")
        player.status = PlayerStatus.retired
        logger.info(f"Retired player {player.name}")
        return player

    def reinstate(self, player_id: str, round_index: int) -> Player:
        """Bring a retired player back at the back of ``round_index``."""
        player = self.get(player_id)
        if player.status is not PlayerStatus.retired:
            raise StateConflictError(
                f"{player.name} is {player.status.value}, not retired"
            )
        queue_key = self._key(round_index, self.next_position(round_index))
        player.queue_key = queue_key
        player.status = PlayerStatus.available
        logger.info(f"Reinstated player {player.name} key={queue_key}")
        return player

    def set_status(self, player_id: str, status: PlayerStatus) -> Player:
        """Move a player between available and unavailable.

        Playing and retired are reached through games and retirement only.
        The queue key is kept, so a player back from a break keeps their place.
        """
        player = self.get(player_id)
        if status not in (PlayerStatus.available, PlayerStatus.unavailable):
            raise ValidationError(
                f"Status {status.value} cannot be set directly"
            )
        if player.status not in (PlayerStatus.available, PlayerStatus.unavailable):
            raise StateConflictError(
                f"{player.name} is {player.status.value}; status cannot change"
            )
        player.status = status
        return player

    def mark_playing(self, player_ids: Iterable[str]) -> None:
        players = [self.get(pid) for pid in player_ids]
        for player in players:
            if not player.is_available:
                raise StateConflictError(
                    f"{player.name} is {player.status.value}, not available"
                )
        for player in players:
            player.status = PlayerStatus.playing

    def recompute_queue_key(self, player_id: str, round_index: int,
                            position: int) -> Player:
        player = self.get(player_id)
        player.queue_key = self._key(round_index, position)
        return player

    def plan_requeue(self, player_ids: list[str], round_index: int) -> dict[str, str]:
        """Compute release keys without touching any player.

        Raises ConfigurationLimitError before anything changes if a key would
        not fit.
        """
        for pid in player_ids:
            self.get(pid)
        base = self.next_position(round_index)
        now = self._clock()
        keys = {}
        for order, pid in enumerate(player_ids):
            keys[pid] = generate_queue_key(round_index, base + order,
                                           now=now, since=self._since)
        return keys

    def apply_requeue(self, keys: dict[str, str]) -> list[Player]:
        released = []
        for pid, queue_key in keys.items():
            player = self.get(pid)
            player.queue_key = queue_key
            if player.status is PlayerStatus.playing:
                player.status = PlayerStatus.available
            released.append(player)
        return released

    def requeue(self, player_ids: list[str], round_index: int) -> list[Player]:
        """Release players back into the queue at the back of ``round_index``.

        Positions continue after the players already queued for that round,
        in release order.
        """
        try:
            keys = self.plan_requeue(player_ids, round_index)
        except ConfigurationLimitError:
            logger.error(f"Cannot requeue {len(player_ids)} players into round {round_index}")
            raise
        return self.apply_requeue(keys)

"""Pair registry: voluntary partnerships between two players."""

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from shuttleq.errors import PairingError, StateConflictError, ValidationError
from shuttleq.models import Player, PlayerPair, PlayerStatus
from shuttleq.players import PlayerRegistry

logger = logging.getLogger(__name__)


class PairRegistry:
    """Owns PlayerPairs and keeps ``Player.partner_id`` symmetric."""

    def __init__(self, players: PlayerRegistry,
                 clock: Callable[[], datetime] = datetime.now):
        self._players = players
        self._pairs: dict[str, PlayerPair] = {}
        self._clock = clock

    def __len__(self) -> int:
        return len(self._pairs)

    def list_pairs(self) -> list[PlayerPair]:
        return sorted(self._pairs.values(), key=lambda p: p.created_at)

    def get(self, pair_id: str) -> PlayerPair:
        pair = self._pairs.get(pair_id)
        if pair is None:
            raise ValidationError(f"Unknown pair: {pair_id}")
        return pair

    def pair_of(self, player_id: str) -> Optional[PlayerPair]:
        for pair in self._pairs.values():
            if pair.involves(player_id):
                return pair
        return None

    def lookup_partner(self, player_id: str) -> Optional[Player]:
        pair = self.pair_of(player_id)
        if pair is None:
            return None
        return self._players.find(pair.other(player_id))

    def propose(self, player_a: str, player_b: str, name: str = "") -> PlayerPair:
        """Pair two available, unpaired players."""
        if player_a == player_b:
            raise PairingError("A player cannot be paired with themselves")
        a = self._players.get(player_a)
        b = self._players.get(player_b)
        for player in (a, b):
            if player.status is not PlayerStatus.available:
                raise PairingError(
                    f"{player.name} is {player.status.value}, not available"
                )
            if player.partner_id is not None or self.pair_of(player.id):
                raise PairingError(f"{player.name} is already paired")

        pair = PlayerPair(
            id=str(uuid.uuid4()),
            player_ids=(a.id, b.id),
            name=(name or "").strip() or f"{a.name} & {b.name}",
            created_at=self._clock(),
        )
        self._pairs[pair.id] = pair
        a.partner_id = b.id
        b.partner_id = a.id
        logger.info(f"Paired {a.name} with {b.name} as '{pair.name}'")
        return pair

    def _remove(self, pair: PlayerPair) -> None:
        for pid in pair.player_ids:
            player = self._players.find(pid)
            if player is not None:
                player.partner_id = None
        del self._pairs[pair.id]

    def unpair(self, pair_id: str) -> None:
        pair = self.get(pair_id)
        members = [self._players.get(pid) for pid in pair.player_ids]
        for player in members:
            if player.status is PlayerStatus.playing:
                raise StateConflictError(
                    f"Cannot unpair '{pair.name}': {player.name} is playing"
                )
        self._remove(pair)
        logger.info(f"Unpaired '{pair.name}'")

    def dissolve_for(self, player_id: str) -> Optional[PlayerPair]:
        """Drop the pair of ``player_id`` regardless of member status."""
        pair = self.pair_of(player_id)
        if pair is not None:
            self._remove(pair)
            logger.info(f"Dissolved pair '{pair.name}'")
        return pair

"""Data models for the shuttleq court rotation engine."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from shuttleq.errors import ValidationError


class PlayerStatus(Enum):
    available = "available"
    playing = "playing"
    unavailable = "unavailable"
    retired = "retired"

    @classmethod
    def from_str(cls, s: str) -> "PlayerStatus":
        return cls(s.strip().lower())


class CourtStatus(Enum):
    available = "available"
    playing = "playing"
    unavailable = "unavailable"


class GameFormat(Enum):
    SINGLE = "SINGLE"
    DOUBLE = "DOUBLE"
    PAIRED_DOUBLE = "PAIRED_DOUBLE"

    @classmethod
    def from_str(cls, s: str) -> "GameFormat":
        return cls[s.strip().upper().replace("-", "_").replace(" ", "_")]


@dataclass
class Player:
    """A registered player. Never deleted, only retired."""
    id: str
    name: str
    status: PlayerStatus = PlayerStatus.available
    queue_key: str = ""
    partner_id: Optional[str] = None
    index: int = 0  # registration order, display only

    @property
    def is_available(self) -> bool:
        return self.status is PlayerStatus.available

    @property
    def is_paired(self) -> bool:
        return self.partner_id is not None


@dataclass
class PlayerPair:
    """Two players who are always selected together."""
    id: str
    player_ids: tuple[str, str]
    name: str
    created_at: datetime

    def involves(self, player_id: str) -> bool:
        return player_id in self.player_ids

    def other(self, player_id: str) -> str:
        if player_id == self.player_ids[0]:
            return self.player_ids[1]
        return self.player_ids[0]


@dataclass
class Court:
    id: str
    name: str
    display_index: int
    status: CourtStatus = CourtStatus.available
    locked: bool = False

    @property
    def is_allocatable(self) -> bool:
        return self.status is CourtStatus.available and not self.locked


@dataclass
class Party:
    """One side of a game."""
    player_ids: list[str] = field(default_factory=list)
    score: int = 0


@dataclass
class Game:
    """A game on a court, or waiting for one when court_id is None."""
    id: str
    first_party: Party
    second_party: Party
    sequence_index: int
    started_at: datetime
    court_id: Optional[str] = None

    @property
    def player_ids(self) -> list[str]:
        return self.first_party.player_ids + self.second_party.player_ids

    def involves(self, player_id: str) -> bool:
        return player_id in self.player_ids


@dataclass
class GameSettings:
    """Format policy for the next game."""
    format: GameFormat
    player_number: int
    suggestion_size: int
    allow_pairs: bool = True
    keep_partners_together: bool = False

    def __post_init__(self):
        if not 0 <= self.suggestion_size < self.player_number:
            raise ValidationError(
                f"suggestion_size must be in 0..{self.player_number - 1}, "
                f"got {self.suggestion_size}"
            )

    @property
    def auto_selection_size(self) -> int:
        """Number of queue-head players locked into every selection."""
        return self.player_number - self.suggestion_size


@dataclass
class CourtSlot:
    """A court with its current game and occupying players."""
    court: Court
    game: Optional[Game] = None
    players: list[Player] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.game is not None


@dataclass
class WaitingQueueEntry:
    """A pre-built game waiting for a court to free up.

    ``players`` is a copy of the players as they were when the game was
    queued; promotion checks the registry, not this snapshot.
    """
    game: Game
    players: list[Player] = field(default_factory=list)

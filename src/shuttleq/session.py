"""Game session: the state owner behind every rotation operation.

A GameSession holds the settings, both registries, the current selection,
the court pool, the waiting queue and the game history. Each public operation
runs under one lock and checks everything it needs before changing anything,
so a failed call leaves the session as it was.
"""

import functools
import logging
import random
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from shuttleq.config import DEFAULT_FORMAT, build_game_settings
from shuttleq.courts import CourtAllocator
from shuttleq.errors import (
    ConfigurationLimitError, GameError, GameErrorReason, ShuttleqError,
    StateConflictError, ValidationError,
)
from shuttleq.models import (
    Court, Game, GameFormat, GameSettings, Party, Player, PlayerPair,
    PlayerStatus, WaitingQueueEntry,
)
from shuttleq.pairs import PairRegistry
from shuttleq.players import PlayerRegistry
from shuttleq.selection import MAX_SELECTION_ATTEMPTS, SelectionEngine
from shuttleq.waiting import DEFAULT_CAPACITY, WaitingQueue

logger = logging.getLogger(__name__)


@dataclass
class Outcome:
    """Result of ``GameSession.attempt``: a value or the error that stopped it."""
    ok: bool
    value: Any = None
    error: Optional[ShuttleqError] = None


def _serialized(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


class GameSession:
    """One club night: players, pairs, courts and the games between them."""

    def __init__(self, settings: Optional[GameSettings] = None,
                 courts: Iterable[Court] = (),
                 waiting_queue_capacity: int = DEFAULT_CAPACITY,
                 rng: Optional[random.Random] = None,
                 max_selection_attempts: int = MAX_SELECTION_ATTEMPTS,
                 clock: Callable[[], datetime] = datetime.now):
        self._lock = threading.RLock()
        self.clock = clock
        self.settings = settings or build_game_settings(DEFAULT_FORMAT)
        self.players = PlayerRegistry(clock=clock)
        self.pairs = PairRegistry(self.players, clock=clock)
        self.selection = SelectionEngine(self.players, self.settings, rng=rng,
                                         max_attempts=max_selection_attempts)
        self.courts = CourtAllocator(self.players)
        self.waiting = WaitingQueue(waiting_queue_capacity)
        self.games: list[Game] = []
        self.next_court_id: Optional[str] = None
        courts = list(courts)
        if courts:
            self.courts.provision(courts)

    @classmethod
    def from_config(cls, config: dict, seed: int | None = None,
                    clock: Callable[[], datetime] = datetime.now) -> "GameSession":
        """Build a session from ``load_config`` output, roster included."""
        session = cls(
            settings=config["settings"],
            courts=config["courts"],
            waiting_queue_capacity=config["waiting_queue_capacity"],
            rng=random.Random(seed),
            max_selection_attempts=config["max_selection_attempts"],
            clock=clock,
        )
        for name in config["players"]:
            session.register_player(name)
        return session

    # ------------------------------------------------------------------
    # Rounds and outcomes
    # ------------------------------------------------------------------

    @property
    def current_round(self) -> int:
        """Number of games started so far."""
        return len(self.games)

    @property
    def next_round(self) -> int:
        return self.current_round + 1

    def attempt(self, operation: str | Callable, *args, **kwargs) -> Outcome:
        """Run a session operation and return its outcome instead of raising."""
        if isinstance(operation, str):
            operation = getattr(self, operation)
        try:
            value = operation(*args, **kwargs)
        except ShuttleqError as e:
            logger.warning(f"{getattr(operation, '__name__', operation)} failed: {e}")
            return Outcome(ok=False, error=e)
        return Outcome(ok=True, value=value)

    # ------------------------------------------------------------------
    # Players and pairs
    # ------------------------------------------------------------------

    @_serialized
    def register_player(self, name: str) -> Player:
        player = self.players.register(name, self.next_round)
        self.selection.normalize()
        return player

    @_serialized
    def retire_player(self, player_id: str) -> Player:
        """Soft-delete a player; their pair, if any, is dissolved."""
        player = self.players.retire(player_id)
        self.pairs.dissolve_for(player_id)
        self.selection.normalize()
        return player

    @_serialized
    def reinstate_player(self, player_id: str) -> Player:
        player = self.players.reinstate(player_id, self.next_round)
        self.selection.normalize()
        return player

    @_serialized
    def set_player_status(self, player_id: str, status: PlayerStatus | str) -> Player:
        if isinstance(status, str):
            try:
                status = PlayerStatus.from_str(status)
            except ValueError:
                raise ValidationError(f"Unknown player status {status!r}")
        player = self.players.set_status(player_id, status)
        self.selection.normalize()
        return player

    @_serialized
    def propose_pair(self, player_a: str, player_b: str, name: str = "") -> PlayerPair:
        pair = self.pairs.propose(player_a, player_b, name)
        self.selection.normalize()
        return pair

    @_serialized
    def unpair(self, pair_id: str) -> None:
        self.pairs.unpair(pair_id)
        self.selection.normalize()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @_serialized
    def toggle_player_selection(self, player_id: str) -> list[str]:
        return self.selection.toggle(player_id)

    @_serialized
    def auto_select(self) -> list[str]:
        return self.selection.auto_select()

    @_serialized
    def auto_suggest(self) -> list[str]:
        return self.selection.auto_suggest()

    @_serialized
    def configure_format(self, game_format: GameFormat | str) -> GameSettings:
        settings = build_game_settings(game_format)
        self.settings = settings
        self.selection.settings = settings
        self.selection.normalize()
        logger.info(f"Game format set to {settings.format.value}")
        return settings

    # ------------------------------------------------------------------
    # Courts and games
    # ------------------------------------------------------------------

    @_serialized
    def choose_next_court(self, court_id: Optional[str]) -> Optional[Court]:
        """Prefer a specific court for the next game; None clears the choice."""
        if court_id is None:
            self.next_court_id = None
            return None
        court = self.courts.get_court(court_id)
        if not court.is_allocatable:
            raise StateConflictError(f"{court.name} is not available")
        self.next_court_id = court.id
        return court

    def _target_court(self) -> Optional[Court]:
        if self.next_court_id is not None:
            court = self.courts.get_court(self.next_court_id)
            if court.is_allocatable:
                return court
        return self.courts.get_next_available_court()

    @_serialized
    def can_start_game(self) -> bool:
        if not self.selection.is_complete():
            return False
        if self.selection.validate_selection(self.selection.selected):
            return False
        if self._target_court() is not None:
            return True
        return self.waiting.enabled and not self.waiting.is_full()

    def _party_order(self, ids: list[str]) -> list[str]:
        """Order ids so each partnership lands on one side of the net."""
        if not self.settings.keep_partners_together:
            return list(ids)
        units: list[list[str]] = []
        placed: set[str] = set()
        for pid in ids:
            if pid in placed:
                continue
            partner = self.selection.partner_of(self.players.get(pid))
            unit = [pid] if partner is None else [pid, partner.id]
            units.append(unit)
            placed.update(unit)

        half = len(ids) // 2
        first: list[str] = []
        second: list[str] = []
        for unit in sorted(units, key=len, reverse=True):
            if len(first) + len(unit) <= half:
                first.extend(unit)
            else:
                second.extend(unit)
        return first + second

    def _build_game(self, ids: list[str]) -> Game:
        order = self._party_order(ids)
        half = len(order) // 2
        return Game(
            id=str(uuid.uuid4()),
            first_party=Party(player_ids=order[:half]),
            second_party=Party(player_ids=order[half:]),
            sequence_index=len(self.games),
            started_at=self.clock(),
        )

    @_serialized
    def start_game(self) -> Game:
        """Commit the current selection to a court, or to the waiting queue."""
        ids = list(self.selection.selected)
        n = self.settings.player_number
        if len(ids) != n:
            raise GameError(GameErrorReason.NOT_ENOUGH_PLAYERS,
                            f"{len(ids)} of {n} players selected")
        problems = self.selection.validate_selection(ids)
        if problems:
            raise GameError(GameErrorReason.NOT_ENOUGH_PLAYERS, "; ".join(problems))

        court = self._target_court()
        if court is None:
            if not self.waiting.enabled:
                raise GameError(GameErrorReason.NO_COURT_AVAILABLE)
            if self.waiting.is_full():
                raise GameError(GameErrorReason.QUEUE_FULL,
                                f"Waiting queue is full ({self.waiting.capacity} games)")

        game = self._build_game(ids)
        players = [self.players.get(pid) for pid in ids]
        self.players.mark_playing(ids)
        if court is not None:
            self.courts.start_game(court.id, game, players)
        else:
            self.waiting.enqueue(game, players)
        self.games.append(game)
        self.selection.clear()
        self.next_court_id = None
        return game

    @_serialized
    def end_game(self, court_id: str) -> Game:
        """Release a court; its players go to the back of the next round."""
        game = self.courts.end_game(court_id, self.next_round)
        self._promote_waiting(court_id)
        self.selection.normalize()
        return game

    @_serialized
    def toggle_court_lock(self, court_id: str) -> Court:
        court = self.courts.toggle_lock(court_id)
        if court.locked and self.next_court_id == court.id:
            self.next_court_id = None
        if court.is_allocatable:
            self._promote_waiting(court.id)
        self.selection.normalize()
        return court

    @_serialized
    def set_score(self, court_id: str, first: int, second: int) -> Game:
        return self.courts.set_score(court_id, first, second)

    @_serialized
    def cancel_queued_game(self, game_id: str) -> Game:
        """Take a game off the waiting queue and send its players back."""
        entry = next((e for e in self.waiting if e.game.id == game_id), None)
        if entry is None:
            raise ValidationError(f"No queued game {game_id}")
        keys = self.players.plan_requeue(entry.game.player_ids, self.next_round)
        self.waiting.remove(game_id)
        self.players.apply_requeue(keys)
        self.selection.normalize()
        logger.info(f"Queued game {entry.game.sequence_index} cancelled")
        return entry.game

    # ------------------------------------------------------------------
    # Waiting queue promotion
    # ------------------------------------------------------------------

    def _entry_problems(self, entry: WaitingQueueEntry) -> list[str]:
        problems = []
        ids = entry.game.player_ids
        for pid in ids:
            player = self.players.find(pid)
            if player is None:
                problems.append(f"Unknown player {pid}")
                continue
            if player.status is not PlayerStatus.playing:
                problems.append(f"{player.name} is {player.status.value}")
            if self.settings.allow_pairs and player.partner_id is not None \
                    and player.partner_id not in ids:
                problems.append(f"{player.name}'s partner is not in the game")
        return problems

    def _promote_waiting(self, freed_court_id: str) -> None:
        """Move the head of the waiting queue onto a free court."""
        while len(self.waiting):
            court = self.courts.get_court(freed_court_id)
            if not court.is_allocatable:
                court = self.courts.get_next_available_court()
            if court is None:
                return

            entry = self.waiting.dequeue()
            problems = self._entry_problems(entry)
            if not problems:
                players = [self.players.get(pid) for pid in entry.game.player_ids]
                self.courts.start_game(court.id, entry.game, players)
                return

            logger.warning(
                f"Dropping queued game {entry.game.sequence_index}: {'; '.join(problems)}"
            )
            stranded = []
            for pid in entry.game.player_ids:
                player = self.players.find(pid)
                if player is not None and player.status is PlayerStatus.playing:
                    stranded.append(pid)
            try:
                keys = self.players.plan_requeue(stranded, self.next_round)
            except ConfigurationLimitError:
                self.waiting.push_front(entry)
                logger.error(f"Cannot requeue players of game {entry.game.sequence_index}")
                return
            self.players.apply_requeue(keys)

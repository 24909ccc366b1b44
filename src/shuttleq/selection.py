"""Selection engine: builds the player set for the next game.

Three rules shape every selection:

1. Fairness lock-in: the longest-waiting players (``auto_selection_size`` of
   them) are always in, and cannot be toggled out. A locked-in player's
   partner comes along, so the head may run one player over.
2. Pairing integrity: with pairs allowed, nobody is selected without their
   partner, and a full selection must have one of the paired/single splits
   returned by ``valid_combinations``.
3. Bounded random completion: the free slots after the head are filled at
   random. Feasible (pairs, singles) shapes are enumerated first and sampled
   by weight, so every valid completion is equally likely; each attempt is
   still validated, and at most ``MAX_SELECTION_ATTEMPTS`` are made.
"""

import logging
import random
from math import comb
from typing import Optional

from shuttleq.errors import (
    CapacityError, SelectionExhaustedError, StateConflictError,
)
from shuttleq.models import GameSettings, Player
from shuttleq.players import PlayerRegistry

logger = logging.getLogger(__name__)

MAX_SELECTION_ATTEMPTS = 10


def valid_combinations(settings: GameSettings,
                       head_paired: bool) -> list[tuple[int, int]]:
    """Allowed (paired, single) player counts for a full selection.

    For doubles this is {(2, 2), (0, 4)} behind an unpaired queue head and
    {(4, 0), (2, 2)} behind a paired one.
    """
    n = settings.player_number
    if not settings.allow_pairs:
        return [(0, n)]
    combos = []
    for paired in range(0, n + 1, 2):
        single = n - paired
        if head_paired and paired < 2:
            continue
        if not head_paired and single < 1:
            continue
        combos.append((paired, single))
    return combos


class SelectionEngine:
    """Owns the ordered list of selected player ids."""

    def __init__(self, players: PlayerRegistry, settings: GameSettings,
                 rng: Optional[random.Random] = None,
                 max_attempts: int = MAX_SELECTION_ATTEMPTS):
        self.players = players
        self.settings = settings
        self.rng = rng or random.Random()
        self.max_attempts = max_attempts
        self.selected: list[str] = []

    # ------------------------------------------------------------------
    # Pool and head
    # ------------------------------------------------------------------

    def partner_of(self, player: Player) -> Optional[Player]:
        """Partner that must come along with ``player``, if pairs apply."""
        if not self.settings.allow_pairs or player.partner_id is None:
            return None
        return self.players.find(player.partner_id)

    def pool(self) -> list[Player]:
        """Selectable players in queue order.

        A player whose partner is not available waits with them.
        """
        pool = []
        for player in self.players.list_available():
            partner = self.partner_of(player)
            if partner is not None and not partner.is_available:
                continue
            pool.append(player)
        return pool

    def _unit(self, player: Player) -> list[str]:
        partner = self.partner_of(player)
        if partner is None:
            return [player.id]
        return [player.id, partner.id]

    def locked_in(self) -> list[str]:
        """Ids of the fairness head, partners included."""
        head: list[str] = []
        for player in self.pool():
            if len(head) >= self.settings.auto_selection_size:
                break
            if player.id in head:
                continue
            unit = self._unit(player)
            if len(head) + len(unit) > self.settings.player_number:
                break
            head.extend(unit)
        return head

    def _head_paired(self, head: list[str]) -> bool:
        if not head:
            return False
        return self.partner_of(self.players.get(head[0])) is not None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def selected_players(self) -> list[Player]:
        return [self.players.get(pid) for pid in self.selected]

    def is_complete(self) -> bool:
        return len(self.selected) == self.settings.player_number

    def validate_selection(self, ids: list[str]) -> list[str]:
        """Return the problems with ``ids`` as a selection; empty if valid."""
        problems = []
        n = self.settings.player_number
        if len(ids) > n:
            problems.append(f"{len(ids)} players selected, at most {n} allowed")
        if len(set(ids)) != len(ids):
            problems.append("Selection contains duplicates")

        paired = 0
        for pid in ids:
            player = self.players.find(pid)
            if player is None:
                problems.append(f"Unknown player {pid}")
                continue
            if not player.is_available:
                problems.append(f"{player.name} is {player.status.value}")
            partner = self.partner_of(player)
            if partner is not None:
                paired += 1
                if partner.id not in ids:
                    problems.append(
                        f"{player.name} is selected without partner {partner.name}"
                    )

        head = self.locked_in()
        missing = [pid for pid in head if pid not in ids]
        if missing and len(ids) == n:
            problems.append(f"{len(missing)} locked-in players left out")

        if len(ids) == n and not problems:
            combo = (paired, n - paired)
            if combo not in valid_combinations(self.settings, self._head_paired(head)):
                problems.append(f"Paired/single split {combo} is not allowed")
        return problems

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def clear(self) -> None:
        self.selected = []

    def auto_select(self) -> list[str]:
        """Reset the selection to the locked-in head."""
        self.selected = self.locked_in()
        return list(self.selected)

    def _normalized(self, anchor: bool = False) -> list[str]:
        if not self.selected and not anchor:
            return []
        pool_ids = {p.id for p in self.pool()}
        result = self.locked_in()
        for pid in self.selected:
            if pid in result or pid not in pool_ids:
                continue
            unit = self._unit(self.players.get(pid))
            if len(result) + len(unit) > self.settings.player_number:
                continue
            result.extend(unit)
        return result

    def normalize(self) -> list[str]:
        """Re-anchor the selection after roster or settings changes.

        An empty selection stays empty.
        """
        self.selected = self._normalized()
        return list(self.selected)

    def toggle(self, player_id: str) -> list[str]:
        """Select or deselect a player, together with their partner."""
        player = self.players.get(player_id)
        if player_id in self.locked_in():
            raise StateConflictError(f"{player.name} is locked in by queue order")

        current = self._normalized(anchor=True)
        unit = self._unit(player)
        if player_id in current:
            self.selected = [pid for pid in current if pid not in unit]
            return list(self.selected)

        if player_id not in {p.id for p in self.pool()}:
            raise StateConflictError(f"{player.name} cannot be selected right now")
        if len(current) + len(unit) > self.settings.player_number:
            raise CapacityError(
                f"Selecting {player.name} needs {len(unit)} slot(s); "
                f"{self.settings.player_number - len(current)} left"
            )
        self.selected = current + unit
        return list(self.selected)

    def _shapes(self, remaining: int, pairs: list, singles: list,
                head: list[str]) -> list[tuple[int, int, int]]:
        head_paired_count = sum(
            1 for pid in head if self.partner_of(self.players.get(pid)) is not None
        )
        head_single_count = len(head) - head_paired_count
        combos = valid_combinations(self.settings, self._head_paired(head))

        shapes = []
        for k in range(remaining // 2 + 1):
            m = remaining - 2 * k
            if k > len(pairs) or m > len(singles):
                continue
            if (head_paired_count + 2 * k, head_single_count + m) not in combos:
                continue
            shapes.append((k, m, comb(len(pairs), k) * comb(len(singles), m)))
        return shapes

    def auto_suggest(self) -> list[str]:
        """Fill a complete selection behind the locked-in head.

        Leaves the current selection untouched on failure.
        """
        n = self.settings.player_number
        pool = self.pool()
        if len(pool) < n:
            raise SelectionExhaustedError(
                f"Not enough available players: {len(pool)} of {n}"
            )

        head = self.locked_in()
        rest = [p for p in pool if p.id not in head]
        singles: list[str] = []
        pairs: list[tuple[str, str]] = []
        seen: set[str] = set()
        for player in rest:
            partner = self.partner_of(player)
            if partner is None:
                singles.append(player.id)
            elif player.id not in seen:
                pairs.append((player.id, partner.id))
                seen.update((player.id, partner.id))

        shapes = self._shapes(n - len(head), pairs, singles, head)
        if not shapes:
            raise SelectionExhaustedError(
                f"No valid paired/single split from {len(pairs)} pairs "
                f"and {len(singles)} singles"
            )

        weights = [w for _, _, w in shapes]
        for attempt in range(1, self.max_attempts + 1):
            k, m, _ = self.rng.choices(shapes, weights=weights)[0]
            units = [list(p) for p in self.rng.sample(pairs, k)]
            units += [[pid] for pid in self.rng.sample(singles, m)]
            self.rng.shuffle(units)
            candidate = head + [pid for unit in units for pid in unit]

            problems = self.validate_selection(candidate)
            if not problems:
                self.selected = candidate
                logger.debug(f"Suggestion found on attempt {attempt}")
                return list(candidate)
            logger.debug(f"Attempt {attempt} rejected: {'; '.join(problems)}")

        logger.warning(
            f"Could not find a valid combination after {self.max_attempts} attempts"
        )
        raise SelectionExhaustedError(
            f"No valid combination after {self.max_attempts} attempts"
        )

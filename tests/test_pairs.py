"""Tests for pairs.py: proposing and dissolving partnerships."""

from datetime import datetime

import pytest

from shuttleq.errors import PairingError, StateConflictError, ValidationError
from shuttleq.models import PlayerStatus
from shuttleq.pairs import PairRegistry
from shuttleq.players import PlayerRegistry


def _clock():
    return datetime(2026, 3, 9, 18, 0, 0)


def _make_pairs(names=("A", "B", "C", "D")):
    players = PlayerRegistry(clock=_clock)
    roster = [players.register(n, 1) for n in names]
    return players, PairRegistry(players, clock=_clock), roster


class TestPropose:
    def test_propose(self):
        _, pairs, (a, b, *_) = _make_pairs()
        pair = pairs.propose(a.id, b.id)
        assert pair.name == "A & B"
        assert pair.player_ids == (a.id, b.id)
        assert a.partner_id == b.id
        assert b.partner_id == a.id
        assert pairs.lookup_partner(a.id) is b
        assert pairs.pair_of(b.id) is pair
        assert len(pairs) == 1

    def test_custom_name(self):
        _, pairs, (a, b, *_) = _make_pairs()
        assert pairs.propose(a.id, b.id, "  Smashers ").name == "Smashers"

    def test_self_pairing(self):
        _, pairs, (a, *_) = _make_pairs()
        with pytest.raises(PairingError):
            pairs.propose(a.id, a.id)

    def test_already_paired(self):
        _, pairs, (a, b, c, _) = _make_pairs()
        pairs.propose(a.id, b.id)
        with pytest.raises(PairingError):
            pairs.propose(a.id, c.id)
        assert c.partner_id is None
        assert len(pairs) == 1

    def test_not_available(self):
        players, pairs, (a, b, *_) = _make_pairs()
        players.set_status(b.id, PlayerStatus.unavailable)
        with pytest.raises(PairingError):
            pairs.propose(a.id, b.id)
        assert a.partner_id is None

    def test_pairing_error_is_state_conflict(self):
        _, pairs, (a, *_) = _make_pairs()
        with pytest.raises(StateConflictError):
            pairs.propose(a.id, a.id)

    def test_unknown_player(self):
        _, pairs, (a, *_) = _make_pairs()
        with pytest.raises(ValidationError):
            pairs.propose(a.id, "ghost")


class TestUnpair:
    def test_unpair(self):
        _, pairs, (a, b, *_) = _make_pairs()
        pair = pairs.propose(a.id, b.id)
        pairs.unpair(pair.id)
        assert a.partner_id is None
        assert b.partner_id is None
        assert pairs.list_pairs() == []

    def test_unpair_while_playing(self):
        players, pairs, (a, b, *_) = _make_pairs()
        pair = pairs.propose(a.id, b.id)
        players.mark_playing([a.id])
        with pytest.raises(StateConflictError):
            pairs.unpair(pair.id)
        assert pairs.get(pair.id) is pair
        assert a.partner_id == b.id
        assert b.partner_id == a.id

    def test_unknown_pair(self):
        _, pairs, _ = _make_pairs()
        with pytest.raises(ValidationError):
            pairs.unpair("ghost")

    def test_dissolve_for(self):
        _, pairs, (a, b, *_) = _make_pairs()
        pair = pairs.propose(a.id, b.id)
        assert pairs.dissolve_for(b.id) is pair
        assert a.partner_id is None
        assert pairs.dissolve_for(b.id) is None

"""Tests for models.py: data classes and enums."""

from datetime import datetime

import pytest

from shuttleq.errors import ValidationError
from shuttleq.models import (
    Court, CourtSlot, CourtStatus, Game, GameFormat, GameSettings, Party,
    Player, PlayerPair, PlayerStatus,
)


class TestPlayerStatus:
    def test_from_str(self):
        assert PlayerStatus.from_str("available") == PlayerStatus.available
        assert PlayerStatus.from_str("Unavailable") == PlayerStatus.unavailable
        assert PlayerStatus.from_str(" RETIRED ") == PlayerStatus.retired

    def test_from_str_unknown(self):
        with pytest.raises(ValueError):
            PlayerStatus.from_str("resting")


class TestGameFormat:
    def test_from_str(self):
        assert GameFormat.from_str("double") == GameFormat.DOUBLE
        assert GameFormat.from_str("SINGLE") == GameFormat.SINGLE

    def test_from_str_separators(self):
        assert GameFormat.from_str("paired-double") == GameFormat.PAIRED_DOUBLE
        assert GameFormat.from_str("Paired Double") == GameFormat.PAIRED_DOUBLE

    def test_from_str_unknown(self):
        with pytest.raises(KeyError):
            GameFormat.from_str("triple")


class TestPlayer:
    def test_defaults(self):
        p = Player(id="p1", name="Alice")
        assert p.status == PlayerStatus.available
        assert p.is_available
        assert not p.is_paired

    def test_paired(self):
        p = Player(id="p1", name="Alice", partner_id="p2")
        assert p.is_paired

    def test_not_available(self):
        for status in [PlayerStatus.playing, PlayerStatus.unavailable,
                       PlayerStatus.retired]:
            assert not Player(id="p1", name="A", status=status).is_available


class TestPlayerPair:
    def test_involves_and_other(self):
        pair = PlayerPair(id="x", player_ids=("a", "b"), name="A & B",
                          created_at=datetime(2026, 3, 9))
        assert pair.involves("a")
        assert pair.involves("b")
        assert not pair.involves("c")
        assert pair.other("a") == "b"
        assert pair.other("b") == "a"


class TestCourt:
    def test_allocatable(self):
        assert Court(id="c1", name="Court 1", display_index=0).is_allocatable

    def test_locked_not_allocatable(self):
        court = Court(id="c1", name="Court 1", display_index=0, locked=True)
        assert not court.is_allocatable

    def test_playing_not_allocatable(self):
        court = Court(id="c1", name="Court 1", display_index=0,
                      status=CourtStatus.playing)
        assert not court.is_allocatable


class TestGame:
    def test_player_ids(self):
        game = Game(
            id="g1",
            first_party=Party(player_ids=["a", "b"]),
            second_party=Party(player_ids=["c", "d"]),
            sequence_index=0,
            started_at=datetime(2026, 3, 9, 18, 0),
        )
        assert game.player_ids == ["a", "b", "c", "d"]
        assert game.involves("c")
        assert not game.involves("e")
        assert game.court_id is None
        assert game.first_party.score == 0

    def test_court_slot_active(self):
        court = Court(id="c1", name="Court 1", display_index=0)
        slot = CourtSlot(court=court)
        assert not slot.is_active
        slot.game = Game(id="g1", first_party=Party(["a"]),
                         second_party=Party(["b"]), sequence_index=0,
                         started_at=datetime(2026, 3, 9))
        assert slot.is_active


class TestGameSettings:
    def test_auto_selection_size(self):
        settings = GameSettings(format=GameFormat.DOUBLE, player_number=4,
                                suggestion_size=3)
        assert settings.auto_selection_size == 1

    def test_single(self):
        settings = GameSettings(format=GameFormat.SINGLE, player_number=2,
                                suggestion_size=1, allow_pairs=False)
        assert settings.auto_selection_size == 1
        assert not settings.keep_partners_together

    def test_suggestion_size_out_of_range(self):
        with pytest.raises(ValidationError):
            GameSettings(format=GameFormat.DOUBLE, player_number=4,
                         suggestion_size=4)
        with pytest.raises(ValidationError):
            GameSettings(format=GameFormat.DOUBLE, player_number=4,
                         suggestion_size=-1)

    def test_no_suggestions(self):
        settings = GameSettings(format=GameFormat.DOUBLE, player_number=4,
                                suggestion_size=0)
        assert settings.auto_selection_size == 4

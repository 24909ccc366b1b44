"""Integration test: simulated club nights end to end."""

from pathlib import Path

import pytest

from shuttleq.config import load_config
from shuttleq.constraints import validate_session
from shuttleq.session import GameSession
from shuttleq.simulate import format_session, run_simulation

REPO_CONFIG = Path(__file__).parent.parent / "config.yaml"


def _make_session(tmp_path=None, text=None, seed=42):
    path = REPO_CONFIG
    if text is not None:
        path = tmp_path / "config.yaml"
        path.write_text(text)
    return GameSession.from_config(load_config(path), seed=seed)


class TestSimulation:
    @pytest.mark.parametrize("seed", [1, 42, 2026])
    def test_repo_config_stays_valid(self, seed):
        session = _make_session(seed=seed)
        summary = run_simulation(session, games=30)
        assert summary["result"]["valid"], summary["result"]["errors"]
        assert summary["started"] == 30
        assert validate_session(session)["valid"]

    def test_everyone_gets_to_play(self):
        session = _make_session()
        run_simulation(session, games=30)
        played = {pid for g in session.games for pid in g.player_ids}
        assert played == {p.id for p in session.players.list_players()}

    def test_pairs_always_play_together(self, tmp_path):
        text = (
            "session:\n  format: paired_double\n"
            "courts: [One, Two]\n"
            "players: [A, B, C, D, E, F, G, H, I, J]\n"
        )
        session = _make_session(tmp_path, text)
        by_name = {p.name: p for p in session.players.list_players()}
        session.propose_pair(by_name["A"].id, by_name["B"].id)
        session.propose_pair(by_name["C"].id, by_name["D"].id)
        summary = run_simulation(session, games=20)
        assert summary["result"]["valid"], summary["result"]["errors"]
        for game in session.games:
            for party in (game.first_party, game.second_party):
                for pid in party.player_ids:
                    partner = session.players.get(pid).partner_id
                    if partner is not None and game.involves(partner):
                        assert partner in party.player_ids

    def test_singles_without_queue(self, tmp_path):
        text = (
            "session:\n  format: single\n  waiting_queue: 0\n"
            "courts: [One]\n"
            "players: [A, B, C]\n"
        )
        session = _make_session(tmp_path, text)
        summary = run_simulation(session, games=6)
        assert summary["started"] == 6
        assert summary["result"]["valid"]
        assert len(session.waiting) == 0

    def test_format_session(self):
        session = _make_session()
        run_simulation(session, games=5)
        text = format_session(session)
        assert "COURTS (DOUBLE" in text
        assert "Court 4" in text
        assert "[locked]" in text

#!/usr/bin/env python3
"""Court rotation simulator.

    shuttleq-simulate [config.yaml] [--seed N] [--games N] [-v]

Loads a session config and plays N games through the rotation engine:
suggest the next players, start a game (on a court or in the waiting queue),
and whenever that is not possible, end the oldest game still on a court.
Every step is checked with the session validator.

Exit codes:
  0  All steps kept the session valid
  1  Invariant violations found, or config error
"""

import argparse
import logging
import sys
from pathlib import Path

from shuttleq.config import load_config
from shuttleq.constraints import format_validation_report, validate_session
from shuttleq.errors import ShuttleqError
from shuttleq.session import GameSession


def run_simulation(session: GameSession, games: int) -> dict:
    """Drive ``session`` until ``games`` games have started.

    Returns dict with:
    - started: number of games started (on a court or queued)
    - ended: number of games ended
    - rejected: list of rejected operation messages
    - result: the last validation result (the first failing one, if any)
    """
    started = 0
    ended = 0
    rejected = []
    result = validate_session(session)
    max_steps = games * 4 + 10

    for _ in range(max_steps):
        if started >= games or not result["valid"]:
            break

        suggestion = session.attempt("auto_suggest")
        if suggestion.ok:
            outcome = session.attempt("start_game")
            if outcome.ok:
                started += 1
                result = validate_session(session)
                continue
            rejected.append(str(outcome.error))
        else:
            rejected.append(str(suggestion.error))

        active = sorted(session.courts.active_games(), key=lambda g: g.sequence_index)
        if not active:
            break
        session.end_game(active[0].court_id)
        ended += 1
        result = validate_session(session)

    return {
        "started": started,
        "ended": ended,
        "rejected": rejected,
        "result": result,
    }


def format_session(session: GameSession) -> str:
    """Courts, waiting queue and player queue as plain text."""
    names = {p.id: p.name for p in session.players.list_players(include_retired=True)}
    lines = []
    lines.append("=" * 60)
    lines.append(f"COURTS ({session.settings.format.value}, round {session.current_round})")
    lines.append("=" * 60)
    for court in session.courts.list_courts():
        slot = session.courts.get_slot(court.id)
        lock = " [locked]" if court.locked else ""
        if slot.game is None:
            lines.append(f"  {court.name:<12} {court.status.value}{lock}")
            continue
        first = " & ".join(names[pid] for pid in slot.game.first_party.player_ids)
        second = " & ".join(names[pid] for pid in slot.game.second_party.player_ids)
        lines.append(f"  {court.name:<12} {first} vs {second}{lock}")

    if len(session.waiting):
        lines.append(f"\n--- WAITING ({len(session.waiting)}/{session.waiting.capacity}) ---")
        for entry in session.waiting:
            lines.append("  " + ", ".join(names[pid] for pid in entry.game.player_ids))

    lines.append("\n--- QUEUE ---")
    for player in session.players.list_available():
        partner = f" (with {names[player.partner_id]})" if player.partner_id else ""
        lines.append(f"  {player.queue_key}  {player.name}{partner}")
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(
        description="Court rotation simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Exit codes:
  0  Session stayed valid for the whole run
  1  Invariant violations found, or config error
""",
    )
    parser.add_argument(
        "config", nargs="?", default="config.yaml",
        help="Path to config YAML file (default: config.yaml)"
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed for reproducible suggestions"
    )
    parser.add_argument(
        "--games", "-n", type=int, default=20,
        help="Number of games to start (default: 20)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Log every engine decision"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config_path = args.config
    if not Path(config_path).exists():
        print(f"Error: config file {config_path} not found")
        sys.exit(1)

    print(f"Loading config from {config_path}...")
    try:
        config = load_config(config_path)
        session = GameSession.from_config(config, seed=args.seed)
    except ShuttleqError as e:
        print(f"Error: {e}")
        sys.exit(1)
    print(f"{len(session.players)} players, {len(session.courts)} courts, "
          f"format {session.settings.format.value}")

    print(f"Simulating {args.games} games (seed={args.seed})...")
    summary = run_simulation(session, args.games)

    print(f"\nStarted {summary['started']} games, ended {summary['ended']}.")
    if summary["rejected"]:
        print(f"{len(summary['rejected'])} operations were rejected along the way.")
    print("\n" + format_session(session))
    print("\n" + format_validation_report(summary["result"]))

    sys.exit(0 if summary["result"]["valid"] else 1)


if __name__ == "__main__":
    main()

"""Invariant validation for a shuttleq session.

Checks the cross-entity rules that every operation must preserve: pair
symmetry, one game per playing player, court/lock/game consistency and a
well-formed selection.
"""

from collections import defaultdict

from shuttleq.models import CourtStatus, PlayerStatus
from shuttleq.queue_key import queue_key_order
from shuttleq.errors import ValidationError


def validate_session(session) -> dict:
    """Validate a GameSession against all invariants.

    Returns dict with:
    - valid: bool (True if no hard invariant violations)
    - errors: list of hard invariant violations
    - warnings: list of soft issues
    - summary: counts of courts, games, players by status and pairs
    """
    errors = []
    warnings = []

    players = {p.id: p for p in session.players.list_players(include_retired=True)}
    settings = session.settings

    # Pairs: symmetric partner ids, at most one pair per player
    pair_count = defaultdict(int)
    for pair in session.pairs.list_pairs():
        a_id, b_id = pair.player_ids
        for pid in pair.player_ids:
            pair_count[pid] += 1
            if pid not in players:
                errors.append(f"Pair '{pair.name}' references unknown player {pid}")
        a = players.get(a_id)
        b = players.get(b_id)
        if a is not None and b is not None:
            if a.partner_id != b.id or b.partner_id != a.id:
                errors.append(f"Pair '{pair.name}' partner ids are not symmetric")
    for pid, count in pair_count.items():
        if count > 1:
            errors.append(f"Player {players[pid].name} is in {count} pairs")
    for player in players.values():
        if player.partner_id is None:
            continue
        partner = players.get(player.partner_id)
        if partner is None or partner.partner_id != player.id:
            errors.append(f"{player.name} has a one-sided partner reference")
        elif pair_count.get(player.id, 0) == 0:
            errors.append(f"{player.name} has a partner but no pair")

    # Games: courts and waiting queue
    games_per_player = defaultdict(int)
    active = []
    for court in session.courts.list_courts():
        slot = session.courts.get_slot(court.id)
        if court.status is CourtStatus.playing and slot.game is None:
            errors.append(f"{court.name} is playing without a game")
        if slot.game is not None:
            if court.status is not CourtStatus.playing:
                errors.append(f"{court.name} has a game but is {court.status.value}")
            if slot.game.court_id != court.id:
                errors.append(f"{court.name} holds a game bound to another court")
            active.append(slot.game)
        if court.locked and court.status is CourtStatus.available:
            errors.append(f"{court.name} is locked but available")
        if not court.locked and court.status is CourtStatus.unavailable:
            warnings.append(f"{court.name} is unavailable without a lock")

    for entry in session.waiting:
        if entry.game.court_id is not None:
            errors.append(f"Queued game {entry.game.sequence_index} already has a court")
        active.append(entry.game)
    if len(session.waiting) > session.waiting.capacity:
        errors.append(
            f"Waiting queue holds {len(session.waiting)} games, "
            f"capacity is {session.waiting.capacity}"
        )

    seen_games = set()
    for game in active:
        if game.id in seen_games:
            errors.append(f"Game {game.sequence_index} is active in two places")
        seen_games.add(game.id)
        first = set(game.first_party.player_ids)
        second = set(game.second_party.player_ids)
        if first & second:
            errors.append(f"Game {game.sequence_index} has a player on both sides")
        if not first or not second:
            errors.append(f"Game {game.sequence_index} has an empty side")
        elif len(first | second) != settings.player_number:
            # format changed while the game was on
            warnings.append(
                f"Game {game.sequence_index} has {len(first | second)} players, "
                f"format expects {settings.player_number}"
            )
        for pid in first | second:
            games_per_player[pid] += 1
            player = players.get(pid)
            if player is None:
                errors.append(f"Game {game.sequence_index} references unknown player {pid}")
            elif player.status is not PlayerStatus.playing:
                errors.append(
                    f"{player.name} is in game {game.sequence_index} "
                    f"but {player.status.value}"
                )

    for player in players.values():
        count = games_per_player.get(player.id, 0)
        if player.status is PlayerStatus.playing and count != 1:
            errors.append(f"{player.name} is playing in {count} games")

    # Selection
    selected = session.selection.selected
    if len(selected) > settings.player_number:
        errors.append(
            f"{len(selected)} players selected, limit is {settings.player_number}"
        )
    for pid in selected:
        player = players.get(pid)
        if player is None:
            errors.append(f"Selection references unknown player {pid}")
            continue
        if player.status is PlayerStatus.retired:
            errors.append(f"Retired player {player.name} is selected")
        partner = session.selection.partner_of(player)
        if partner is not None and partner.id not in selected:
            errors.append(f"{player.name} is selected without partner {partner.name}")

    # Queue keys: duplicates make the order ambiguous
    by_order = defaultdict(list)
    for player in players.values():
        if player.status is not PlayerStatus.available:
            continue
        try:
            by_order[queue_key_order(player.queue_key)].append(player.name)
        except ValidationError:
            errors.append(f"{player.name} has malformed queue key {player.queue_key!r}")
    for names in by_order.values():
        if len(names) > 1:
            warnings.append(f"Players share a queue position: {', '.join(names)}")

    status_counts = defaultdict(int)
    for player in players.values():
        status_counts[player.status.value] += 1
    summary = {
        "format": settings.format.value,
        "courts": len(session.courts),
        "games_started": len(session.games),
        "games_on_court": len(session.courts.active_games()),
        "games_queued": len(session.waiting),
        "players": dict(status_counts),
        "pairs": len(session.pairs),
    }

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "summary": summary,
    }


def format_validation_report(result: dict) -> str:
    """Format validation results as text."""
    lines = []
    lines.append("=" * 60)
    lines.append("SESSION VALIDATION REPORT")
    lines.append("=" * 60)

    summary = result.get("summary")
    if summary:
        lines.append(
            f"Format {summary['format']}: {summary['games_started']} games started, "
            f"{summary['games_on_court']} on {summary['courts']} courts, "
            f"{summary['games_queued']} waiting"
        )
        by_status = ", ".join(
            f"{count} {status}" for status, count in sorted(summary["players"].items())
        )
        lines.append(f"Players: {by_status or 'none'}; {summary['pairs']} pairs")

    if result["valid"]:
        lines.append("\nRESULT: VALID (no invariant violations)")
    else:
        lines.append(f"\nRESULT: INVALID ({len(result['errors'])} violations)")

    if result["errors"]:
        lines.append(f"\n--- ERRORS ({len(result['errors'])}) ---")
        for e in result["errors"]:
            lines.append(f"  ERROR: {e}")

    if result["warnings"]:
        lines.append(f"\n--- WARNINGS ({len(result['warnings'])}) ---")
        for w in result["warnings"]:
            lines.append(f"  WARN: {w}")

    return "\n".join(lines)

"""Config loading and game format presets for shuttleq."""

import logging
import uuid
from pathlib import Path

import yaml

from shuttleq.errors import ValidationError
from shuttleq.models import Court, GameFormat, GameSettings
from shuttleq.selection import MAX_SELECTION_ATTEMPTS
from shuttleq.waiting import DEFAULT_CAPACITY

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = GameFormat.DOUBLE

KNOWN_SECTIONS = {"session", "courts", "players"}


def build_game_settings(game_format: GameFormat | str) -> GameSettings:
    """Return the preset settings for a format."""
    if isinstance(game_format, str):
        game_format = parse_format(game_format)

    if game_format is GameFormat.SINGLE:
        return GameSettings(format=game_format, player_number=2,
                            suggestion_size=1, allow_pairs=False)
    if game_format is GameFormat.DOUBLE:
        return GameSettings(format=game_format, player_number=4,
                            suggestion_size=3, allow_pairs=True)
    # Paired doubles: partners share a side of the net
    return GameSettings(format=game_format, player_number=4,
                        suggestion_size=3, allow_pairs=True,
                        keep_partners_together=True)


def parse_format(s: str) -> GameFormat:
    """Parse format names like 'double', 'Paired-Double', 'SINGLE'."""
    try:
        return GameFormat.from_str(str(s))
    except KeyError:
        valid = ", ".join(f.value for f in GameFormat)
        raise ValidationError(f"Unknown game format {s!r}; expected one of {valid}")


def parse_court(entry, index: int) -> Court:
    """Build a Court from a config entry: a name or ``{name, locked}``."""
    if isinstance(entry, str):
        name, locked = entry, False
    elif isinstance(entry, dict):
        name = entry.get("name", f"Court {index + 1}")
        locked = bool(entry.get("locked", False))
    else:
        raise ValidationError(f"Court entry {index + 1} must be a name or a mapping")
    return Court(
        id=str(uuid.uuid4()),
        name=str(name).strip(),
        display_index=index,
        locked=locked,
    )


def _non_negative_int(value, label: str) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be an integer, got {value!r}")
    if n < 0:
        raise ValidationError(f"{label} must be >= 0, got {n}")
    return n


def load_config(path: str | Path) -> dict:
    """Load and validate a session config YAML, returning structured data.

    Returns dict with:
    - settings: GameSettings for the configured format
    - courts: list[Court] in display order
    - players: list of player names for the initial roster
    - waiting_queue_capacity: int (0 disables the waiting queue)
    - max_selection_attempts: int
    """
    path = Path(path)
    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValidationError(f"{path}: top level must be a mapping")

    for key in raw:
        if key not in KNOWN_SECTIONS:
            logger.warning(f"{path}: ignoring unknown section {key!r}")

    # Session
    session = raw.get("session") or {}
    settings = build_game_settings(session.get("format", DEFAULT_FORMAT.value))
    capacity = _non_negative_int(
        session.get("waiting_queue", DEFAULT_CAPACITY), "waiting_queue"
    )
    attempts = _non_negative_int(
        session.get("max_selection_attempts", MAX_SELECTION_ATTEMPTS),
        "max_selection_attempts",
    )
    if attempts == 0:
        raise ValidationError("max_selection_attempts must be at least 1")

    # Courts
    courts = [parse_court(entry, i) for i, entry in enumerate(raw.get("courts") or [])]
    errors = []
    seen: set[str] = set()
    for court in courts:
        if not court.name:
            errors.append(f"Court {court.display_index + 1} has an empty name")
        elif court.name in seen:
            errors.append(f"Duplicate court name: {court.name}")
        seen.add(court.name)
    if not courts:
        logger.warning(f"{path}: no courts configured")

    # Players
    players = [str(p).strip() for p in raw.get("players") or []]
    seen = set()
    for name in players:
        if not name:
            errors.append("Empty player name in roster")
        elif name in seen:
            errors.append(f"Duplicate player name: {name}")
        seen.add(name)

    if errors:
        raise ValidationError(f"{path}: " + "; ".join(errors))

    return {
        "settings": settings,
        "courts": courts,
        "players": players,
        "waiting_queue_capacity": capacity,
        "max_selection_attempts": attempts,
    }

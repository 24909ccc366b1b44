"""Fairness queue keys.

A queue key is a fixed-width token ``RRR-HHHMMSS-PPP``:

- ``RRR``: round index the player was queued into
- ``HHHMMSS``: wall-clock time, hours counted from midnight of the session
  start date so a session running past midnight keeps its order
- ``PPP``: position of the player within the round

Every field is zero-padded, so plain string comparison gives fairness order:
an earlier round sorts first, then an earlier time, then an earlier position.
"""

import re
from datetime import date, datetime

from shuttleq.errors import ConfigurationLimitError, ValidationError

MAX_ROUND = 999
MAX_POSITION = 999
MAX_HOURS = 999

_KEY_RE = re.compile(r"^(\d{3})-(\d{7})-(\d{3})$")


def _time_field(now: datetime, since: date) -> str:
    hours = (now.date() - since).days * 24 + now.hour
    if hours < 0 or hours > MAX_HOURS:
        raise ConfigurationLimitError(
            f"Time offset of {hours} hours is outside 0..{MAX_HOURS}"
        )
    return f"{hours:03d}{now.minute:02d}{now.second:02d}"


def generate_queue_key(round_index: int, position: int,
                       now: datetime | None = None,
                       since: date | None = None) -> str:
    """Build the queue key for a player entering ``round_index`` at ``position``."""
    if not 0 <= round_index <= MAX_ROUND:
        raise ConfigurationLimitError(
            f"Round {round_index} is outside 0..{MAX_ROUND}; "
            f"only {MAX_ROUND} rounds are supported"
        )
    if not 0 <= position <= MAX_POSITION:
        raise ConfigurationLimitError(
            f"Position {position} is outside 0..{MAX_POSITION}; "
            f"only {MAX_POSITION} players per round are supported"
        )
    if now is None:
        now = datetime.now()
    if since is None:
        since = now.date()
    return f"{round_index:03d}-{_time_field(now, since)}-{position:03d}"


def _parse(key: str) -> re.Match:
    m = _KEY_RE.match(key or "")
    if not m:
        raise ValidationError(f"Malformed queue key: {key!r}")
    return m


def queue_key_order(key: str) -> int:
    """Reduce a queue key to an integer ordinal for sorting.

    ``'012-0180446-003'`` reads as round 12, 18:04:46 on the first day,
    position 3 in the round, and becomes ``120180446003``.
    """
    return int("".join(_parse(key).groups()))


def queue_key_round(key: str) -> int:
    """Return the round index encoded in a queue key."""
    return int(_parse(key).group(1))


def queue_key_position(key: str) -> int:
    """Return the position within its round encoded in a queue key."""
    return int(_parse(key).group(3))

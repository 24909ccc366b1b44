"""Tests for queue_key.py: fairness key generation and ordering."""

from datetime import date, datetime

import pytest

from shuttleq.errors import ConfigurationLimitError, ValidationError
from shuttleq.queue_key import (
    MAX_POSITION, MAX_ROUND, generate_queue_key, queue_key_order,
    queue_key_position, queue_key_round,
)

NOW = datetime(2026, 3, 9, 18, 4, 46)


class TestGenerateQueueKey:
    def test_format(self):
        assert generate_queue_key(12, 3, now=NOW) == "012-0180446-003"

    def test_zero_padding(self):
        key = generate_queue_key(0, 0, now=datetime(2026, 3, 9, 0, 0, 5))
        assert key == "000-0000005-000"

    def test_past_midnight(self):
        key = generate_queue_key(1, 0, now=datetime(2026, 3, 10, 1, 2, 3),
                                 since=date(2026, 3, 9))
        assert key == "001-0250203-000"

    def test_round_limit(self):
        generate_queue_key(MAX_ROUND, 0, now=NOW)
        with pytest.raises(ConfigurationLimitError):
            generate_queue_key(MAX_ROUND + 1, 0, now=NOW)

    def test_position_limit(self):
        generate_queue_key(1, MAX_POSITION, now=NOW)
        with pytest.raises(ConfigurationLimitError):
            generate_queue_key(1, MAX_POSITION + 1, now=NOW)

    def test_negative(self):
        with pytest.raises(ConfigurationLimitError):
            generate_queue_key(-1, 0, now=NOW)

    def test_hours_limit(self):
        with pytest.raises(ConfigurationLimitError):
            generate_queue_key(1, 0, now=datetime(2026, 6, 1, 0, 0),
                               since=date(2026, 3, 9))


class TestQueueKeyOrder:
    def test_ordinal(self):
        assert queue_key_order("012-0180446-003") == 120180446003

    def test_round_dominates(self):
        early = generate_queue_key(1, 50, now=datetime(2026, 3, 9, 22, 0))
        late = generate_queue_key(2, 0, now=datetime(2026, 3, 9, 18, 0))
        assert queue_key_order(early) < queue_key_order(late)
        assert early < late

    def test_time_then_position(self):
        a = generate_queue_key(1, 5, now=datetime(2026, 3, 9, 18, 0, 0))
        b = generate_queue_key(1, 0, now=datetime(2026, 3, 9, 18, 0, 1))
        c = generate_queue_key(1, 1, now=datetime(2026, 3, 9, 18, 0, 1))
        assert queue_key_order(a) < queue_key_order(b) < queue_key_order(c)

    def test_malformed(self):
        for bad in ["", "12-0180446-003", "abc-defghij-klm", "012-180446-003"]:
            with pytest.raises(ValidationError):
                queue_key_order(bad)

    def test_round(self):
        assert queue_key_round("012-0180446-003") == 12

    def test_position(self):
        assert queue_key_position("012-0180446-003") == 3

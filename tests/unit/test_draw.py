"""
Tests for the winning-ordinal derivation (draw.py).
"""

import hashlib
import struct

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from custodial_lottery.clock import Clock
from custodial_lottery.draw import compute_winning_ordinal


class TestDerivation:

    def test_matches_hash_prefix_times_slot(self):
        clock = Clock(unix_timestamp=1_700_000_000, slot=250_000_000)
        digest = hashlib.sha256(struct.pack(">q", clock.unix_timestamp)).digest()
        prefix = int.from_bytes(digest[:8], "little")
        value = (prefix * clock.slot) % 2**32

        draw = compute_winning_ordinal(clock, 7)

        assert draw.digest_hex == digest.hex()
        assert draw.prefix == prefix
        assert draw.value == value
        assert draw.winning_ordinal == value % 7

    def test_slot_zero_always_picks_first_ticket(self):
        draw = compute_winning_ordinal(Clock(unix_timestamp=123, slot=0), 50)
        assert draw.value == 0
        assert draw.winning_ordinal == 0

    def test_single_ticket_always_wins(self):
        assert compute_winning_ordinal(Clock(99, 12345), 1).winning_ordinal == 0

    def test_same_clock_same_winner(self):
        clock = Clock(1_650_000_000, 77)
        assert compute_winning_ordinal(clock, 13) == compute_winning_ordinal(clock, 13)

    def test_negative_timestamp_is_signed_big_endian(self):
        draw = compute_winning_ordinal(Clock(-1, 1), 3)
        assert draw.digest_hex == hashlib.sha256(b"\xff" * 8).hexdigest()

    @pytest.mark.parametrize("count", [0, -1])
    def test_no_tickets_rejected(self, count):
        with pytest.raises(ValueError):
            compute_winning_ordinal(Clock(1, 1), count)


class TestRange:

    @given(
        timestamp=st.integers(min_value=0, max_value=2**40),
        slot=st.integers(min_value=0, max_value=2**64 - 1),
        count=st.integers(min_value=1, max_value=2**32 - 1),
    )
    @settings(max_examples=200)
    def test_winner_within_ticket_range(self, timestamp, slot, count):
        draw = compute_winning_ordinal(Clock(timestamp, slot), count)
        assert 0 <= draw.value < 2**32
        assert 0 <= draw.winning_ordinal < count

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass

from .clock import Clock
from .project_constants import DRAW_MODULUS, DRAW_PREFIX_BYTES


@dataclass(frozen=True)
class DrawResult:
    winning_ordinal: int
    ticket_count: int
    clock: Clock
    digest_hex: str
    prefix: int
    value: int


def compute_winning_ordinal(clock: Clock, ticket_count: int) -> DrawResult:
    """
    Pick a 0-based ordinal in [0, ticket_count) from the clock tokens.

    NOT secure: anyone who knows (or picks) the timestamp and slot of the
    draw transaction can compute the winner beforehand.
    """
    if ticket_count <= 0:
        raise ValueError("ticket_count must be positive")

    digest = hashlib.sha256(struct.pack(">q", clock.unix_timestamp)).digest()
    prefix = int.from_bytes(digest[:DRAW_PREFIX_BYTES], "little")
    value = (prefix * clock.slot) % DRAW_MODULUS
    return DrawResult(
        winning_ordinal=value % ticket_count,
        ticket_count=ticket_count,
        clock=clock,
        digest_hex=digest.hex(),
        prefix=prefix,
        value=value,
    )

from __future__ import annotations

import hashlib
import struct
from typing import Sequence

import base58

from .project_constants import (
    LOTTERY_SEED,
    MASTER_SEED,
    PROGRAM_ID,
    TICKET_SEED,
    U32_MAX,
)

MAX_SEEDS = 16
MAX_SEED_LEN = 32
PDA_MARKER = b"ProgramDerivedAddress"


def u32_le(value: int) -> bytes:
    if not 0 <= value <= U32_MAX:
        raise ValueError(f"{value} does not fit in u32")
    return struct.pack("<I", value)


def address_bytes(address: str) -> bytes:
    return base58.b58decode(address)


def derive_address(seeds: Sequence[bytes], program_id: str = PROGRAM_ID) -> str:
    """
    Deterministic address for a namespace + key tuple under a program.

    sha256(seed_0 | ... | seed_n | program_id | marker), base58 encoded.
    Same seeds and program always give the same address; the caller decides
    whether an address is free by asking the store.
    """
    if len(seeds) > MAX_SEEDS:
        raise ValueError(f"At most {MAX_SEEDS} seeds, got {len(seeds)}")

    h = hashlib.sha256()
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise ValueError(f"Seed longer than {MAX_SEED_LEN} bytes: {seed!r}")
        h.update(seed)
    h.update(address_bytes(program_id))
    h.update(PDA_MARKER)
    return base58.b58encode(h.digest()).decode("ascii")


def master_address(program_id: str = PROGRAM_ID) -> str:
    return derive_address([MASTER_SEED.encode()], program_id)


def lottery_address(sequence: int, program_id: str = PROGRAM_ID) -> str:
    return derive_address([LOTTERY_SEED.encode(), u32_le(sequence)], program_id)


def ticket_address(lottery: str, ordinal: int, program_id: str = PROGRAM_ID) -> str:
    # Keyed by the lottery's address, not its sequence number.
    return derive_address(
        [TICKET_SEED.encode(), address_bytes(lottery), u32_le(ordinal)],
        program_id,
    )

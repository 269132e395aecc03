"""
Persistent lottery records and their account layouts.

Every record is the data of one ledger account:

    discriminator (8) | fields...

Integers are little-endian fixed width. Option<u32> always occupies 5 bytes
(tag + value) so a record never changes size after creation. Identities are
u32-length-prefixed UTF-8.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import AccountDiscriminatorMismatch
from .project_constants import U32_MAX, U64_MAX


def discriminator(type_name: str) -> bytes:
    return hashlib.sha256(f"account:{type_name}".encode("utf-8")).digest()[:8]


def _pack_identity(identity: str) -> bytes:
    raw = identity.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


def _unpack_identity(data: bytes, offset: int) -> Tuple[str, int]:
    (length,) = struct.unpack_from("<I", data, offset)
    offset += 4
    raw = data[offset : offset + length]
    if len(raw) != length:
        raise ValueError("Identity runs past end of account data")
    return raw.decode("utf-8"), offset + length


def _check_range(name: str, value: int, upper: int) -> None:
    if not 0 <= value <= upper:
        raise ValueError(f"{name}={value} out of range [0, {upper}]")


def _body(type_name: str, data: bytes) -> bytes:
    expected = discriminator(type_name)
    if data[:8] != expected:
        raise AccountDiscriminatorMismatch(
            f"Account data is not a {type_name} (discriminator {data[:8].hex()})"
        )
    return data[8:]


@dataclass(frozen=True)
class Registry:
    next_sequence: int = 0

    def encode(self) -> bytes:
        _check_range("next_sequence", self.next_sequence, U32_MAX)
        return discriminator("Registry") + struct.pack("<I", self.next_sequence)

    @staticmethod
    def decode(data: bytes) -> "Registry":
        (next_sequence,) = struct.unpack_from("<I", _body("Registry", data), 0)
        return Registry(next_sequence=next_sequence)


@dataclass(frozen=True)
class Lottery:
    sequence: int
    authority: str
    ticket_price: int
    ticket_count: int = 0
    winner_ticket: Optional[int] = None
    claimed: bool = False

    def encode(self) -> bytes:
        _check_range("sequence", self.sequence, U32_MAX)
        _check_range("ticket_price", self.ticket_price, U64_MAX)
        _check_range("ticket_count", self.ticket_count, U32_MAX)
        if self.winner_ticket is not None:
            _check_range("winner_ticket", self.winner_ticket, U32_MAX)

        has_winner = self.winner_ticket is not None
        return b"".join(
            [
                discriminator("Lottery"),
                struct.pack("<I", self.sequence),
                _pack_identity(self.authority),
                struct.pack("<QI", self.ticket_price, self.ticket_count),
                struct.pack("<BI", int(has_winner), self.winner_ticket or 0),
                struct.pack("<?", self.claimed),
            ]
        )

    @staticmethod
    def decode(data: bytes) -> "Lottery":
        body = _body("Lottery", data)
        (sequence,) = struct.unpack_from("<I", body, 0)
        authority, offset = _unpack_identity(body, 4)
        ticket_price, ticket_count = struct.unpack_from("<QI", body, offset)
        tag, winner, claimed = struct.unpack_from("<BI?", body, offset + 12)
        return Lottery(
            sequence=sequence,
            authority=authority,
            ticket_price=ticket_price,
            ticket_count=ticket_count,
            winner_ticket=winner if tag else None,
            claimed=claimed,
        )


@dataclass(frozen=True)
class Ticket:
    ordinal: int
    lottery_sequence: int
    owner: str

    def encode(self) -> bytes:
        _check_range("ordinal", self.ordinal, U32_MAX)
        _check_range("lottery_sequence", self.lottery_sequence, U32_MAX)
        return b"".join(
            [
                discriminator("Ticket"),
                struct.pack("<I", self.ordinal),
                _pack_identity(self.owner),
                struct.pack("<I", self.lottery_sequence),
            ]
        )

    @staticmethod
    def decode(data: bytes) -> "Ticket":
        body = _body("Ticket", data)
        (ordinal,) = struct.unpack_from("<I", body, 0)
        owner, offset = _unpack_identity(body, 4)
        (lottery_sequence,) = struct.unpack_from("<I", body, offset)
        return Ticket(ordinal=ordinal, lottery_sequence=lottery_sequence, owner=owner)

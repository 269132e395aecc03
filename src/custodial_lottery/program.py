"""
program.py - Lottery instructions

Five entry points, each one atomic transaction against a LedgerStore:

    init_registry   -> creates the singleton Registry (next_sequence = 0)
    create_lottery  -> new Lottery at the Registry's next sequence number
    buy_ticket      -> pays ticket_price into the Lottery, issues Ticket #ticket_count
    pick_winner     -> authority-only pseudo-random draw over [0, ticket_count)
    claim_prize     -> winning ticket owner withdraws ticket_price * ticket_count, once

Records are found by derived address only (see addresses.py). Every check
runs inside the transaction, so a failure leaves the store untouched.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Tuple

from . import addresses
from .draw import DrawResult, compute_winning_ordinal
from .errors import (
    AccountNotInitialized,
    AlreadyClaimed,
    ArithmeticOverflow,
    InvalidWinner,
    NoTickets,
    Unauthorized,
    WinnerAlreadyExists,
    WinnerNotChosen,
)
from .records import Lottery, Registry, Ticket
from .store import LedgerStore, Transaction
from .project_constants import U32_MAX, U64_MAX

log = logging.getLogger(__name__)


def _require_identity(identity: str) -> None:
    if not isinstance(identity, str) or not identity.strip():
        raise ValueError("Signer identity cannot be empty")


def _load_lottery(tx: Transaction, lottery_sequence: int) -> Tuple[str, Lottery]:
    address = addresses.lottery_address(lottery_sequence, tx.program_id)
    try:
        data = tx.get_data(address)
    except AccountNotInitialized:
        raise AccountNotInitialized(f"Lottery {lottery_sequence} does not exist") from None
    return address, Lottery.decode(data)


# ============================================================================
# Instructions
# ============================================================================


def init_registry(store: LedgerStore, payer: str) -> str:
    _require_identity(payer)
    with store.transaction() as tx:
        address = addresses.master_address(tx.program_id)
        tx.create_account(address, Registry().encode(), payer=payer)
    log.info("Registry initialized at %s", address)
    return address


def create_lottery(store: LedgerStore, authority: str, ticket_price: int) -> int:
    _require_identity(authority)
    if not 0 <= ticket_price <= U64_MAX:
        raise ValueError(f"ticket_price must fit in u64, got {ticket_price}")

    with store.transaction() as tx:
        master = addresses.master_address(tx.program_id)
        try:
            registry = Registry.decode(tx.get_data(master))
        except AccountNotInitialized:
            raise AccountNotInitialized("Registry has not been initialized") from None

        sequence = registry.next_sequence
        if sequence >= U32_MAX:
            raise ArithmeticOverflow("Lottery sequence space exhausted")

        lottery = Lottery(sequence=sequence, authority=authority, ticket_price=ticket_price)
        tx.create_account(
            addresses.lottery_address(sequence, tx.program_id),
            lottery.encode(),
            payer=authority,
        )
        tx.write_data(master, replace(registry, next_sequence=sequence + 1).encode())

    log.info("Lottery with ID : %d", lottery.sequence)
    log.info("Authority: %s", lottery.authority)
    log.info("Lottery ticket price: %d", lottery.ticket_price)
    return sequence


def buy_ticket(store: LedgerStore, lottery_sequence: int, buyer: str) -> int:
    _require_identity(buyer)
    with store.transaction() as tx:
        lottery_addr, lottery = _load_lottery(tx, lottery_sequence)

        if lottery.winner_ticket is not None:
            raise WinnerAlreadyExists(f"Lottery {lottery_sequence} already has a winner")
        if lottery.ticket_count >= U32_MAX:
            raise ArithmeticOverflow(f"Lottery {lottery_sequence} cannot issue more tickets")

        tx.transfer(buyer, lottery_addr, lottery.ticket_price)

        ticket = Ticket(
            ordinal=lottery.ticket_count,
            lottery_sequence=lottery_sequence,
            owner=buyer,
        )
        tx.create_account(
            addresses.ticket_address(lottery_addr, ticket.ordinal, tx.program_id),
            ticket.encode(),
            payer=buyer,
        )
        tx.write_data(
            lottery_addr,
            replace(lottery, ticket_count=lottery.ticket_count + 1).encode(),
        )

    log.info("Ticket ID: %d", ticket.ordinal)
    log.info("Ticket authority: %s", ticket.owner)
    return ticket.ordinal


def pick_winner(store: LedgerStore, lottery_sequence: int, authority: str) -> DrawResult:
    _require_identity(authority)
    with store.transaction() as tx:
        lottery_addr, lottery = _load_lottery(tx, lottery_sequence)

        if authority != lottery.authority:
            raise Unauthorized(f"{authority} is not the authority of lottery {lottery_sequence}")
        if lottery.winner_ticket is not None:
            raise WinnerAlreadyExists(f"Lottery {lottery_sequence} already has a winner")
        if lottery.ticket_count == 0:
            raise NoTickets(f"Lottery {lottery_sequence} has no tickets")

        # Predictable: see compute_winning_ordinal.
        draw = compute_winning_ordinal(tx.clock, lottery.ticket_count)
        tx.write_data(
            lottery_addr,
            replace(lottery, winner_ticket=draw.winning_ordinal).encode(),
        )

    log.info("Winner id: %d", draw.winning_ordinal)
    log.debug(
        "draw inputs: unix_timestamp=%d slot=%d digest=%s",
        draw.clock.unix_timestamp,
        draw.clock.slot,
        draw.digest_hex,
    )
    return draw


def claim_prize(
    store: LedgerStore, lottery_sequence: int, ticket_ordinal: int, claimant: str
) -> int:
    _require_identity(claimant)
    with store.transaction() as tx:
        lottery_addr, lottery = _load_lottery(tx, lottery_sequence)

        if lottery.claimed:
            raise AlreadyClaimed(f"Lottery {lottery_sequence} prize already claimed")
        if lottery.winner_ticket is None:
            raise WinnerNotChosen(f"Lottery {lottery_sequence} has no winner yet")

        ticket_addr = addresses.ticket_address(lottery_addr, ticket_ordinal, tx.program_id)
        try:
            ticket = Ticket.decode(tx.get_data(ticket_addr))
        except AccountNotInitialized:
            raise AccountNotInitialized(
                f"Ticket {ticket_ordinal} of lottery {lottery_sequence} does not exist"
            ) from None

        if ticket.ordinal != lottery.winner_ticket:
            raise InvalidWinner(
                f"Ticket {ticket.ordinal} is not the winner ({lottery.winner_ticket})"
            )
        if ticket.owner != claimant:
            raise Unauthorized(f"{claimant} does not own ticket {ticket.ordinal}")

        payout = lottery.ticket_price * lottery.ticket_count
        if payout > U64_MAX:
            raise ArithmeticOverflow(
                f"Payout {lottery.ticket_price} * {lottery.ticket_count} overflows u64"
            )

        tx.transfer(lottery_addr, claimant, payout)
        tx.write_data(lottery_addr, replace(lottery, claimed=True).encode())

    log.info(
        "%s claimed %d lamports from lottery id %d with ticket id %d",
        claimant,
        payout,
        lottery_sequence,
        ticket_ordinal,
    )
    return payout


# ============================================================================
# Queries
# ============================================================================


def lottery_address(store: LedgerStore, lottery_sequence: int) -> str:
    return addresses.lottery_address(lottery_sequence, store.program_id)


def ticket_address(store: LedgerStore, lottery_sequence: int, ticket_ordinal: int) -> str:
    return addresses.ticket_address(
        lottery_address(store, lottery_sequence), ticket_ordinal, store.program_id
    )


def get_registry(store: LedgerStore) -> Registry:
    try:
        return Registry.decode(store.get_data(addresses.master_address(store.program_id)))
    except AccountNotInitialized:
        raise AccountNotInitialized("Registry has not been initialized") from None


def get_lottery(store: LedgerStore, lottery_sequence: int) -> Lottery:
    try:
        return Lottery.decode(store.get_data(lottery_address(store, lottery_sequence)))
    except AccountNotInitialized:
        raise AccountNotInitialized(f"Lottery {lottery_sequence} does not exist") from None


def get_ticket(store: LedgerStore, lottery_sequence: int, ticket_ordinal: int) -> Ticket:
    try:
        data = store.get_data(ticket_address(store, lottery_sequence, ticket_ordinal))
    except AccountNotInitialized:
        raise AccountNotInitialized(
            f"Ticket {ticket_ordinal} of lottery {lottery_sequence} does not exist"
        ) from None
    return Ticket.decode(data)


def list_tickets(store: LedgerStore, lottery_sequence: int) -> List[Ticket]:
    lottery = get_lottery(store, lottery_sequence)
    return [get_ticket(store, lottery_sequence, i) for i in range(lottery.ticket_count)]

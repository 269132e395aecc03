"""
helpers.py - Shared test helpers for lottery tests
"""

from __future__ import annotations

from typing import Dict, Iterable

from custodial_lottery import program
from custodial_lottery.clock import FixedClock
from custodial_lottery.project_constants import LAMPORTS_PER_SOL
from custodial_lottery.store import Account, LedgerStore

TIMESTAMP = 1_700_000_000
SLOT = 250_000_000
FUNDS = 10 * LAMPORTS_PER_SOL
PLAYERS = ("admin", "alice", "bob", "carol")


def make_store(
    players: Iterable[str] = PLAYERS,
    funds: int = FUNDS,
    timestamp: int = TIMESTAMP,
    slot: int = SLOT,
    charge_rent: bool = True,
) -> LedgerStore:
    store = LedgerStore(clock_source=FixedClock(timestamp, slot), charge_rent=charge_rent)
    for who in players:
        store.airdrop(who, funds)
    return store


def snapshot(store: LedgerStore) -> Dict[str, Account]:
    """Copy of every account; Account is frozen so equality is by value."""
    return dict(store.accounts)


def total_lamports(store: LedgerStore) -> int:
    return sum(a.lamports for a in store.accounts.values())


def winner_owner(store: LedgerStore, lottery_sequence: int) -> str:
    lottery = program.get_lottery(store, lottery_sequence)
    return program.get_ticket(store, lottery_sequence, lottery.winner_ticket).owner

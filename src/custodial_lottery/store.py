"""
store.py - Reference ledger runtime for the lottery program

Holds accounts (lamport balance + optional record data) keyed by address and
runs every program instruction as one atomic transaction:

    - Writes are staged in a per-transaction overlay and committed together
    - Any exception escaping the transaction body discards the overlay
    - Transactions are serialized behind a single writer lock, so two
      transactions touching the same record never interleave
    - The clock is read once, when the transaction starts

Not a consensus system: it is the smallest runtime that gives the program
the primitives it relies on (addressing, creation, transfer, clock, atomicity).
"""

from __future__ import annotations

import base64
import json
import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Dict, Iterator, Optional

from .clock import Clock, ClockSource, SystemClock
from .errors import AccountAlreadyInUse, AccountNotInitialized, InsufficientFunds
from .project_constants import (
    ACCOUNT_STORAGE_OVERHEAD,
    EXEMPTION_THRESHOLD_YEARS,
    LAMPORTS_PER_BYTE_YEAR,
    PROGRAM_ID,
    STATE_FILE_VERSION,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Account:
    lamports: int = 0
    data: Optional[bytes] = None

    @property
    def initialized(self) -> bool:
        return self.data is not None


def minimum_balance(data_len: int) -> int:
    """Lamports an account of `data_len` bytes must hold to be rent exempt."""
    return (ACCOUNT_STORAGE_OVERHEAD + data_len) * LAMPORTS_PER_BYTE_YEAR * EXEMPTION_THRESHOLD_YEARS


class Transaction:
    """
    Staged view of the store for one instruction.

    Reads see the transaction's own writes first, then committed state.
    Nothing reaches the store until LedgerStore.transaction() commits.
    """

    def __init__(self, store: LedgerStore, clock: Clock) -> None:
        self._store = store
        self.clock = clock
        self._writes: Dict[str, Account] = {}

    @property
    def program_id(self) -> str:
        return self._store.program_id

    def get_account(self, address: str) -> Account:
        if address in self._writes:
            return self._writes[address]
        return self._store.accounts.get(address, Account())

    def get_balance(self, address: str) -> int:
        return self.get_account(address).lamports

    def get_data(self, address: str) -> bytes:
        account = self.get_account(address)
        if account.data is None:
            raise AccountNotInitialized(f"No record at {address}")
        return account.data

    def create_account(self, address: str, data: bytes, payer: str) -> None:
        """Allocate a record at `address`; the payer tops it up to its minimum balance."""
        if self.get_account(address).initialized:
            raise AccountAlreadyInUse(f"Address {address} already in use")

        if self._store.charge_rent:
            shortfall = minimum_balance(len(data)) - self.get_balance(address)
            if shortfall > 0:
                self.transfer(payer, address, shortfall)

        self._writes[address] = replace(self.get_account(address), data=bytes(data))

    def write_data(self, address: str, data: bytes) -> None:
        current = self.get_data(address)
        if len(data) != len(current):
            raise ValueError(
                f"Record at {address} is {len(current)} bytes, refusing write of {len(data)}"
            )
        self._writes[address] = replace(self.get_account(address), data=bytes(data))

    def transfer(self, source: str, dest: str, lamports: int) -> None:
        if lamports < 0:
            raise ValueError(f"Transfer amount must be non-negative, got {lamports}")
        if source == dest:
            raise ValueError("Source and dest must be different")
        if lamports == 0:
            return

        src = self.get_account(source)
        if src.lamports < lamports:
            raise InsufficientFunds(
                f"{source} holds {src.lamports} lamports, needs {lamports}"
            )
        dst = self.get_account(dest)
        self._writes[source] = replace(src, lamports=src.lamports - lamports)
        self._writes[dest] = replace(dst, lamports=dst.lamports + lamports)


class LedgerStore:
    """
    Account store plus transaction runner.

    Example:
        store = LedgerStore(clock_source=FixedClock(1_700_000_000, 42))
        store.airdrop("alice", 10_000_000)
        with store.transaction() as tx:
            tx.transfer("alice", "bob", 1_000)
    """

    def __init__(
        self,
        program_id: str = PROGRAM_ID,
        clock_source: Optional[ClockSource] = None,
        charge_rent: bool = True,
    ) -> None:
        self.program_id = program_id
        self.clock_source = clock_source or SystemClock()
        self.charge_rent = charge_rent
        self.accounts: Dict[str, Account] = {}
        self.last_slot = 0
        self.committed = 0
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Read-only access
    # ------------------------------------------------------------------

    def get_account(self, address: str) -> Account:
        with self._lock:
            return self.accounts.get(address, Account())

    def get_balance(self, address: str) -> int:
        return self.get_account(address).lamports

    def get_data(self, address: str) -> bytes:
        account = self.get_account(address)
        if account.data is None:
            raise AccountNotInitialized(f"No record at {address}")
        return account.data

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def airdrop(self, address: str, lamports: int) -> int:
        """Mint lamports into an account outside any program. Returns the new balance."""
        if lamports <= 0:
            raise ValueError(f"Airdrop amount must be positive, got {lamports}")
        with self._lock:
            account = self.accounts.get(address, Account())
            self.accounts[address] = replace(account, lamports=account.lamports + lamports)
            log.debug("airdrop %d lamports to %s", lamports, address)
            return self.accounts[address].lamports

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        with self._lock:
            tx = Transaction(self, self.clock_source())
            try:
                yield tx
            except BaseException as e:
                log.debug("rollback at slot %d: %s", tx.clock.slot, e)
                raise
            self.accounts.update(tx._writes)
            self.last_slot = max(self.last_slot, tx.clock.slot)
            self.committed += 1
            log.debug(
                "commit #%d at slot %d (%d accounts written)",
                self.committed,
                tx.clock.slot,
                len(tx._writes),
            )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "version": STATE_FILE_VERSION,
                "program_id": self.program_id,
                "slot": self.last_slot,
                "accounts": {
                    address: {
                        "lamports": account.lamports,
                        "data": None
                        if account.data is None
                        else base64.b64encode(account.data).decode("ascii"),
                    }
                    for address, account in sorted(self.accounts.items())
                },
            }

    def save(self, path: str) -> None:
        tmp = f"{path}.tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
        os.replace(tmp, path)

    @classmethod
    def from_dict(
        cls,
        state: dict,
        clock_source: Optional[ClockSource] = None,
        charge_rent: bool = True,
    ) -> LedgerStore:
        version = state.get("version")
        if version != STATE_FILE_VERSION:
            raise RuntimeError(f"Unsupported state file version: {version}")

        last_slot = int(state.get("slot", 0))
        store = cls(
            program_id=state["program_id"],
            clock_source=clock_source or SystemClock(start_slot=last_slot + 1),
            charge_rent=charge_rent,
        )
        store.last_slot = last_slot
        for address, raw in state.get("accounts", {}).items():
            data = raw.get("data")
            store.accounts[address] = Account(
                lamports=int(raw["lamports"]),
                data=None if data is None else base64.b64decode(data),
            )
        return store

    @classmethod
    def load(
        cls,
        path: str,
        clock_source: Optional[ClockSource] = None,
        charge_rent: bool = True,
    ) -> LedgerStore:
        with open(path, "r", encoding="utf-8") as f:
            try:
                state = json.load(f)
            except json.JSONDecodeError as e:
                raise RuntimeError(f"State file {path} is not valid JSON: {e}") from e
        return cls.from_dict(state, clock_source=clock_source, charge_rent=charge_rent)

from __future__ import annotations

import itertools
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .rpc import RpcClient


@dataclass(frozen=True)
class Clock:
    """Moment (unix seconds) and ordering (slot) tokens visible to a transaction."""

    unix_timestamp: int
    slot: int


# Anything returning a fresh Clock on each call.
ClockSource = Callable[[], Clock]


class FixedClock:
    def __init__(self, unix_timestamp: int, slot: int) -> None:
        self.clock = Clock(unix_timestamp, slot)

    def __call__(self) -> Clock:
        return self.clock


class SystemClock:
    """Wall-clock seconds plus a local slot counter advancing once per read."""

    def __init__(self, start_slot: int = 0, time_fn: Optional[Callable[[], float]] = None) -> None:
        self._slots = itertools.count(start_slot)
        self._time_fn = time_fn or time.time
        self._lock = threading.Lock()

    def __call__(self) -> Clock:
        with self._lock:
            slot = next(self._slots)
        return Clock(unix_timestamp=int(self._time_fn()), slot=slot)


class RpcClock:
    """Reads the latest finalized slot and its block time from a node."""

    def __init__(self, rpc: RpcClient, commitment: str = "finalized") -> None:
        self.rpc = rpc
        self.commitment = commitment

    def __call__(self) -> Clock:
        slot = self.rpc.get_slot(self.commitment)
        return Clock(unix_timestamp=self.rpc.get_block_time(slot), slot=slot)

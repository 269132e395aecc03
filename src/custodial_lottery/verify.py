from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict

from .clock import Clock
from .draw import DrawResult, compute_winning_ordinal
from .program import get_lottery, list_tickets
from .store import LedgerStore

TOOL_NAME = "custodial-lottery"
TOOL_VERSION = "1.0.0"


def build_audit(store: LedgerStore, lottery_sequence: int, draw: DrawResult) -> Dict[str, Any]:
    lottery = get_lottery(store, lottery_sequence)
    tickets = list_tickets(store, lottery_sequence)
    winner = tickets[draw.winning_ordinal]

    return {
        "metadata": {
            "tool": TOOL_NAME,
            "version": TOOL_VERSION,
            "generated_at_utc": datetime.now(timezone.utc).isoformat(),
            "program_id": store.program_id,
            "lottery_sequence": lottery_sequence,
            "authority": lottery.authority,
            "ticket_price": lottery.ticket_price,
            "unix_timestamp": draw.clock.unix_timestamp,
            "slot": draw.clock.slot,
            "digest_hex": draw.digest_hex,
            # big ints; store as strings
            "prefix": str(draw.prefix),
            "value": str(draw.value),
            "ticket_count": draw.ticket_count,
            "winning_ordinal": draw.winning_ordinal,
        },
        "winner": {
            "ordinal": winner.ordinal,
            "owner": winner.owner,
        },
        # In ordinal order so anyone can re-run the draw.
        "all_tickets": [{"ordinal": t.ordinal, "owner": t.owner} for t in tickets],
    }


def write_audit(audit: Dict[str, Any], path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(audit, f, indent=2)


def verify_audit(audit_path: str) -> Dict[str, Any]:
    with open(audit_path, "r", encoding="utf-8") as f:
        audit = json.load(f)

    meta = audit["metadata"]
    ticket_count = int(meta["ticket_count"])
    winning_expected = int(meta["winning_ordinal"])

    tickets = audit["all_tickets"]
    ordinals = [int(t["ordinal"]) for t in tickets]
    if ordinals != list(range(ticket_count)):
        raise RuntimeError(
            f"Ticket list mismatch: audit count={ticket_count} listed={len(tickets)}"
        )

    clock = Clock(unix_timestamp=int(meta["unix_timestamp"]), slot=int(meta["slot"]))
    draw = compute_winning_ordinal(clock, ticket_count)
    if draw.digest_hex != meta["digest_hex"]:
        raise RuntimeError(
            f"Digest mismatch: audit={meta['digest_hex']} recomputed={draw.digest_hex}"
        )
    for field, recomputed in (("prefix", draw.prefix), ("value", draw.value)):
        if int(meta[field]) != recomputed:
            raise RuntimeError(
                f"{field.capitalize()} mismatch: audit={meta[field]} recomputed={recomputed}"
            )
    if draw.winning_ordinal != winning_expected:
        raise RuntimeError(
            f"Winning ordinal mismatch: audit={winning_expected} recomputed={draw.winning_ordinal}"
        )

    owner = tickets[draw.winning_ordinal]["owner"]
    owner_expected = audit["winner"]["owner"]
    if owner != owner_expected:
        raise RuntimeError(f"Winner mismatch: audit={owner_expected} recomputed={owner}")

    return {
        "ok": True,
        "digest_hex": draw.digest_hex,
        "value": draw.value,
        "winner": owner,
        "winning_ordinal": draw.winning_ordinal,
        "ticket_count": ticket_count,
    }

from __future__ import annotations

import argparse
import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

from filelock import FileLock, Timeout

from . import program
from .clock import ClockSource, RpcClock, SystemClock
from .config import CLOCK_SOURCES, Settings
from .errors import LotteryError
from .project_constants import LAMPORTS_PER_SOL, U32_MAX, U64_MAX
from .rpc import RpcClient
from .store import LedgerStore
from .verify import build_audit, verify_audit, write_audit

log = logging.getLogger("lottery")


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def to_sol(lamports: int) -> float:
    return round(lamports / LAMPORTS_PER_SOL, 9)


def _bounded_int(name: str, low: int, high: int):
    def parse(raw: str) -> int:
        try:
            value = int(raw)
        except ValueError:
            raise argparse.ArgumentTypeError(f"{name} must be an integer, got {raw!r}")
        if not low <= value <= high:
            raise argparse.ArgumentTypeError(f"{name} must be in [{low}, {high}], got {value}")
        return value

    return parse


u32 = _bounded_int("u32", 0, U32_MAX)
u64 = _bounded_int("u64", 0, U64_MAX)
positive_lamports = _bounded_int("lamports", 1, U64_MAX)


def identity(raw: str) -> str:
    if not raw.strip():
        raise argparse.ArgumentTypeError("identity cannot be empty")
    return raw


@contextmanager
def open_store(args: argparse.Namespace) -> Iterator[LedgerStore]:
    """
    Load the persisted store, hand it out, and save it back if nothing failed.

    An exclusive lock on `<state>.lock` is held from load to save, so
    overlapping invocations run one after the other.
    """
    settings = Settings.from_env(
        state_file_override=args.state,
        rpc_url_override=args.rpc_url,
        clock_override=args.clock,
    )

    rpc: Optional[RpcClient] = None
    clock_source: Optional[ClockSource] = None
    if settings.clock == "rpc":
        rpc = RpcClient(settings.rpc_url, timeout_s=args.timeout)
        clock_source = RpcClock(rpc)

    lock = FileLock(f"{settings.state_file}.lock", timeout=args.lock_timeout)
    try:
        with lock:
            if os.path.exists(settings.state_file):
                store = LedgerStore.load(settings.state_file, clock_source=clock_source)
                if store.program_id != settings.program_id:
                    raise RuntimeError(
                        f"State file belongs to program {store.program_id}, "
                        f"configured program is {settings.program_id}"
                    )
            else:
                log.debug("No state file at %s, starting empty", settings.state_file)
                store = LedgerStore(
                    program_id=settings.program_id,
                    clock_source=clock_source or SystemClock(start_slot=1),
                )

            yield store

            store.save(settings.state_file)
            log.debug("State saved to %s", settings.state_file)
    finally:
        if rpc is not None:
            rpc.close()


def cmd_airdrop(args: argparse.Namespace) -> int:
    with open_store(args) as store:
        balance = store.airdrop(args.to, args.lamports)
    print(f"{args.to}: {balance} lamports ({to_sol(balance)} SOL)")
    return 0


def cmd_init(args: argparse.Namespace) -> int:
    with open_store(args) as store:
        address = program.init_registry(store, args.payer)
    print(f"Registry : {address}")
    return 0


def cmd_create(args: argparse.Namespace) -> int:
    with open_store(args) as store:
        sequence = program.create_lottery(store, args.authority, args.price)
        address = program.lottery_address(store, sequence)
    print(f"Lottery  : {sequence}")
    print(f"Address  : {address}")
    return 0


def cmd_buy(args: argparse.Namespace) -> int:
    with open_store(args) as store:
        ordinal = program.buy_ticket(store, args.lottery, args.buyer)
    print(f"Ticket   : {ordinal}")
    return 0


def cmd_draw(args: argparse.Namespace) -> int:
    with open_store(args) as store:
        draw = program.pick_winner(store, args.lottery, args.authority)
        audit = build_audit(store, args.lottery, draw)

    write_audit(audit, args.out)

    print("========================================")
    print("LOTTERY DRAW")
    print("========================================")
    print(f"Lottery        : {args.lottery}")
    print(f"Unix timestamp : {draw.clock.unix_timestamp}")
    print(f"Slot           : {draw.clock.slot}")
    print(f"Digest SHA-256 : {draw.digest_hex}")
    print("----------------------------------------")
    print("WINNER")
    print(f"Ticket         : {draw.winning_ordinal} of {draw.ticket_count}")
    print(f"Owner          : {audit['winner']['owner']}")
    print("----------------------------------------")
    print(f"Wrote audit: {args.out}")
    return 0


def cmd_claim(args: argparse.Namespace) -> int:
    with open_store(args) as store:
        payout = program.claim_prize(store, args.lottery, args.ticket, args.claimant)
    print(f"Paid {payout} lamports ({to_sol(payout)} SOL) to {args.claimant}")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    with open_store(args) as store:
        lottery = program.get_lottery(store, args.lottery)
        balance = store.get_balance(program.lottery_address(store, args.lottery))
        tickets = program.list_tickets(store, args.lottery)

    winner = "-" if lottery.winner_ticket is None else str(lottery.winner_ticket)
    print(f"Lottery      : {lottery.sequence}")
    print(f"Authority    : {lottery.authority}")
    print(f"Ticket price : {lottery.ticket_price}")
    print(f"Tickets sold : {lottery.ticket_count}")
    print(f"Winner       : {winner}")
    print(f"Claimed      : {'yes' if lottery.claimed else 'no'}")
    print(f"Balance      : {balance} lamports")
    for t in tickets:
        print(f"  #{t.ordinal:<6} {t.owner}")
    return 0


def cmd_balance(args: argparse.Namespace) -> int:
    with open_store(args) as store:
        balance = store.get_balance(args.of)
    print(f"{args.of}: {balance} lamports ({to_sol(balance)} SOL)")
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    result = verify_audit(args.audit)
    print("AUDIT VERIFIED")
    print(f"Winner        : {result['winner']}")
    print(f"Winning ticket: {result['winning_ordinal']}")
    print(f"Total tickets : {result['ticket_count']}")
    print(f"Digest SHA-256: {result['digest_hex']}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="custodial-lottery",
        description="Custodial ticket lottery over a local ledger.",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument("--state", default=None, help="State file (else LOTTERY_STATE_FILE).")
    p.add_argument("--rpc-url", default=None, help="Override RPC URL (else use env).")
    p.add_argument("--timeout", type=float, default=60.0, help="RPC timeout seconds.")
    p.add_argument(
        "--lock-timeout",
        type=float,
        default=30.0,
        help="Seconds to wait for another run holding the state file (-1 waits forever).",
    )
    p.add_argument(
        "--clock",
        choices=CLOCK_SOURCES,
        default=None,
        help="Clock source for draws (else LOTTERY_CLOCK, default system).",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    a = sub.add_parser("airdrop", help="Credit lamports to an identity.")
    a.add_argument("--to", required=True, type=identity)
    a.add_argument("--lamports", required=True, type=positive_lamports)
    a.set_defaults(func=cmd_airdrop)

    i = sub.add_parser("init", help="Create the lottery registry.")
    i.add_argument("--payer", required=True, type=identity)
    i.set_defaults(func=cmd_init)

    c = sub.add_parser("create", help="Create a lottery.")
    c.add_argument("--authority", required=True, type=identity)
    c.add_argument("--price", required=True, type=u64, help="Ticket price in lamports.")
    c.set_defaults(func=cmd_create)

    b = sub.add_parser("buy", help="Buy one ticket.")
    b.add_argument("--lottery", required=True, type=u32)
    b.add_argument("--buyer", required=True, type=identity)
    b.set_defaults(func=cmd_buy)

    d = sub.add_parser("draw", help="Pick the winner and write an audit JSON.")
    d.add_argument("--lottery", required=True, type=u32)
    d.add_argument("--authority", required=True, type=identity)
    d.add_argument("--out", default="audit.json", help="Audit output JSON path.")
    d.set_defaults(func=cmd_draw)

    cl = sub.add_parser("claim", help="Claim the prize with the winning ticket.")
    cl.add_argument("--lottery", required=True, type=u32)
    cl.add_argument("--ticket", required=True, type=u32)
    cl.add_argument("--claimant", required=True, type=identity)
    cl.set_defaults(func=cmd_claim)

    s = sub.add_parser("show", help="Print a lottery and its tickets.")
    s.add_argument("--lottery", required=True, type=u32)
    s.set_defaults(func=cmd_show)

    bal = sub.add_parser("balance", help="Print an account balance.")
    bal.add_argument("--of", required=True, type=identity)
    bal.set_defaults(func=cmd_balance)

    v = sub.add_parser("verify", help="Verify an existing audit.json deterministically.")
    v.add_argument("--audit", required=True, help="Path to audit.json.")
    v.set_defaults(func=cmd_verify)

    return p


def main(argv: Optional[list] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    try:
        code = args.func(args)
    except LotteryError as e:
        log.error("error %d %s: %s", e.code, e.name, e)
        code = 1
    except ValueError as e:
        log.error("error %s: %s", type(e).__name__, e)
        code = 1
    except Timeout as e:
        log.error("error StateLocked: %s", e)
        code = 1
    raise SystemExit(code)

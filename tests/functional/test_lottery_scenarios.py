"""
test_lottery_scenarios.py - End-to-end lottery lifecycles

Each scenario walks registry -> lottery -> tickets -> draw -> claim and
checks balances and records at the end.
"""

import threading

import pytest

from custodial_lottery import program
from custodial_lottery.clock import SystemClock
from custodial_lottery.errors import AlreadyClaimed, InvalidWinner, NoTickets
from custodial_lottery.store import LedgerStore

from tests.helpers import FUNDS, make_store, snapshot, total_lamports


class TestFullLifecycle:

    def test_three_buyers_one_winner(self):
        store = make_store()
        program.init_registry(store, "admin")
        sequence = program.create_lottery(store, "admin", 100)
        ordinals = [program.buy_ticket(store, sequence, b) for b in ("alice", "bob", "carol")]
        assert ordinals == [0, 1, 2]

        winning = program.pick_winner(store, sequence, "admin").winning_ordinal
        assert winning in {0, 1, 2}

        owner = program.get_ticket(store, sequence, winning).owner
        assert program.claim_prize(store, sequence, winning, owner) == 300

        for ordinal in range(3):
            holder = program.get_ticket(store, sequence, ordinal).owner
            with pytest.raises(AlreadyClaimed):
                program.claim_prize(store, sequence, ordinal, holder)

    def test_draw_with_no_tickets(self):
        store = make_store()
        program.init_registry(store, "admin")
        sequence = program.create_lottery(store, "admin", 100)
        with pytest.raises(NoTickets):
            program.pick_winner(store, sequence, "admin")

    def test_invalid_winner_leaves_balances(self):
        store = make_store()
        program.init_registry(store, "admin")
        sequence = program.create_lottery(store, "admin", 100)
        for b in ("alice", "bob", "carol"):
            program.buy_ticket(store, sequence, b)
        winning = program.pick_winner(store, sequence, "admin").winning_ordinal

        loser = (winning + 2) % 3
        before = snapshot(store)
        with pytest.raises(InvalidWinner):
            program.claim_prize(store, sequence, loser, program.get_ticket(store, sequence, loser).owner)
        assert snapshot(store) == before

    def test_without_rent_lottery_ends_empty(self):
        store = make_store(charge_rent=False)
        program.init_registry(store, "admin")
        sequence = program.create_lottery(store, "admin", 1_000)
        for b in ("alice", "bob", "alice", "carol"):
            program.buy_ticket(store, sequence, b)
        address = program.lottery_address(store, sequence)
        assert store.get_balance(address) == 4_000

        winning = program.pick_winner(store, sequence, "admin").winning_ordinal
        owner = program.get_ticket(store, sequence, winning).owner
        program.claim_prize(store, sequence, winning, owner)

        assert store.get_balance(address) == 0
        assert total_lamports(store) == 4 * FUNDS

    def test_two_lotteries_do_not_share_funds(self):
        store = make_store(charge_rent=False)
        program.init_registry(store, "admin")
        first = program.create_lottery(store, "admin", 10)
        second = program.create_lottery(store, "bob", 1_000)
        program.buy_ticket(store, first, "alice")
        program.buy_ticket(store, second, "carol")
        program.buy_ticket(store, second, "carol")

        program.pick_winner(store, first, "admin")
        assert program.claim_prize(store, first, 0, "alice") == 10
        assert store.get_balance(program.lottery_address(store, second)) == 2_000
        assert program.get_lottery(store, second).winner_ticket is None

    def test_conservation_across_lifecycle(self):
        store = make_store()
        start = total_lamports(store)
        program.init_registry(store, "admin")
        sequence = program.create_lottery(store, "admin", 77)
        for b in ("alice", "bob"):
            program.buy_ticket(store, sequence, b)
        winning = program.pick_winner(store, sequence, "admin").winning_ordinal
        program.claim_prize(store, sequence, winning, program.get_ticket(store, sequence, winning).owner)
        assert total_lamports(store) == start


class TestConcurrentPurchases:

    def test_threads_get_contiguous_ordinals(self):
        buyers = [f"buyer_{i}" for i in range(24)]
        store = LedgerStore(clock_source=SystemClock(start_slot=1))
        for b in buyers + ["admin"]:
            store.airdrop(b, FUNDS)
        program.init_registry(store, "admin")
        sequence = program.create_lottery(store, "admin", 500)

        issued = {}
        barrier = threading.Barrier(len(buyers))

        def buy(buyer):
            barrier.wait()
            issued[buyer] = program.buy_ticket(store, sequence, buyer)

        threads = [threading.Thread(target=buy, args=(b,)) for b in buyers]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(issued.values()) == list(range(len(buyers)))
        assert program.get_lottery(store, sequence).ticket_count == len(buyers)
        for buyer, ordinal in issued.items():
            assert program.get_ticket(store, sequence, ordinal).owner == buyer

    def test_threads_create_unique_sequences(self):
        creators = [f"creator_{i}" for i in range(12)]
        store = LedgerStore(clock_source=SystemClock(start_slot=1))
        for c in creators + ["admin"]:
            store.airdrop(c, FUNDS)
        program.init_registry(store, "admin")

        created = []
        lock = threading.Lock()

        def create(creator):
            seq = program.create_lottery(store, creator, 1)
            with lock:
                created.append((seq, creator))

        threads = [threading.Thread(target=create, args=(c,)) for c in creators]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(s for s, _ in created) == list(range(len(creators)))
        for seq, creator in created:
            assert program.get_lottery(store, seq).authority == creator
        assert program.get_registry(store).next_sequence == len(creators)

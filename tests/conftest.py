"""
conftest.py - Shared pytest fixtures for lottery tests

- store:          funded players, fixed clock, no registry yet
- registry_store: store with the registry initialized by "admin"
- lottery:        sequence of a lottery (price 100) created by "admin"
- sold_lottery:   that lottery with tickets 0, 1, 2 sold to alice, bob, carol
"""

import pytest

from custodial_lottery import program

from tests.helpers import make_store


@pytest.fixture
def store():
    return make_store()


@pytest.fixture
def registry_store(store):
    program.init_registry(store, "admin")
    return store


@pytest.fixture
def lottery(registry_store):
    return program.create_lottery(registry_store, "admin", 100)


@pytest.fixture
def sold_lottery(registry_store, lottery):
    for buyer in ("alice", "bob", "carol"):
        program.buy_ticket(registry_store, lottery, buyer)
    return lottery

"""
conftest.py - Shared pytest fixtures for facility tests

Provides common fixtures used across unit, functional and conformance tests:
- Pool configuration
- Host ledger with funded user wallets
- Processors wired to a HostLedger or to fake collaborators
"""

import pytest
from decimal import Decimal

from finova import FacilityConfig, InMemoryLedgerStore, OperationProcessor

from tests.fake_host import POOL_A, POOL_B, FakeTransfer, FixedClock, make_host


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def config():
    """Config with readable pool ids."""
    return FacilityConfig(ordenante_pool=POOL_A, receptor_pool=POOL_B, unit_symbol="USD")


@pytest.fixture
def host():
    """Host ledger: alice and bob hold 1000 each."""
    return make_host()


@pytest.fixture
def store():
    return InMemoryLedgerStore()


@pytest.fixture
def processor(store, host, config):
    """Processor wired to a real HostLedger."""
    return OperationProcessor(
        store=store, transfer=host, clock=host.clock, config=config, verbose=False,
    )


@pytest.fixture
def fake_transfer():
    return FakeTransfer()


@pytest.fixture
def fixed_clock():
    return FixedClock(42)


@pytest.fixture
def fake_processor(store, fake_transfer, fixed_clock, config):
    """Processor wired to fake collaborators."""
    return OperationProcessor(
        store=store, transfer=fake_transfer, clock=fixed_clock, config=config, verbose=False,
    )


@pytest.fixture
def funded_processor(processor):
    """Processor where alice has deposited 100 to the ORDENANTE pool."""
    processor.deposit_order("alice", Decimal("100"))
    return processor

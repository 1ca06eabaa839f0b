"""
Atomicity Conformance Tests

INVARIANT: An operation that raises leaves the store exactly as it found it.

    snapshot_before = store.snapshot()
    op(...) raises FinovaError  ⟹  store.snapshot() == snapshot_before

This covers every rejection path: validation failures, missing records,
insufficient collateral, oversized repayments, arithmetic overflow and a
host transfer that fails after the account update was computed.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from decimal import Decimal

from finova import (
    FacilityConfig, FinovaError, InMemoryLedgerStore, OperationProcessor, TransferFailed,
)

from tests.fake_host import POOL_A, POOL_B, FakeTransfer, FixedClock


def _build(max_value=Decimal("1000")):
    transfer = FakeTransfer()
    store = InMemoryLedgerStore()
    config = FacilityConfig(ordenante_pool=POOL_A, receptor_pool=POOL_B, max_value=max_value)
    processor = OperationProcessor(store, transfer, FixedClock(7), config, verbose=False)
    return transfer, store, processor


def _seed(processor):
    processor.deposit_order("alice", 300)
    processor.borrow("alice", 200, 100)
    processor.deposit_receiver("bob", 50)


# Every entry is expected to raise against the seeded state
REJECTED_OPERATIONS = [
    ("deposit_order", "alice", Decimal("-1")),
    ("deposit_order", "alice", Decimal("0.5")),
    ("deposit_order", "alice", Decimal("701")),
    ("deposit_receiver", "bob", Decimal("951")),
    ("borrow", "carol", Decimal("1"), Decimal("1")),
    ("borrow", "alice", Decimal("1"), Decimal("201")),
    ("borrow", "alice", Decimal("1"), Decimal("1")),
    ("borrow", "bob", Decimal("1"), Decimal("51")),
    ("borrow", "bob", Decimal("-1"), Decimal("1")),
    ("repay", "alice", Decimal("201")),
    ("repay", "bob", Decimal("1")),
    ("repay", "carol", Decimal("0")),
]


class TestRejectionLeavesStoreUntouched:

    @pytest.mark.parametrize("op", REJECTED_OPERATIONS, ids=lambda op: f"{op[0]}-{op[1]}")
    def test_rejected_operation(self, op):
        _, store, processor = _build()
        _seed(processor)
        before = store.snapshot()

        name, user, *args = op
        with pytest.raises(FinovaError):
            getattr(processor, name)(user, *args)

        assert store.snapshot() == before

    def test_failed_transfer_rolls_back_deposit(self):
        transfer, store, processor = _build()
        _seed(processor)
        before = store.snapshot()
        transfer.fail_all = True

        with pytest.raises(TransferFailed):
            processor.deposit_order("alice", Decimal("10"))
        with pytest.raises(TransferFailed):
            processor.deposit_receiver("dave", Decimal("10"))

        assert store.snapshot() == before
        assert not store.has_account("dave")

    @given(
        st.sampled_from(["alice", "bob", "mallory"]),
        st.integers(min_value=0, max_value=1000),
    )
    @settings(max_examples=100, deadline=None)
    def test_rejected_source_never_credited(self, user, amount):
        transfer, store, processor = _build()
        transfer.reject_sources = {"mallory"}
        before = store.snapshot()

        try:
            processor.deposit_order(user, amount)
        except TransferFailed:
            assert user == "mallory"
            assert store.snapshot() == before
        else:
            assert store.get(user).balance == Decimal(amount)
            assert transfer.calls[-1] == (user, POOL_A, Decimal(amount))

"""
fake_host.py - Test Helpers for Host Collaborators

Provides minimal TransferPrimitive and TimeSource implementations for testing
the processor without a full HostLedger, plus a builder for a funded
HostLedger when the real one is wanted.
"""

from __future__ import annotations
from decimal import Decimal
from typing import List, Optional, Set, Tuple

from finova import BlockClock, HostLedger, OperationProcessor, TransferFailed


POOL_A = "pool_ordenante"
POOL_B = "pool_receptor"


class FakeTransfer:
    """
    TransferPrimitive that records every call.

    Example:
        transfer = FakeTransfer(reject_sources={"mallory"})
        transfer.transfer("alice", "pool_a", Decimal("10"))
        transfer.calls  # [("alice", "pool_a", Decimal("10"))]
    """

    def __init__(self, reject_sources: Optional[Set[str]] = None):
        self.calls: List[Tuple[str, str, Decimal]] = []
        self.reject_sources = reject_sources or set()
        self.fail_all = False

    def transfer(self, source: str, dest: str, amount: Decimal) -> None:
        if self.fail_all or source in self.reject_sources:
            raise TransferFailed(f"{source} cannot pay {amount}")
        self.calls.append((source, dest, amount))


class FixedClock:
    """TimeSource that returns whatever height the test sets."""

    def __init__(self, height: int = 0):
        self.height = height

    def current_time(self) -> int:
        return self.height


def make_host(users=("alice", "bob"), funding=Decimal("1000"), clock=None) -> HostLedger:
    """HostLedger at block 100 with both pools registered and each user funded."""
    host = HostLedger(clock=clock or BlockClock(100), verbose=False)
    host.register_wallet(POOL_A)
    host.register_wallet(POOL_B)
    for user in users:
        host.register_wallet(user)
        if funding:
            host.issue(user, funding)
    return host


def state_of(processor: OperationProcessor, user: str):
    """(Account or None, Borrow or None) for a user."""
    return processor.account(user), processor.loan(user)

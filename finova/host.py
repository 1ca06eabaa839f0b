"""
host.py - Reference Host Collaborators

The facility never moves value or reads the clock itself. It calls a
TransferPrimitive and a TimeSource supplied by the host. This module provides
reference implementations for embedding hosts, simulations and tests:

    HostLedger  - single-unit wallet ledger implementing TransferPrimitive
    BlockClock  - logical block height implementing TimeSource

HostLedger keeps the double-entry property: every transfer debits one wallet
and credits another by the same amount, so total supply only changes through
issue() from the system wallet.
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal, Inexact, localcontext
import threading
from typing import Any, Dict, List, Set, Tuple

from .core import ARITHMETIC_PRECISION, TransferFailed, Timestamp, ZERO, validate_amount


# Reserved wallet for issuance. Exempt from balance validation.
SYSTEM_WALLET = "system"


@dataclass(frozen=True, slots=True)
class Transfer:
    """
    Executed, immutable record of one movement of value.

    Attributes:
        amount: Quantity moved
        source: Debited wallet
        dest: Credited wallet
        sequence_number: Monotonic position within the host ledger
        time: Block height when the transfer was applied
    """
    amount: Decimal
    source: str
    dest: str
    sequence_number: int
    time: Timestamp

    def __repr__(self) -> str:
        return f"Transfer#{self.sequence_number}({self.amount}: {self.source}→{self.dest} @{self.time})"


class BlockClock:
    """
    Monotonic block height.

    Height can only move forward, never backward.
    """

    def __init__(self, height: Timestamp = 0):
        if height < 0:
            raise ValueError(f"Block height cannot be negative, got {height}")
        self._height = height

    def current_time(self) -> Timestamp:
        return self._height

    def advance(self, blocks: int = 1) -> Timestamp:
        """Move forward by a number of blocks and return the new height."""
        if blocks < 0:
            raise ValueError(f"Cannot move time backwards by {blocks} blocks")
        self._height += blocks
        return self._height

    def advance_to(self, height: Timestamp) -> None:
        """
        Advance to an absolute block height.

        Raises:
            ValueError: If height is below the current height
        """
        if height < self._height:
            raise ValueError(f"Cannot move time backwards: {height} < {self._height}")
        self._height = height


class HostLedger:
    """
    Single-unit wallet ledger with full validation and audit trail.

    Implements the TransferPrimitive protocol. Wallets must be registered
    before they can send or receive. A transfer either applies completely or
    raises TransferFailed with no balance changed.

    Thread Safety:
        transfer() and register_wallet() hold one ledger-wide lock, so
        concurrent deposits from many users into a shared pool never lose an
        update or reuse a sequence number.

    Example:
        host = HostLedger(verbose=False)
        host.register_wallet("alice")
        host.register_wallet("pool_a")
        host.issue("alice", Decimal("1000"))
        host.transfer("alice", "pool_a", Decimal("100"))
    """

    def __init__(
        self,
        clock: BlockClock | None = None,
        max_value: Decimal | None = None,
        decimal_places: int = 0,
        verbose: bool = True,
    ):
        """
        Create a host ledger.

        Args:
            clock: Time source stamped on each transfer (default: new BlockClock)
            max_value: Largest transferable amount (default: the u128 range)
            decimal_places: Fractional digits allowed in amounts
            verbose: Print each applied or rejected transfer (default: True)
        """
        self.clock = clock or BlockClock()
        self.max_value = max_value
        self.decimal_places = decimal_places
        self.verbose = verbose
        self.balances: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        self.registered_wallets: Set[str] = {SYSTEM_WALLET}
        self.transfer_log: List[Transfer] = []
        self._next_sequence: int = 0
        self._lock = threading.Lock()

    # ========================================================================
    # READ-ONLY
    # ========================================================================

    def get_balance(self, wallet_id: str) -> Decimal:
        """
        Get a wallet's balance.

        Raises:
            TransferFailed: If the wallet is not registered
        """
        if wallet_id not in self.registered_wallets:
            raise TransferFailed(f"Wallet {wallet_id} not registered")
        return self.balances[wallet_id]

    def is_registered(self, wallet_id: str) -> bool:
        return wallet_id in self.registered_wallets

    def list_wallets(self) -> Set[str]:
        return self.registered_wallets.copy()

    def total_supply(self) -> Decimal:
        """Sum of all non-system balances (equal to net issuance)."""
        return sum(
            (self.balances[w] for w in sorted(self.registered_wallets) if w != SYSTEM_WALLET),
            ZERO,
        )

    def verify_conservation(self) -> Dict[str, Any]:
        """
        Verify the double-entry property.

        The system wallet holds the negative of everything issued, so the sum
        over all wallets (system included) must be exactly zero.

        Returns:
            Dict with keys 'valid' (bool), 'supply' (Decimal) and
            'system_balance' (Decimal)
        """
        supply = self.total_supply()
        system_balance = self.balances[SYSTEM_WALLET]
        return {
            'valid': supply + system_balance == ZERO,
            'supply': supply,
            'system_balance': system_balance,
        }

    # ========================================================================
    # MUTATING
    # ========================================================================

    def register_wallet(self, wallet_id: str) -> str:
        """
        Register a new wallet.

        Raises:
            ValueError: If wallet is empty or already registered
        """
        if not wallet_id or not wallet_id.strip():
            raise ValueError("wallet_id cannot be empty")
        with self._lock:
            if wallet_id in self.registered_wallets:
                raise ValueError(f"Wallet {wallet_id} already registered")
            self.registered_wallets.add(wallet_id)
            self.balances[wallet_id] = ZERO
        return wallet_id

    def issue(self, wallet_id: str, amount: Decimal) -> Transfer:
        """Fund a wallet from the system wallet."""
        return self.transfer(SYSTEM_WALLET, wallet_id, amount)

    def transfer(self, source: str, dest: str, amount: Decimal) -> Transfer:
        """
        Move amount from source to dest atomically.

        A zero amount is accepted and recorded without changing balances.
        Validation, the balance update and the log append happen under one
        lock, so sequence numbers are unique and gap-free across threads.

        Returns:
            The logged Transfer record

        Raises:
            TransferFailed: If either wallet is unregistered, source equals
                            dest, the amount is invalid, the source lacks
                            funds, or a new balance cannot be represented
                            exactly. No balance changes.
        """
        with self._lock:
            reason = self._validate(source, dest, amount)
            if not reason:
                amount = Decimal(amount)
                new_source, new_dest, reason = self._apply(source, dest, amount)
            if reason:
                if self.verbose:
                    print(f"✗ TRANSFER REJECTED: {reason}")
                raise TransferFailed(reason)

            record = Transfer(
                amount=amount,
                source=source,
                dest=dest,
                sequence_number=self._next_sequence,
                time=self.clock.current_time(),
            )
            self._next_sequence += 1
            self.balances[source] = new_source
            self.balances[dest] = new_dest
            self.transfer_log.append(record)

        if self.verbose:
            print(f"✓ {record!r}")
        return record

    def _apply(self, source: str, dest: str, amount: Decimal) -> Tuple[Decimal, Decimal, str]:
        """Compute both new balances exactly, or return a failure reason."""
        try:
            with localcontext() as ctx:
                ctx.prec = ARITHMETIC_PRECISION
                ctx.traps[Inexact] = True
                return self.balances[source] - amount, self.balances[dest] + amount, ""
        except Inexact:
            return ZERO, ZERO, f"balances of {source} and {dest} cannot absorb {amount} exactly"

    def _validate(self, source: str, dest: str, amount: Decimal) -> str:
        """
        Validate a transfer against all constraints.

        Returns:
            Empty string if valid, otherwise a description of the failure
        """
        if source not in self.registered_wallets:
            return f"wallet not registered: {source}"
        if dest not in self.registered_wallets:
            return f"wallet not registered: {dest}"
        if source == dest:
            return "source and dest must be different"
        try:
            kwargs = {'decimal_places': self.decimal_places}
            if self.max_value is not None:
                kwargs['max_value'] = self.max_value
            validate_amount(amount, **kwargs)
        except ValueError as e:
            return str(e)
        # System wallet can hold any balance (issuance)
        if source != SYSTEM_WALLET and self.balances[source] < amount:
            return f"{source}: balance {self.balances[source]} < {amount}"
        return ""

"""
processor.py - Operation Processor

The OperationProcessor exposes the facility's public operations and is the
only code that decides state transitions. It holds no per-user state between
calls: every operation reads its records from the store, validates, and
writes the results back.

Operations:
    deposit(pool, user, amount)       - move funds to a pool, credit the account
    deposit_order(user, amount)       - deposit to the ORDENANTE pool
    deposit_receiver(user, amount)    - deposit to the RECEPTOR pool
    borrow(user, amount, collateral)  - lock collateral, open a Borrow
    repay(user, amount)               - reduce the Borrow's principal

Guarantees:
    - All-or-nothing: a rejected operation changes no record and moves no funds
    - Checked arithmetic: any overflow or underflow raises ArithmeticOverflow
    - Per-user serialization: operations for the same user never interleave
    - Always journals: every attempt, applied or rejected, is recorded

Repay only reduces the debt record. It releases no collateral and calls no
transfer, even when the principal reaches zero; collateral stays encumbered.
"""

from __future__ import annotations
from decimal import Decimal
import threading
from typing import Any, Callable, List, Optional, TypeVar

from .config import FacilityConfig
from .core import (
    # Types
    Account, Amount, Borrow, LedgerStore, OperationKind, OperationOutcome,
    OperationRecord, Pool, TimeSource, Timestamp, TransferPrimitive,
    # Exceptions
    AccountNotFound, BorrowAlreadyActive, FinovaError, InsufficientCollateral, LoanNotFound,
    RepayAmountTooHigh,
    # Helper functions
    ZERO, freeze_arguments, validate_amount,
)
from .locks import UserLocks


T = TypeVar("T")


class OperationProcessor:
    """
    Deposit, borrow and repay against a LedgerStore.

    Example:
        host = HostLedger(verbose=False)
        processor = OperationProcessor(
            store=InMemoryLedgerStore(),
            transfer=host,
            clock=host.clock,
            config=FacilityConfig(ordenante_pool="pool_a", receptor_pool="pool_b"),
        )
        processor.deposit_order("alice", Decimal("100"))
        processor.borrow("alice", amount=Decimal("50"), collateral=Decimal("40"))
        processor.repay("alice", Decimal("50"))
    """

    def __init__(
        self,
        store: LedgerStore,
        transfer: TransferPrimitive,
        clock: TimeSource,
        config: Optional[FacilityConfig] = None,
        verbose: bool = True,
    ):
        """
        Create a processor.

        Args:
            store: Authoritative Account/Borrow storage
            transfer: Host primitive used to move deposited funds
            clock: Host time source stamped on new Borrows
            config: Pool destinations and unit limits (default: FacilityConfig())
            verbose: Print each applied or rejected operation (default: True)
        """
        self.store = store
        self.transfer = transfer
        self.clock = clock
        self.config = config or FacilityConfig()
        self.verbose = verbose
        self._locks = UserLocks()
        self._journal: List[OperationRecord] = []
        self._journal_lock = threading.Lock()

    # ========================================================================
    # READ-ONLY
    # ========================================================================

    @property
    def journal(self) -> List[OperationRecord]:
        """Every operation attempt, in order."""
        with self._journal_lock:
            return list(self._journal)

    def account(self, user: str) -> Optional[Account]:
        """Return the user's Account, or None if the user never deposited."""
        try:
            return self.store.get(user)
        except AccountNotFound:
            return None

    def loan(self, user: str) -> Optional[Borrow]:
        """Return the user's Borrow, or None."""
        return self.store.get_borrow(user)

    def encumbered(self, user: str) -> Decimal:
        """Value of the user's balance currently pledged as collateral."""
        account = self.account(user)
        return account.encumbered if account is not None else ZERO

    # ========================================================================
    # OPERATIONS (Mutating)
    # ========================================================================

    def deposit(self, pool: Pool, user: str, amount: Amount) -> Account:
        """
        Move amount from the user to a pool and credit the user's Account.

        The Account is created on first deposit. The overflow check runs
        before the transfer, so an overflowing deposit moves no funds.

        Args:
            pool: Pool.ORDENANTE or Pool.RECEPTOR (or their string values)
            user: Verified caller identity
            amount: Quantity to deposit

        Returns:
            The updated Account

        Raises:
            InvalidAmount: If amount is not a valid quantity
            ArithmeticOverflow: If the new balance would exceed max_value
            TransferFailed: If the host rejects the transfer
        """
        pool = Pool(pool)
        return self._run(OperationKind.DEPOSIT, user, self._apply_deposit, pool=pool, amount=amount)

    def deposit_order(self, user: str, amount: Amount) -> Account:
        """Deposit to the ORDENANTE pool."""
        return self.deposit(Pool.ORDENANTE, user, amount)

    def deposit_receiver(self, user: str, amount: Amount) -> Account:
        """Deposit to the RECEPTOR pool."""
        return self.deposit(Pool.RECEPTOR, user, amount)

    def borrow(self, user: str, amount: Amount, collateral: Amount) -> Borrow:
        """
        Open a Borrow by locking collateral from the user's available balance.

        No relationship between amount and collateral is enforced.

        Args:
            user: Verified caller identity
            amount: Principal borrowed
            collateral: Value locked from available_balance

        Returns:
            The stored Borrow

        Raises:
            InvalidAmount: If amount or collateral is not a valid quantity
            AccountNotFound: If the user has no deposits on record
            InsufficientCollateral: If collateral exceeds available_balance
            BorrowAlreadyActive: If the user already has a Borrow on record
        """
        return self._run(
            OperationKind.BORROW, user, self._apply_borrow, amount=amount, collateral=collateral,
        )

    def repay(self, user: str, amount: Amount) -> Borrow:
        """
        Reduce the user's outstanding principal.

        Args:
            user: Verified caller identity
            amount: Quantity repaid

        Returns:
            The updated Borrow

        Raises:
            InvalidAmount: If amount is not a valid quantity
            LoanNotFound: If the user has no Borrow on record
            RepayAmountTooHigh: If amount exceeds the outstanding principal
        """
        return self._run(OperationKind.REPAY, user, self._apply_repay, amount=amount)

    # ========================================================================
    # STATE TRANSITIONS
    # ========================================================================

    def _value(self, amount: Amount) -> Decimal:
        return validate_amount(amount, self.config.max_value, self.config.decimal_places)

    def _apply_deposit(self, user: str, time: Timestamp, pool: Pool, amount: Amount) -> Account:
        value = self._value(amount)
        destination = self.config.destination(pool)
        account = self.store.get_or_default(user)
        updated = account.credit(value, self.config.max_value)
        self.transfer.transfer(user, destination, value)
        self.store.put(user, updated)
        return updated

    def _apply_borrow(
        self, user: str, time: Timestamp, amount: Amount, collateral: Amount
    ) -> Borrow:
        principal = self._value(amount)
        locked = self._value(collateral)
        account = self.store.get(user)
        if account.available_balance < locked:
            raise InsufficientCollateral(
                f"{user}: collateral {locked} exceeds available balance {account.available_balance}"
            )
        if self.store.get_borrow(user) is not None:
            raise BorrowAlreadyActive(f"{user} already has a borrow on record")

        borrow = Borrow(amount=principal, collateral=locked, borrow_time=time)
        updated = account.lock(locked)
        # Debit first: a Borrow must never exist without its collateral locked
        self.store.put(user, updated)
        try:
            self.store.put_borrow(user, borrow)
        except Exception:
            self.store.put(user, account)
            raise
        return borrow

    def _apply_repay(self, user: str, time: Timestamp, amount: Amount) -> Borrow:
        value = self._value(amount)
        borrow = self.store.get_borrow(user)
        if borrow is None:
            raise LoanNotFound(f"No borrow on record for {user}")
        if value > borrow.amount:
            raise RepayAmountTooHigh(
                f"{user}: repay {value} exceeds outstanding principal {borrow.amount}"
            )
        updated = borrow.reduce(value)
        self.store.put_borrow(user, updated)
        return updated

    # ========================================================================
    # EXECUTION
    # ========================================================================

    def _run(
        self,
        kind: OperationKind,
        user: str,
        apply: Callable[..., T],
        **arguments: Any,
    ) -> T:
        """
        Execute one state transition under the user's lock and journal it.

        FinovaErrors are journaled as REJECTED and re-raised. Anything else
        (a failing store, a broken host) propagates without a journal entry.
        """
        if not user or not user.strip():
            raise ValueError("user cannot be empty")

        with self._locks.hold(user):
            time = self.clock.current_time()
            try:
                result = apply(user, time, **arguments)
            except FinovaError as e:
                self._log(kind, user, arguments, time, OperationOutcome.REJECTED, e)
                raise
            self._log(kind, user, arguments, time, OperationOutcome.APPLIED)
        return result

    def _log(
        self,
        kind: OperationKind,
        user: str,
        arguments: dict,
        time: Timestamp,
        outcome: OperationOutcome,
        error: Optional[FinovaError] = None,
    ) -> None:
        frozen = freeze_arguments(**{
            k: (v.value if isinstance(v, Pool) else v) for k, v in arguments.items()
        })
        with self._journal_lock:
            record = OperationRecord(
                sequence_number=len(self._journal),
                kind=kind,
                user=user,
                arguments=frozen,
                time=time,
                outcome=outcome,
                error=error.kind if error is not None else None,
            )
            self._journal.append(record)

        if self.verbose:
            args = ", ".join(f"{k}={v}" for k, v in frozen)
            if error is None:
                print(f"✓ APPLIED {kind.value} {user}: {args}")
            else:
                print(f"✗ REJECTED {kind.value} {user}: {args} [{error.kind}] {error}")

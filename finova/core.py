"""
Core types and pure functions for the collateralized borrowing facility.

This module provides the foundational data structures and protocols:
1. Protocols: LedgerStore, TransferPrimitive and TimeSource collaborators
2. Immutable data structures: Account, Borrow, OperationRecord
3. Exceptions: FinovaError and the facility's error taxonomy
4. Checked arithmetic: validate_amount, checked_add, checked_sub

Nothing in this module mutates facility state. All balance arithmetic goes
through checked_add/checked_sub, which raise instead of wrapping.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, Inexact, InvalidOperation, localcontext
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Tuple, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Contract ids of the two reserve accounts used when no configuration is given.
DEFAULT_ORDENANTE_POOL = "0x6f53dfc173b316b4a7d370403617429231d406462d0fcbd23fdb2f1ce15306f0"
DEFAULT_RECEPTOR_POOL = "0x1a6e3d6989db4fd42c4283fd69367fff78d4a6c08c88ebf3f927348489177e22"

# Largest representable value (unsigned 128-bit balance range).
DEFAULT_MAX_VALUE = Decimal(2 ** 128 - 1)

# Whole units by default.
DEFAULT_DECIMAL_PLACES = 0

ZERO = Decimal("0")

# Digits carried by checked arithmetic; wide enough for max_value plus fractions.
ARITHMETIC_PRECISION = 60

# Block height.
Timestamp = int

# Value accepted at the public boundary before validation.
Amount = Any


# ============================================================================
# ENUMS
# ============================================================================

class Pool(str, Enum):
    """The two reserve accounts a deposit can be routed to."""
    ORDENANTE = "ordenante"     # Order-side deposits
    RECEPTOR = "receptor"       # Receiver-side deposits


class OperationKind(str, Enum):
    """Public operations exposed by the processor."""
    DEPOSIT = "deposit"
    BORROW = "borrow"
    REPAY = "repay"


class OperationOutcome(str, Enum):
    """
    Outcome of an operation attempt.

    APPLIED: Preconditions held and the state transition was committed.
    REJECTED: A precondition failed; no state changed.
    """
    APPLIED = "applied"
    REJECTED = "rejected"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class FinovaError(Exception):
    """Base exception for all facility errors."""
    kind = "facility_error"


class AccountNotFound(FinovaError):
    """Raised when an operation requires an existing Account and none exists."""
    kind = "account_not_found"


class LoanNotFound(FinovaError):
    """Raised when repay is invoked for a user with no Borrow on record."""
    kind = "loan_not_found"


class InsufficientCollateral(FinovaError):
    """Raised when requested collateral exceeds the account's available balance."""
    kind = "insufficient_collateral"


class RepayAmountTooHigh(FinovaError):
    """Raised when a repayment exceeds the outstanding principal."""
    kind = "repay_amount_too_high"


class BorrowAlreadyActive(FinovaError):
    """Raised when borrow is invoked while the user already has a Borrow on record."""
    kind = "borrow_already_active"


class TransferFailed(FinovaError):
    """Raised when the host transfer primitive rejects a movement of value."""
    kind = "transfer_failed"


class ArithmeticOverflow(FinovaError):
    """Raised when an addition or subtraction would leave the representable range."""
    kind = "arithmetic_overflow"


class InvalidAmount(FinovaError, ValueError):
    """Raised when a value is not a valid quantity of the unit of account."""
    kind = "invalid_amount"


# ============================================================================
# CHECKED ARITHMETIC
# ============================================================================

def validate_amount(
    value: Amount,
    max_value: Decimal = DEFAULT_MAX_VALUE,
    decimal_places: int = DEFAULT_DECIMAL_PLACES,
) -> Decimal:
    """
    Validate and normalize a quantity of the unit of account.

    Ints are converted to Decimal. Floats and bools are refused because they
    cannot represent balances exactly.

    Args:
        value: Candidate quantity
        max_value: Largest representable value
        decimal_places: Maximum number of fractional digits

    Returns:
        The value as a Decimal

    Raises:
        InvalidAmount: If the value is not a finite Decimal in [0, max_value]
                       with at most decimal_places fractional digits
    """
    if isinstance(value, bool) or not isinstance(value, (int, Decimal)):
        raise InvalidAmount(f"Amount must be Decimal or int, got {type(value).__name__}")
    if isinstance(value, int):
        value = Decimal(value)
    if not value.is_finite():
        raise InvalidAmount(f"Amount must be finite, got {value}")
    if value < ZERO:
        raise InvalidAmount(f"Amount cannot be negative, got {value}")
    if value > max_value:
        raise InvalidAmount(f"Amount {value} exceeds maximum {max_value}")
    # 1.50 normalizes to 1.5; only real extra precision is refused.
    # Precision must cover every digit or normalize() would round.
    with localcontext() as ctx:
        ctx.prec = max(ARITHMETIC_PRECISION, len(value.as_tuple().digits))
        normalized = value.normalize()
    if -normalized.as_tuple().exponent > decimal_places:
        raise InvalidAmount(f"Amount {value} has more than {decimal_places} decimal places")
    return value


def checked_add(a: Decimal, b: Decimal, max_value: Decimal = DEFAULT_MAX_VALUE) -> Decimal:
    """
    Add two non-negative values, failing instead of exceeding max_value.

    Raises:
        ArithmeticOverflow: If the sum exceeds max_value or cannot be
                            represented exactly
    """
    try:
        with localcontext() as ctx:
            ctx.prec = ARITHMETIC_PRECISION
            ctx.traps[Inexact] = True
            result = a + b
    except (Inexact, InvalidOperation) as e:
        raise ArithmeticOverflow(f"{a} + {b} is not exactly representable") from e
    if result > max_value:
        raise ArithmeticOverflow(f"{a} + {b} exceeds maximum {max_value}")
    return result


def checked_sub(a: Decimal, b: Decimal) -> Decimal:
    """
    Subtract b from a, failing instead of going below zero.

    Raises:
        ArithmeticOverflow: If the difference would be negative or cannot be
                            represented exactly
    """
    try:
        with localcontext() as ctx:
            ctx.prec = ARITHMETIC_PRECISION
            ctx.traps[Inexact] = True
            result = a - b
    except (Inexact, InvalidOperation) as e:
        raise ArithmeticOverflow(f"{a} - {b} is not exactly representable") from e
    if result < ZERO:
        raise ArithmeticOverflow(f"{a} - {b} underflows below zero")
    return result


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Account:
    """
    Per-user deposit record.

    Attributes:
        balance: Total value deposited by the user.
        available_balance: Portion of balance not pledged as collateral.

    Invariant: 0 <= available_balance <= balance, enforced in __post_init__.
    """
    balance: Decimal = ZERO
    available_balance: Decimal = ZERO

    def __post_init__(self):
        if not isinstance(self.balance, Decimal):
            raise ValueError(f"Account balance must be Decimal, got {type(self.balance)}")
        if not isinstance(self.available_balance, Decimal):
            raise ValueError(
                f"Account available_balance must be Decimal, got {type(self.available_balance)}"
            )
        if self.available_balance < ZERO:
            raise ValueError(f"available_balance cannot be negative, got {self.available_balance}")
        if self.available_balance > self.balance:
            raise ValueError(
                f"available_balance {self.available_balance} exceeds balance {self.balance}"
            )

    @property
    def encumbered(self) -> Decimal:
        """Value currently pledged as collateral."""
        return self.balance - self.available_balance

    def credit(self, amount: Decimal, max_value: Decimal = DEFAULT_MAX_VALUE) -> Account:
        """Return a copy with amount added to both balance and available_balance."""
        return Account(
            balance=checked_add(self.balance, amount, max_value),
            available_balance=checked_add(self.available_balance, amount, max_value),
        )

    def lock(self, collateral: Decimal) -> Account:
        """Return a copy with collateral moved out of available_balance."""
        if collateral > self.available_balance:
            raise InsufficientCollateral(
                f"collateral {collateral} exceeds available balance {self.available_balance}"
            )
        return Account(
            balance=self.balance,
            available_balance=checked_sub(self.available_balance, collateral),
        )


@dataclass(frozen=True, slots=True)
class Borrow:
    """
    An open borrow against pledged collateral.

    Attributes:
        amount: Outstanding principal.
        collateral: Value locked from the borrower's available balance.
        borrow_time: Block height at creation. Never changes.
    """
    amount: Decimal
    collateral: Decimal
    borrow_time: Timestamp

    def __post_init__(self):
        if not isinstance(self.amount, Decimal) or not isinstance(self.collateral, Decimal):
            raise ValueError("Borrow amount and collateral must be Decimal")
        if self.amount < ZERO:
            raise ValueError(f"Borrow amount cannot be negative, got {self.amount}")
        if self.collateral < ZERO:
            raise ValueError(f"Borrow collateral cannot be negative, got {self.collateral}")

    @property
    def is_settled(self) -> bool:
        """True once the principal has been repaid in full."""
        return self.amount == ZERO

    def reduce(self, amount: Decimal) -> Borrow:
        """Return a copy with amount repaid. Collateral and borrow_time are kept."""
        if amount > self.amount:
            raise RepayAmountTooHigh(
                f"repay amount {amount} exceeds outstanding principal {self.amount}"
            )
        return Borrow(
            amount=checked_sub(self.amount, amount),
            collateral=self.collateral,
            borrow_time=self.borrow_time,
        )


@dataclass(frozen=True, slots=True)
class OperationRecord:
    """
    Immutable journal entry for one operation attempt.

    Attributes:
        sequence_number: Monotonic position within the processor's journal
        kind: Which operation was attempted
        user: Verified caller identity
        arguments: Operation arguments (amount, collateral, pool)
        time: Block height when the attempt was made
        outcome: APPLIED or REJECTED
        error: Error kind for rejected attempts
    """
    sequence_number: int
    kind: OperationKind
    user: str
    arguments: Tuple[Tuple[str, Any], ...]
    time: Timestamp
    outcome: OperationOutcome
    error: Optional[str] = None

    @property
    def args(self) -> Dict[str, Any]:
        return dict(self.arguments)

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v}" for k, v in self.arguments)
        tail = f" [{self.error}]" if self.error else ""
        return (
            f"Op#{self.sequence_number}({self.kind.value} {self.user}: {args} "
            f"@{self.time} -> {self.outcome.value}{tail})"
        )


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerStore(Protocol):
    """
    Keyed storage for Accounts and Borrows.

    get() fails on absence and is used where an existing Account is
    required. get_or_default() returns a zero Account and is used only where
    an Account is created on first deposit.
    """

    def get(self, user: str) -> Account:
        """Return the user's Account. Raises AccountNotFound if absent."""
        ...

    def get_or_default(self, user: str) -> Account:
        """Return the user's Account, or a zero Account if absent."""
        ...

    def put(self, user: str, account: Account) -> None:
        ...

    def get_borrow(self, user: str) -> Optional[Borrow]:
        """Return the user's Borrow, or None if absent."""
        ...

    def put_borrow(self, user: str, borrow: Borrow) -> None:
        ...


@runtime_checkable
class TransferPrimitive(Protocol):
    """Host operation that moves value from a user to a pool destination."""

    def transfer(self, source: str, dest: str, amount: Decimal) -> None:
        """
        Move amount from source to dest atomically.

        Raises:
            TransferFailed: If the host rejects the movement. Nothing moves.
        """
        ...


@runtime_checkable
class TimeSource(Protocol):
    """Monotonic block height supplied by the host."""

    def current_time(self) -> Timestamp:
        ...


def freeze_arguments(**kwargs: Any) -> Tuple[Tuple[str, Any], ...]:
    """Convert keyword arguments to a sorted tuple of pairs for journal records."""
    return tuple(sorted(kwargs.items()))

"""
finova - Collateralized Borrowing Facility

Accounting engine for a facility where users deposit into one of two pooled
accounts, pledge part of their deposits as collateral to open a borrow, and
repay the borrow later.

Usage:
    from decimal import Decimal
    from finova import (
        OperationProcessor, InMemoryLedgerStore, HostLedger, FacilityConfig,
    )

    config = FacilityConfig(ordenante_pool="pool_a", receptor_pool="pool_b")
    host = HostLedger(verbose=False)
    for wallet in ("alice", "pool_a", "pool_b"):
        host.register_wallet(wallet)
    host.issue("alice", Decimal("1000"))

    processor = OperationProcessor(
        store=InMemoryLedgerStore(),
        transfer=host,
        clock=host.clock,
        config=config,
    )
    processor.deposit_order("alice", Decimal("100"))
    processor.borrow("alice", amount=Decimal("50"), collateral=Decimal("40"))
    processor.repay("alice", Decimal("50"))
"""

# Core types
from .core import (
    Account,
    Borrow,
    OperationRecord,
    Pool,
    OperationKind,
    OperationOutcome,
    LedgerStore,
    TransferPrimitive,
    TimeSource,
    FinovaError,
    AccountNotFound,
    LoanNotFound,
    InsufficientCollateral,
    RepayAmountTooHigh,
    BorrowAlreadyActive,
    TransferFailed,
    ArithmeticOverflow,
    InvalidAmount,
    validate_amount,
    checked_add,
    checked_sub,
    DEFAULT_ORDENANTE_POOL,
    DEFAULT_RECEPTOR_POOL,
    DEFAULT_MAX_VALUE,
)

# Configuration
from .config import FacilityConfig

# Ledger Store
from .store import InMemoryLedgerStore

# Host collaborators
from .host import HostLedger, BlockClock, Transfer, SYSTEM_WALLET

# Concurrency
from .locks import UserLocks

# Operation Processor
from .processor import OperationProcessor


__all__ = [
    # Core types
    'Account', 'Borrow', 'OperationRecord',
    'Pool', 'OperationKind', 'OperationOutcome',
    'LedgerStore', 'TransferPrimitive', 'TimeSource',
    # Exceptions
    'FinovaError', 'AccountNotFound', 'LoanNotFound', 'InsufficientCollateral',
    'RepayAmountTooHigh', 'BorrowAlreadyActive', 'TransferFailed',
    'ArithmeticOverflow', 'InvalidAmount',
    # Arithmetic
    'validate_amount', 'checked_add', 'checked_sub',
    # Constants
    'DEFAULT_ORDENANTE_POOL', 'DEFAULT_RECEPTOR_POOL', 'DEFAULT_MAX_VALUE',
    'SYSTEM_WALLET',
    # Configuration
    'FacilityConfig',
    # Store
    'InMemoryLedgerStore',
    # Host
    'HostLedger', 'BlockClock', 'Transfer',
    # Concurrency
    'UserLocks',
    # Processor
    'OperationProcessor',
]

__version__ = '1.0.0'

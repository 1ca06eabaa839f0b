"""
store.py - In-memory Ledger Store

The store is the authoritative holder of every Account and Borrow. It is the
only module that keeps facility records, and it performs no validation of
business rules: the processor decides what to write, the store writes it.

Key responsibilities:
    - Implements the LedgerStore protocol (get, get_or_default, put,
      get_borrow, put_borrow)
    - Keyed upserts only; mutation is confined to the written key
    - Snapshots and deep clones for audit and rejection checks
    - verify_invariants() over every stored record
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Set

from .core import Account, AccountNotFound, Borrow, ZERO


class InMemoryLedgerStore:
    """
    Dictionary-backed LedgerStore.

    Accounts and Borrows are frozen dataclasses, so handing them out never
    exposes internal state to mutation.

    Thread Safety:
        Individual calls are dict operations. Read-modify-write sequences
        must be serialized by the caller (the processor holds a per-user lock).

    Example:
        store = InMemoryLedgerStore()
        store.put("alice", Account(Decimal("100"), Decimal("100")))
        store.get("alice").balance  # Decimal("100")
    """

    def __init__(self):
        self._accounts: Dict[str, Account] = {}
        self._borrows: Dict[str, Borrow] = {}

    # ========================================================================
    # LedgerStore PROTOCOL IMPLEMENTATION
    # ========================================================================

    def get(self, user: str) -> Account:
        """
        Get an existing Account.

        Raises:
            AccountNotFound: If the user has no deposits on record
        """
        account = self._accounts.get(user)
        if account is None:
            raise AccountNotFound(f"No account for {user}")
        return account

    def get_or_default(self, user: str) -> Account:
        """Get the user's Account, or a zero Account if none is stored."""
        return self._accounts.get(user, Account())

    def put(self, user: str, account: Account) -> None:
        if not user:
            raise ValueError("user cannot be empty")
        if not isinstance(account, Account):
            raise TypeError(f"Expected Account, got {type(account).__name__}")
        self._accounts[user] = account

    def get_borrow(self, user: str) -> Optional[Borrow]:
        return self._borrows.get(user)

    def put_borrow(self, user: str, borrow: Borrow) -> None:
        if not user:
            raise ValueError("user cannot be empty")
        if not isinstance(borrow, Borrow):
            raise TypeError(f"Expected Borrow, got {type(borrow).__name__}")
        self._borrows[user] = borrow

    # Names used by the host-facing contract
    get_account = get_or_default
    put_account = put

    # ========================================================================
    # INSPECTION
    # ========================================================================

    def has_account(self, user: str) -> bool:
        return user in self._accounts

    def list_users(self) -> Set[str]:
        """Users with an Account or a Borrow on record."""
        return set(self._accounts) | set(self._borrows)

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """
        Return a plain copy of all records.

        Returns:
            {'accounts': {user: Account}, 'borrows': {user: Borrow}}
            Records are immutable, so a shallow dict copy is independent.
        """
        return {
            'accounts': dict(self._accounts),
            'borrows': dict(self._borrows),
        }

    def clone(self) -> InMemoryLedgerStore:
        """Create an independent copy of this store."""
        cloned = InMemoryLedgerStore()
        cloned._accounts = dict(self._accounts)
        cloned._borrows = dict(self._borrows)
        return cloned

    def verify_invariants(self) -> Dict[str, Any]:
        """
        Check the accounting invariants over every stored record.

        Checks:
        1. 0 <= available_balance <= balance for every Account
        2. Every Borrow belongs to a user with an Account
        3. A Borrow's collateral is covered by its Account's encumbered value

        Returns:
            Dict with keys:
            - 'valid': bool - True if every invariant holds
            - 'violations': List[Dict] - one entry per failed check, each with
              user, check and detail

        Example:
            result = store.verify_invariants()
            assert result['valid'], result['violations']
        """
        violations: List[Dict[str, Any]] = []

        for user in sorted(self._accounts):
            account = self._accounts[user]
            if account.available_balance < ZERO:
                violations.append({
                    'user': user,
                    'check': 'available_non_negative',
                    'detail': f"available_balance={account.available_balance}",
                })
            if account.available_balance > account.balance:
                violations.append({
                    'user': user,
                    'check': 'available_within_balance',
                    'detail': f"available_balance={account.available_balance} > balance={account.balance}",
                })

        for user in sorted(self._borrows):
            borrow = self._borrows[user]
            account = self._accounts.get(user)
            if account is None:
                violations.append({
                    'user': user,
                    'check': 'borrow_has_account',
                    'detail': "borrow on record without an account",
                })
                continue
            if borrow.collateral > account.encumbered:
                violations.append({
                    'user': user,
                    'check': 'collateral_encumbered',
                    'detail': f"collateral={borrow.collateral} > encumbered={account.encumbered}",
                })

        return {
            'valid': len(violations) == 0,
            'violations': violations,
        }

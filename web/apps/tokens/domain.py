"""Token accounts and the Token Ledger.

Every student owns one token account. The balance is only ever changed
through ``TokenLedger``, which expresses each mutation as a
compare-and-swap on the account version and retries lost races a bounded
number of times. The balance can never go below zero.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Protocol

from apps.common.errors import InsufficientTokens, InvalidRange, NotFound
from apps.common.retry import RetryPolicy, compare_and_swap

logger = logging.getLogger("tokens")


@dataclass
class TokenAccount:
    """Token balance of one student.

    Attributes:
        student_id: Owner, as issued by the identity provider.
        balance: Tokens available; never negative.
        version: Incremented on every write; used for compare-and-swap.
        updated_at: Last write timestamp.
    """

    student_id: str
    balance: int
    version: int = 0
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ---- Ports ----
class TokenAccountRepository(Protocol):
    """Persistence port for token accounts."""

    def get(self, student_id: str) -> Optional[TokenAccount]:
        raise NotImplementedError()

    def create(self, account: TokenAccount) -> bool:
        """Insert the account unless one exists. Returns True when created."""
        raise NotImplementedError()

    def compare_and_set_balance(self, student_id: str, expected_version: int, balance: int) -> bool:
        """Write ``balance`` only if the stored version is ``expected_version``.

        The write bumps the version. Returns False when the version moved.
        """
        raise NotImplementedError()

    def student_ids(self) -> List[str]:
        raise NotImplementedError()


# ---- Service ----
class TokenLedger:
    """Atomic debit/credit/set on student token balances."""

    def __init__(self, accounts: TokenAccountRepository, retry: Optional[RetryPolicy] = None):
        self.accounts = accounts
        self.retry = retry or RetryPolicy()

    def _load(self, student_id: str):
        def load() -> TokenAccount:
            account = self.accounts.get(student_id)
            if account is None:
                raise NotFound(f"token account {student_id}")
            return account
        return load

    def _store(self, student_id: str):
        def store(account: TokenAccount, balance: int) -> bool:
            return self.accounts.compare_and_set_balance(student_id, account.version, balance)
        return store

    def debit(self, student_id: str, amount: int) -> int:
        """Take ``amount`` tokens from the student.

        Returns:
            int: The new balance.

        Raises:
            InvalidRange: If ``amount`` is not positive.
            InsufficientTokens: If the balance is lower than ``amount``; the
                balance is left untouched.
            NotFound: If the student has no account.
            Conflict: If every conditional write lost its race.
        """
        if amount <= 0:
            raise InvalidRange(f"debit amount {amount}")

        def apply(account: TokenAccount) -> int:
            if account.balance < amount:
                raise InsufficientTokens(f"balance {account.balance} < {amount}")
            return account.balance - amount

        _, balance = compare_and_swap(
            self._load(student_id), apply, self._store(student_id),
            policy=self.retry, label=f"tokens:{student_id}",
        )
        logger.info("tokens debited", extra={"student_id": student_id, "amount": amount, "balance": balance})
        return balance

    def credit(self, student_id: str, amount: int) -> int:
        """Give ``amount`` tokens to the student (refunds, approvals)."""
        if amount <= 0:
            raise InvalidRange(f"credit amount {amount}")

        _, balance = compare_and_swap(
            self._load(student_id), lambda account: account.balance + amount, self._store(student_id),
            policy=self.retry, label=f"tokens:{student_id}",
        )
        logger.info("tokens credited", extra={"student_id": student_id, "amount": amount, "balance": balance})
        return balance

    def set_balance(self, student_id: str, balance: int) -> int:
        """Overwrite the balance (weekly reset). Not a delta."""
        if balance < 0:
            raise InvalidRange(f"balance {balance}")

        _, stored = compare_and_swap(
            self._load(student_id), lambda account: balance, self._store(student_id),
            policy=self.retry, label=f"tokens:{student_id}",
        )
        return stored

    def open_account(self, student_id: str, balance: int) -> bool:
        """Create the student's account with a starting balance.

        Returns:
            bool: False if the account already existed (left unchanged).
        """
        if balance < 0:
            raise InvalidRange(f"balance {balance}")
        created = self.accounts.create(TokenAccount(student_id=student_id, balance=balance))
        if created:
            logger.info("token account opened", extra={"student_id": student_id, "balance": balance})
        return created

    def balance(self, student_id: str) -> int:
        return self._load(student_id)().balance

    def student_ids(self) -> List[str]:
        return self.accounts.student_ids()

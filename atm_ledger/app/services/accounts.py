from __future__ import annotations

import hmac
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from ..core.errors import (
    AuthError,
    ConflictError,
    InsufficientFundsError,
    NotFoundError,
    StaleAccountError,
    StorageError,
    ValidationError,
)
from ..models import Account, EntryType, LedgerEntry
from .repository import DUPLICATE_ACCOUNT_MESSAGE, AccountStore
from .validators import (
    MAX_BALANCE,
    validate_amount,
    validate_credentials,
    validate_opening_balance,
    validate_signup,
)


logger = logging.getLogger(__name__)

DEFAULT_OPENING_BALANCE = Decimal("1000.00")


def _utcnow() -> datetime:
    return datetime.now(UTC)


@contextmanager
def _held(lock: threading.Lock, timeout: float, what: str) -> Iterator[None]:
    if not lock.acquire(timeout=timeout):
        raise StorageError(f"Timed out waiting for {what}")
    try:
        yield
    finally:
        lock.release()


class AccountLocks:
    """One exclusive lock per account id, created on first use.

    Callers only ask for locks on accounts that exist, and accounts are
    never deleted, so the registry is bounded by the number of accounts.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def hold(self, account_id: str, timeout: float):
        with self._guard:
            lock = self._locks.setdefault(account_id, threading.Lock())
        return _held(lock, timeout, f"account {account_id}")


class AccountService:
    """Business rules for signup, login and balance movements.

    Every mutation of an account runs load -> mutate -> save while holding
    that account's lock, and the store's versioned save catches writers in
    other processes; a stale save is reloaded and retried up to
    ``max_retries`` times. Failures are raised before anything is saved.
    """

    def __init__(
        self,
        store: AccountStore,
        *,
        lock_timeout: float = 5.0,
        max_retries: int = 3,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.lock_timeout = lock_timeout
        self.max_retries = max_retries
        self._clock = clock or _utcnow
        self._locks = AccountLocks()
        self._registration_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def create_account(
        self,
        name: Any,
        email: Any,
        card_number: Any,
        pin: Any,
        initial_balance: Any = None,
    ) -> Account:
        fields = validate_signup(name, email, card_number, pin)
        opening_balance = validate_opening_balance(initial_balance)
        if opening_balance is None:
            opening_balance = DEFAULT_OPENING_BALANCE

        with _held(self._registration_lock, self.lock_timeout, "registration"):
            if (
                self.store.find_by_email(fields.email) is not None
                or self.store.find_by_card_number(fields.card_number) is not None
            ):
                logger.info("account.signup_conflict", extra={"email": fields.email})
                raise ConflictError(DUPLICATE_ACCOUNT_MESSAGE)

            account = Account(
                id=uuid4().hex,
                name=fields.name,
                email=fields.email,
                card_number=fields.card_number,
                pin=fields.pin,
                balance=opening_balance,
                created_at=self._clock(),
            )
            self.store.save(account)

        logger.info(
            "account.created",
            extra={"account_id": account.id, "balance": str(account.balance)},
        )
        return account

    def authenticate(self, card_number: Any, pin: Any) -> Account:
        clean_card, pin = validate_credentials(card_number, pin)
        account = self.store.find_by_card_number(clean_card)
        # Same error for unknown card and wrong PIN.
        if account is None or not hmac.compare_digest(
            account.pin.encode("utf-8"), pin.encode("utf-8")
        ):
            logger.info("account.login_failed", extra={"card_suffix": clean_card[-4:]})
            raise AuthError("Invalid card number or PIN")
        logger.info("account.login", extra={"account_id": account.id})
        return account

    def get_account(self, account_id: Any) -> Account:
        return self._load(account_id)

    def deposit(self, account_id: Any, amount: Any) -> Tuple[Decimal, LedgerEntry]:
        return self._apply(account_id, amount, EntryType.DEPOSIT)

    def withdraw(self, account_id: Any, amount: Any) -> Tuple[Decimal, LedgerEntry]:
        return self._apply(account_id, amount, EntryType.WITHDRAW)

    def list_transactions(self, account_id: Any) -> list[LedgerEntry]:
        return list(self._load(account_id).transactions)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _load(self, account_id: Any) -> Account:
        account = None
        if isinstance(account_id, str) and account_id:
            account = self.store.find_by_id(account_id)
        if account is None:
            raise NotFoundError("User not found")
        return account

    def _entry_date(self, account: Account) -> datetime:
        date = self._clock()
        if account.transactions and date <= account.transactions[0].date:
            # Keep history strictly ordered even if the clock stalls.
            date = account.transactions[0].date + timedelta(microseconds=1)
        return date

    def _apply(
        self,
        account_id: Any,
        amount: Any,
        entry_type: EntryType,
    ) -> Tuple[Decimal, LedgerEntry]:
        operation = "deposit" if entry_type is EntryType.DEPOSIT else "withdrawal"
        value = validate_amount(amount, operation)
        if not isinstance(account_id, str) or not account_id.strip():
            raise ValidationError("User id is required")
        # Unknown ids fail here, before a lock is registered for them.
        self._load(account_id)

        with self._locks.hold(account_id, self.lock_timeout):
            for attempt in range(1, self.max_retries + 1):
                account = self._load(account_id)

                if entry_type is EntryType.WITHDRAW:
                    if account.balance < value:
                        raise InsufficientFundsError("Insufficient funds")
                    account.balance -= value
                else:
                    if account.balance + value > MAX_BALANCE:
                        raise ValidationError("Deposit would exceed the maximum balance")
                    account.balance += value

                entry = LedgerEntry(
                    type=entry_type,
                    amount=value,
                    balance_after=account.balance,
                    date=self._entry_date(account),
                )
                account.transactions.insert(0, entry)

                try:
                    self.store.save(account)
                except StaleAccountError:
                    logger.warning(
                        "store.conflict",
                        extra={"account_id": account_id, "attempt": attempt},
                    )
                    continue

                logger.info(
                    f"account.{entry_type.value}",
                    extra={
                        "account_id": account_id,
                        "amount": str(value),
                        "balance": str(account.balance),
                    },
                )
                return account.balance, entry

        raise StorageError(
            f"Could not commit {operation} after {self.max_retries} attempts"
        )

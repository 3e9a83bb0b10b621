from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import UTC, datetime
from decimal import Decimal
from typing import Dict, Optional, Protocol

from sqlalchemy import func, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from ..core.errors import ConflictError, StaleAccountError, StorageError
from ..models import Account, AccountModel, EntryType, LedgerEntry, LedgerEntryModel


logger = logging.getLogger(__name__)

DUPLICATE_ACCOUNT_MESSAGE = "Email or card number already registered"


class AccountStore(Protocol):
    """Persistence contract the account service depends on.

    Accounts handed out are detached copies; nothing changes in the store
    until :meth:`save` is called. ``save`` writes the balance and the whole
    transaction list as one unit and refuses (``StaleAccountError``) when
    the stored version moved since the account was loaded.
    """

    def find_by_id(self, account_id: str) -> Optional[Account]:
        ...

    def find_by_card_number(self, card_number: str) -> Optional[Account]:
        ...

    def find_by_email(self, email: str) -> Optional[Account]:
        ...

    def save(self, account: Account) -> None:
        ...


def _detach(account: Account) -> Account:
    # Entries are frozen, so copying the list is enough.
    return replace(account, transactions=list(account.transactions))


class InMemoryAccountStore:
    """Process-local store, used for tests and the ``memory`` backend."""

    def __init__(self) -> None:
        self._accounts: Dict[str, Account] = {}
        self._lock = threading.RLock()

    def find_by_id(self, account_id: str) -> Optional[Account]:
        with self._lock:
            account = self._accounts.get(account_id)
            return _detach(account) if account is not None else None

    def find_by_card_number(self, card_number: str) -> Optional[Account]:
        return self._find_first(lambda account: account.card_number == card_number)

    def find_by_email(self, email: str) -> Optional[Account]:
        return self._find_first(lambda account: account.email == email)

    def _find_first(self, predicate) -> Optional[Account]:
        with self._lock:
            for account in self._accounts.values():
                if predicate(account):
                    return _detach(account)
        return None

    def save(self, account: Account) -> None:
        with self._lock:
            current = self._accounts.get(account.id)
            stored_version = current.version if current is not None else 0
            if stored_version != account.version:
                raise StaleAccountError(f"Account {account.id} was modified concurrently")

            if current is None:
                for other in self._accounts.values():
                    if other.email == account.email or other.card_number == account.card_number:
                        raise ConflictError(DUPLICATE_ACCOUNT_MESSAGE)

            stored = _detach(account)
            stored.version = account.version + 1
            self._accounts[account.id] = stored
            account.version = stored.version


# SQL backend ---------------------------------------------------------------
def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).to_integral_value())


def from_minor_units(value: int) -> Decimal:
    return (Decimal(value) / 100).quantize(Decimal("0.01"))


def _as_utc(value: datetime) -> datetime:
    # SQLite hands datetimes back without tzinfo.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class SqlAccountStore:
    """AccountStore backed by SQLModel tables, one session per call."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @contextmanager
    def _session(self) -> Iterator[Session]:
        # The sqlite driver raises a bare OverflowError for integers beyond int64.
        try:
            with Session(self.engine) as session:
                yield session
        except (SQLAlchemyError, OverflowError) as exc:
            logger.error("store.failure", extra={"error": str(exc)})
            raise StorageError("Storage backend failure") from exc

    # Reads --------------------------------------------------------------
    def find_by_id(self, account_id: str) -> Optional[Account]:
        with self._session() as session:
            row = session.get(AccountModel, account_id)
            return self._to_domain(session, row) if row is not None else None

    def find_by_card_number(self, card_number: str) -> Optional[Account]:
        with self._session() as session:
            stmt = select(AccountModel).where(AccountModel.card_number == card_number)
            row = session.exec(stmt).first()
            return self._to_domain(session, row) if row is not None else None

    def find_by_email(self, email: str) -> Optional[Account]:
        with self._session() as session:
            stmt = select(AccountModel).where(AccountModel.email == email)
            row = session.exec(stmt).first()
            return self._to_domain(session, row) if row is not None else None

    def _to_domain(self, session: Session, row: AccountModel) -> Account:
        stmt = (
            select(LedgerEntryModel)
            .where(LedgerEntryModel.account_id == row.id)
            .order_by(LedgerEntryModel.seq.desc())
        )
        entries = [
            LedgerEntry(
                type=EntryType(entry.type),
                amount=from_minor_units(entry.amount),
                balance_after=from_minor_units(entry.balance_after),
                date=_as_utc(entry.date),
            )
            for entry in session.exec(stmt)
        ]
        return Account(
            id=row.id,
            name=row.name,
            email=row.email,
            card_number=row.card_number,
            pin=row.pin,
            balance=from_minor_units(row.balance),
            created_at=_as_utc(row.created_at),
            transactions=entries,
            version=row.version,
        )

    # Writes -------------------------------------------------------------
    def save(self, account: Account) -> None:
        is_new = account.version == 0
        with self._session() as session:
            if is_new:
                session.add(
                    AccountModel(
                        id=account.id,
                        name=account.name,
                        email=account.email,
                        card_number=account.card_number,
                        pin=account.pin,
                        balance=to_minor_units(account.balance),
                        created_at=account.created_at,
                        version=1,
                    )
                )
                persisted_count = 0
            else:
                stmt = (
                    update(AccountModel)
                    .where(AccountModel.id == account.id)
                    .where(AccountModel.version == account.version)
                    .values(
                        balance=to_minor_units(account.balance),
                        version=account.version + 1,
                    )
                )
                result = session.connection().execute(stmt)
                if result.rowcount != 1:
                    session.rollback()
                    raise StaleAccountError(f"Account {account.id} was modified concurrently")
                count_stmt = (
                    select(func.count())
                    .select_from(LedgerEntryModel)
                    .where(LedgerEntryModel.account_id == account.id)
                )
                persisted_count = session.exec(count_stmt).one()

            chronological = list(reversed(account.transactions))
            for seq in range(persisted_count, len(chronological)):
                entry = chronological[seq]
                session.add(
                    LedgerEntryModel(
                        account_id=account.id,
                        seq=seq,
                        type=entry.type.value,
                        amount=to_minor_units(entry.amount),
                        balance_after=to_minor_units(entry.balance_after),
                        date=entry.date,
                    )
                )

            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                if is_new:
                    raise ConflictError(DUPLICATE_ACCOUNT_MESSAGE) from exc
                raise StaleAccountError(
                    f"Account {account.id} was modified concurrently"
                ) from exc

        account.version += 1

from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class Account(SQLModel, table=True):
    id: str = Field(primary_key=True, index=True)
    name: str
    email: str = Field(unique=True, index=True)
    card_number: str = Field(unique=True, index=True)
    pin: str
    balance: int = Field(default=0, ge=0, description="Balance in minor units (cents)")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    version: int = Field(default=1)


class LedgerEntry(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("account_id", "seq"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: str = Field(foreign_key="account.id", index=True)
    # Chronological position within the account, starting at 0.
    seq: int
    type: str
    amount: int
    balance_after: int
    date: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)

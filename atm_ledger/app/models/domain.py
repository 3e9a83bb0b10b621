from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum


class EntryType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"


@dataclass(frozen=True)
class LedgerEntry:
    """One balance-affecting event with the balance it left behind."""

    type: EntryType
    amount: Decimal
    balance_after: Decimal
    date: datetime


@dataclass
class Account:
    id: str
    name: str
    email: str
    card_number: str
    pin: str
    balance: Decimal
    created_at: datetime
    # Newest first.
    transactions: list[LedgerEntry] = field(default_factory=list)
    # Revision of the persisted copy this object was loaded from; 0 if never saved.
    version: int = 0

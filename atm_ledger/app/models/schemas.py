from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

from .domain import EntryType

Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Requests ---------------------------------------------------------------
# Fields are deliberately loose: shape and range checks live in the
# service validators so every caller gets the same error messages.
class SignupRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    card_number: Optional[str] = None
    pin: Optional[str] = None
    balance: Optional[Any] = None


class LoginRequest(CamelModel):
    card_number: Optional[str] = None
    pin: Optional[str] = None


class MoneyMovementRequest(CamelModel):
    user_id: Optional[str] = None
    amount: Optional[Any] = None


# Responses --------------------------------------------------------------
class LedgerEntryResponse(CamelModel):
    type: EntryType
    amount: Money
    balance_after: Money
    date: datetime


class AccountSummary(CamelModel):
    id: str
    name: str
    email: str
    card_number: str
    balance: Money


class AccountDetail(AccountSummary):
    transactions: list[LedgerEntryResponse]


class SignupResponse(CamelModel):
    success: bool = True
    message: str
    user: AccountSummary


class LoginResponse(CamelModel):
    success: bool = True
    message: str
    user: AccountDetail


class UserResponse(CamelModel):
    success: bool = True
    user: AccountDetail


class MoneyMovementResponse(CamelModel):
    success: bool = True
    message: str
    balance: Money
    transaction: LedgerEntryResponse


class TransactionsResponse(CamelModel):
    success: bool = True
    transactions: list[LedgerEntryResponse]


class ErrorResponse(CamelModel):
    success: bool = False
    message: str


class HealthResponse(CamelModel):
    message: str
    database: str

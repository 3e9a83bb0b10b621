from .db import Account as AccountModel
from .db import LedgerEntry as LedgerEntryModel
from .domain import Account, EntryType, LedgerEntry
from .schemas import (
    AccountDetail,
    AccountSummary,
    ErrorResponse,
    HealthResponse,
    LedgerEntryResponse,
    LoginRequest,
    LoginResponse,
    MoneyMovementRequest,
    MoneyMovementResponse,
    SignupRequest,
    SignupResponse,
    TransactionsResponse,
    UserResponse,
)

__all__ = [
    "Account",
    "EntryType",
    "LedgerEntry",
    "AccountDetail",
    "AccountSummary",
    "ErrorResponse",
    "HealthResponse",
    "LedgerEntryResponse",
    "LoginRequest",
    "LoginResponse",
    "MoneyMovementRequest",
    "MoneyMovementResponse",
    "SignupRequest",
    "SignupResponse",
    "TransactionsResponse",
    "UserResponse",
    "AccountModel",
    "LedgerEntryModel",
]

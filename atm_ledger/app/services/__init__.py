from .accounts import DEFAULT_OPENING_BALANCE, AccountLocks, AccountService
from .repository import AccountStore, InMemoryAccountStore, SqlAccountStore

__all__ = [
    "DEFAULT_OPENING_BALANCE",
    "AccountLocks",
    "AccountService",
    "AccountStore",
    "InMemoryAccountStore",
    "SqlAccountStore",
]

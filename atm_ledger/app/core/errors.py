class LedgerError(Exception):
    """Base class for every failure the account service reports."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Raised when input is missing or malformed."""


class ConflictError(LedgerError):
    """Raised when an email or card number is already registered."""


class AuthError(LedgerError):
    """Raised for bad credentials; never says which part was wrong."""


class NotFoundError(LedgerError):
    """Raised when an account id is missing from the store."""


class InsufficientFundsError(LedgerError):
    """Raised when a withdrawal would drop balance below zero."""


class StorageError(LedgerError):
    """Raised when the persistence layer fails or times out."""


class StaleAccountError(StorageError):
    """Raised when a save loses a race against another committed write."""

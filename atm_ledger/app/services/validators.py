"""Pure input checks shared by the account service.

Nothing here touches storage; every function either returns normalized
values or raises :class:`ValidationError`.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, NamedTuple, Optional

from ..core.errors import ValidationError

CARD_NUMBER_PATTERN = re.compile(r"^\d{4,16}$")
PIN_PATTERN = re.compile(r"^\d{4,6}$")
CENT = Decimal("0.01")
# Largest balance (and so largest single amount) the ledger accepts; in
# minor units it stays far inside a signed 64-bit column.
MAX_BALANCE = Decimal("999999999999999.99")


class SignupFields(NamedTuple):
    name: str
    email: str
    card_number: str
    pin: str


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_card_number(card_number: str) -> str:
    return re.sub(r"\s+", "", card_number)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_signup(name: Any, email: Any, card_number: Any, pin: Any) -> SignupFields:
    if any(_is_blank(value) for value in (name, email, card_number, pin)):
        raise ValidationError("All fields are required")
    if not all(isinstance(value, str) for value in (name, email, card_number, pin)):
        raise ValidationError("All fields must be strings")

    clean_card = normalize_card_number(card_number)
    if not CARD_NUMBER_PATTERN.match(clean_card):
        raise ValidationError("Card number must be 4-16 digits")
    if not PIN_PATTERN.match(pin):
        raise ValidationError("PIN must be 4-6 digits")

    return SignupFields(
        name=name.strip(),
        email=normalize_email(email),
        card_number=clean_card,
        pin=pin,
    )


def validate_credentials(card_number: Any, pin: Any) -> tuple[str, str]:
    if _is_blank(card_number) or _is_blank(pin):
        raise ValidationError("Card number and PIN are required")
    if not isinstance(card_number, str) or not isinstance(pin, str):
        raise ValidationError("Card number and PIN are required")
    return normalize_card_number(card_number), pin


def _to_decimal(value: Any) -> Optional[Decimal]:
    # bool is an int subclass; True must not read as 1.
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        value = repr(value)
    try:
        number = Decimal(str(value).strip()) if isinstance(value, str) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def _has_sub_cent_precision(number: Decimal) -> bool:
    # Only called on values within MAX_BALANCE, so quantize cannot overflow.
    return number != number.quantize(CENT)


def validate_amount(amount: Any, operation: str = "deposit") -> Decimal:
    """Return ``amount`` as a cent-precision Decimal or raise.

    ``operation`` only shapes the error message (``"deposit"`` or
    ``"withdrawal"``).
    """
    number = _to_decimal(amount)
    if (
        number is None
        or number <= 0
        or number > MAX_BALANCE
        or _has_sub_cent_precision(number)
    ):
        raise ValidationError(f"Invalid {operation} amount")
    return number.quantize(CENT)


def validate_opening_balance(balance: Any) -> Optional[Decimal]:
    # Blank means "not supplied", as in the signup form.
    if _is_blank(balance):
        return None
    number = _to_decimal(balance)
    if (
        number is None
        or number < 0
        or number > MAX_BALANCE
        or _has_sub_cent_precision(number)
    ):
        raise ValidationError("Opening balance must be a non-negative amount")
    return number.quantize(CENT)

"""Input validation utilities."""

import re
from decimal import Decimal, InvalidOperation

from ybs.utils.exceptions import ValidationError


# Safaricom numbers in international form: 2547XXXXXXXX or 2541XXXXXXXX
MPESA_NUMBER_PATTERN = re.compile(r"^254[17]\d{8}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Two decimal places for KSH amounts
MONEY_QUANTUM = Decimal("0.01")
# Largest value a DECIMAL(12, 2) money column holds
MAX_MONEY_AMOUNT = Decimal("9999999999.99")


def normalize_phone_number(phone_number: str | None) -> str:
    """
    Normalize a Kenyan mobile number to 254XXXXXXXXX.

    Accepts +254XXXXXXXXX, 254XXXXXXXXX, 0XXXXXXXXX and XXXXXXXXX.

    Args:
        phone_number: Raw phone number

    Returns:
        Normalized number

    Raises:
        ValidationError: If the number cannot be normalized
    """
    if not phone_number:
        raise ValidationError("Phone number is required")

    digits = re.sub(r"\D", "", phone_number)

    if digits.startswith("254") and len(digits) == 12:
        normalized = digits
    elif digits.startswith("0") and len(digits) == 10:
        normalized = "254" + digits[1:]
    elif len(digits) == 9:
        normalized = "254" + digits
    else:
        normalized = digits

    if not MPESA_NUMBER_PATTERN.match(normalized):
        raise ValidationError(
            "Invalid phone number format. "
            "Use format: 254XXXXXXXXX, 0XXXXXXXXX, or XXXXXXXXX",
            phone_number=phone_number,
        )
    return normalized


def validate_email(email: str | None) -> str | None:
    """
    Validate and lowercase an optional email address.

    Args:
        email: Email or None

    Returns:
        Lowercased email, or None if not given

    Raises:
        ValidationError: If the email is malformed
    """
    if email is None or not email.strip():
        return None
    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email format", email=email)
    return email


def parse_amount(value: Decimal | int | str | float) -> Decimal:
    """
    Parse a positive money amount with at most two decimal places.

    Args:
        value: Raw amount

    Returns:
        Amount as Decimal

    Raises:
        ValidationError: If the amount is not a positive number, has more
            than two decimals or does not fit a money column
    """
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError("Amount must be a number", amount=value) from exc

    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be greater than 0", amount=str(value))

    if amount > MAX_MONEY_AMOUNT:
        raise ValidationError(
            f"Amount cannot exceed {MAX_MONEY_AMOUNT}", amount=str(value)
        )

    try:
        quantized = amount.quantize(MONEY_QUANTUM)
    except InvalidOperation as exc:
        raise ValidationError("Amount is out of range", amount=str(value)) from exc

    if amount != quantized:
        raise ValidationError(
            "Amount cannot have more than 2 decimal places", amount=str(value)
        )
    return amount

"""
Bank CSV amount parser.

Handles the conventions seen in consumer bank exports:
- $1,234.50 / €1,234.50 / £1,234.50 (symbol also yields the currency code)
- 1234.50 / 1,234.50 / " 1 234.50 "  (comma is always a thousands separator)
- (1,234.50)        -> negative (accounting parentheses)
- -1,234.50         -> negative (leading minus)
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from pydantic import BaseModel

CENT = Decimal("0.01")

# Numeric(12, 2) money columns hold magnitudes strictly below this
MONEY_LIMIT = Decimal(10) ** 10

# Symbol -> ISO code
CURRENCY_SYMBOLS = {
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
}


class AmountParseResult(BaseModel):
    amount: Optional[Decimal] = None
    raw_text: str
    is_negative: bool = False
    sign_convention: Optional[str] = None  # PARENTHESES, MINUS, NONE
    currency: Optional[str] = None  # from a currency symbol, if one was present


class AmountParseError(ValueError):
    """Raised by require_amount when a cell cannot be read as money."""


def parse_amount(raw: str) -> AmountParseResult:
    """
    Parse a signed monetary amount. Never raises; amount is None on failure.
    The result is rounded half-up to cents.
    """
    s = (raw or "").strip()
    currency = None

    for symbol, code in CURRENCY_SYMBOLS.items():
        if symbol in s:
            currency = currency or code
            s = s.replace(symbol, "")

    s = s.replace(",", "")
    s = "".join(s.split())

    if not s:
        return AmountParseResult(raw_text=raw or "", currency=currency)

    is_negative = False
    sign_convention = "NONE"

    # (123.45) -> -123.45
    if s.startswith("(") and s.endswith(")"):
        s = "-" + s[1:-1]
        sign_convention = "PARENTHESES"
    elif s.startswith("-"):
        sign_convention = "MINUS"

    try:
        amount = Decimal(s)
    except (InvalidOperation, ValueError):
        return AmountParseResult(raw_text=raw, currency=currency)

    if not amount.is_finite():
        return AmountParseResult(raw_text=raw, currency=currency)

    try:
        amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # More digits than the decimal context can hold
        return AmountParseResult(raw_text=raw, currency=currency)
    is_negative = amount < 0

    return AmountParseResult(
        amount=amount,
        raw_text=raw,
        is_negative=is_negative,
        sign_convention=sign_convention,
        currency=currency,
    )


def require_amount(raw: str, field_name: str = "amount", blank_as_zero: bool = False) -> AmountParseResult:
    """
    Like parse_amount but raises AmountParseError with a row-log friendly message.
    Values that would not fit a money column are rejected here rather than at insert.
    """
    if raw is None or not raw.strip():
        if blank_as_zero:
            return AmountParseResult(amount=Decimal("0.00"), raw_text=raw or "", sign_convention="NONE")
        raise AmountParseError(f"{field_name.capitalize()} is empty")
    result = parse_amount(raw)
    if result.amount is None:
        raise AmountParseError(f"Invalid {field_name}: '{raw.strip()}'")
    if abs(result.amount) >= MONEY_LIMIT:
        raise AmountParseError(f"{field_name.capitalize()} out of range: '{raw.strip()}'")
    return result

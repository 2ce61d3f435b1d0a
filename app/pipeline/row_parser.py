"""
Single CSV data row -> ParsedTransaction.
Raises ValueError with a short, human-readable message on any bad cell.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from app.models.enums import TransactionType
from app.pipeline.amount_parser import require_amount
from app.pipeline.column_resolver import NOT_FOUND, ColumnMapping
from app.pipeline.date_parser import require_date


@dataclass(frozen=True)
class ParsedTransaction:
    transaction_date: date
    description: Optional[str]
    amount: Decimal  # absolute value
    type: TransactionType
    currency: str
    balance: Optional[Decimal] = None
    date_ambiguous: bool = False


def _cell(row: Sequence[str], index: int, column: str, required: bool) -> Optional[str]:
    if index == NOT_FOUND:
        if required:
            raise ValueError(f"No {column} column found in header")
        return None
    if index >= len(row):
        if required:
            raise ValueError(f"Missing {column} value (row has {len(row)} columns)")
        return None
    return row[index]


def parse_transaction_row(
    row: Sequence[str],
    columns: ColumnMapping,
    default_currency: str = "USD",
) -> ParsedTransaction:
    """Parse one data row. Sign of the amount decides DEBIT/CREDIT."""
    date_result = require_date(_cell(row, columns.date, "date", required=True))
    # A blank amount cell (one side of a Debit/Credit split export) imports as zero
    amount_result = require_amount(
        _cell(row, columns.amount, "amount", required=True), blank_as_zero=True
    )

    description = _cell(row, columns.description, "description", required=False)
    description = description.strip() if description else None

    balance = None
    raw_balance = _cell(row, columns.balance, "balance", required=False)
    if raw_balance and raw_balance.strip():
        balance = require_amount(raw_balance, "balance").amount

    signed = amount_result.amount
    return ParsedTransaction(
        transaction_date=date_result.parsed_date,
        description=description or None,
        amount=abs(signed),
        type=TransactionType.DEBIT if signed < 0 else TransactionType.CREDIT,
        currency=amount_result.currency or default_currency,
        balance=balance,
        date_ambiguous=date_result.is_ambiguous,
    )

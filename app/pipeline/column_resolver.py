"""
Header-row column resolution for bank CSV exports.

Each logical column has a synonym list. A header matches when its
lower-cased, trimmed text contains any synonym. Headers are scanned left
to right and the first matching header wins, so "Transaction Date" and
"Date Posted" both resolve to the date column.
"""

from dataclasses import dataclass
from typing import Sequence

NOT_FOUND = -1

COLUMN_SYNONYMS: dict[str, tuple[str, ...]] = {
    "date": ("date", "transaction date", "trans date"),
    "description": ("description", "desc", "memo", "details"),
    "amount": ("amount", "value", "debit", "credit"),
    "balance": ("balance", "running balance"),
}


@dataclass(frozen=True)
class ColumnMapping:
    date: int = NOT_FOUND
    description: int = NOT_FOUND
    amount: int = NOT_FOUND
    balance: int = NOT_FOUND

    @property
    def missing_required(self) -> list[str]:
        return [name for name in ("date", "amount") if getattr(self, name) == NOT_FOUND]


def find_column(headers: Sequence[str], synonyms: Sequence[str]) -> int:
    """Index of the first header containing any synonym, or NOT_FOUND."""
    for index, header in enumerate(headers):
        normalised = (header or "").strip().lower()
        if any(s in normalised for s in synonyms):
            return index
    return NOT_FOUND


def resolve_columns(headers: Sequence[str]) -> ColumnMapping:
    """Best-effort mapping; unresolved columns are NOT_FOUND rather than an error."""
    return ColumnMapping(**{
        column: find_column(headers, synonyms)
        for column, synonyms in COLUMN_SYNONYMS.items()
    })

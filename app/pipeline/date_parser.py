"""
Transaction date parser for bank CSV exports.

Strategy: try a fixed, ordered list of formats and take the first one that
parses. The order is part of the contract: "01/02/2024" is read as
2 January (US) because MM/DD/YYYY is tried before DD/MM/YYYY.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel


class DateParseResult(BaseModel):
    parsed_date: Optional[date] = None
    raw_text: str
    format_detected: Optional[str] = None
    is_ambiguous: bool = False
    ambiguity_note: Optional[str] = None


class DateParseError(ValueError):
    """Raised by require_date when no format matches."""


# (strptime pattern, label). Order matters.
DATE_FORMATS = [
    ("%Y-%m-%d", "YYYY-MM-DD"),
    ("%m/%d/%Y", "MM/DD/YYYY"),
    ("%d/%m/%Y", "DD/MM/YYYY"),
    ("%Y/%m/%d", "YYYY/MM/DD"),
]

# Formats whose day/month fields could be swapped by the other numeric format
_SWAPPABLE = {"MM/DD/YYYY": "%d/%m/%Y", "DD/MM/YYYY": "%m/%d/%Y"}


def _try(raw: str, pattern: str) -> Optional[date]:
    try:
        return datetime.strptime(raw, pattern).date()
    except ValueError:
        return None


def parse_date(raw: str) -> DateParseResult:
    """Parse a date cell. Never raises; parsed_date is None when nothing matches."""
    s = (raw or "").strip()
    if not s:
        return DateParseResult(raw_text=raw or "")

    for pattern, label in DATE_FORMATS:
        parsed = _try(s, pattern)
        if parsed is None:
            continue

        is_ambiguous = False
        note = None
        other = _SWAPPABLE.get(label)
        if other:
            alternative = _try(s, other)
            if alternative is not None and alternative != parsed:
                is_ambiguous = True
                note = f"{label} chosen; would be {alternative.isoformat()} with day/month swapped"

        return DateParseResult(
            parsed_date=parsed,
            raw_text=raw,
            format_detected=label,
            is_ambiguous=is_ambiguous,
            ambiguity_note=note,
        )

    return DateParseResult(raw_text=raw)


def require_date(raw: str) -> DateParseResult:
    if raw is None or not raw.strip():
        raise DateParseError("Date is empty")
    result = parse_date(raw)
    if result.parsed_date is None:
        raise DateParseError(f"Unable to parse date: '{raw.strip()}'")
    return result

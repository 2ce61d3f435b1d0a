"""
Structured invoice analysis returned by an LLM provider.

Provider output is untrusted: blank strings count as missing, money is
parsed into Decimal and currency codes are normalised. Values that can't
be read, including a confidence outside [0, 1], are dropped to None rather
than guessed.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.pipeline.amount_parser import parse_amount
from app.pipeline.date_parser import parse_date

_camel = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _to_decimal(value: Any) -> Optional[Decimal]:
    value = _blank_to_none(value)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float)):
        try:
            parsed = Decimal(str(value))
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None
    if isinstance(value, str):
        # Plain numbers keep full precision; "$1,234.50" style goes through the money parser
        try:
            parsed = Decimal(value.strip())
        except InvalidOperation:
            return parse_amount(value).amount
        return parsed if parsed.is_finite() else None
    return None


def _to_date(value: Any) -> Optional[date]:
    value = _blank_to_none(value)
    if value is None or isinstance(value, date):
        return value
    if isinstance(value, str):
        return parse_date(value[:10] if len(value) > 10 and value[4] == "-" else value).parsed_date
    return None


def _to_text(value: Any) -> Optional[str]:
    value = _blank_to_none(value)
    if value is None:
        return None
    return str(value).strip()


class ExtractedLineItem(BaseModel):
    model_config = _camel

    description: Optional[str] = None
    quantity: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None
    total_price: Optional[Decimal] = None
    category: Optional[str] = None
    sku: Optional[str] = None

    @field_validator("description", "category", "sku", mode="before")
    @classmethod
    def _text(cls, v):
        return _to_text(v)

    @field_validator("quantity", "unit_price", "total_price", mode="before")
    @classmethod
    def _money(cls, v):
        return _to_decimal(v)


class AnalysisResult(BaseModel):
    model_config = _camel

    vendor_name: Optional[str] = None
    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = Field(default=None, alias="date")
    due_date: Optional[date] = None
    total_amount: Optional[Decimal] = None
    currency: Optional[str] = None
    tax_amount: Optional[Decimal] = None
    suggested_category: Optional[str] = None
    suggested_subcategory: Optional[str] = None
    confidence: Optional[Decimal] = None
    payment_method: Optional[str] = None
    line_items: list[ExtractedLineItem] = Field(default_factory=list)
    vendor_address: Optional[str] = None
    vendor_phone: Optional[str] = None
    vendor_email: Optional[str] = None

    @field_validator(
        "vendor_name", "invoice_number", "suggested_category", "suggested_subcategory",
        "payment_method", "vendor_address", "vendor_phone", "vendor_email",
        mode="before",
    )
    @classmethod
    def _text(cls, v):
        return _to_text(v)

    @field_validator("invoice_date", "due_date", mode="before")
    @classmethod
    def _dates(cls, v):
        return _to_date(v)

    @field_validator("total_amount", "tax_amount", mode="before")
    @classmethod
    def _money(cls, v):
        return _to_decimal(v)

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, v):
        text = _to_text(v)
        if text is None:
            return None
        code = text.upper()
        return code if len(code) == 3 and code.isalpha() else None

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v):
        value = _to_decimal(v)
        if value is None:
            return None
        # Outside [0, 1] is not a usable score (often a percentage); treat as missing
        if not Decimal("0") <= value <= Decimal("1"):
            return None
        return value

    @field_validator("line_items", mode="before")
    @classmethod
    def _items(cls, v):
        if v is None:
            return []
        return [item for item in v if isinstance(item, dict)] if isinstance(v, list) else []

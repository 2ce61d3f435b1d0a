"""
AnalysisResult -> Invoice field mapping.

Defaulting policy lives in two rule tables (INVOICE_RULES, LINE_ITEM_RULES).
Each rule reads one attribute from the provider result, keeps it if it is
acceptable, otherwise falls back to the rule's default (or None).
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Any, Callable, Optional, Sequence

from app.models.tables import Category, Invoice, LineItem
from app.pipeline.amount_parser import MONEY_LIMIT
from app.schemas.analysis import AnalysisResult, ExtractedLineItem

CENT = Decimal("0.01")
MILLI = Decimal("0.001")

# Numeric(10, 3) quantity column
QUANTITY_LIMIT = Decimal(10) ** 7


@dataclass(frozen=True)
class MappingContext:
    created_at: datetime
    default_currency: str


def _present(value: Any) -> bool:
    return value is not None


def _money(value: Optional[Decimal]) -> Optional[Decimal]:
    return None if value is None else value.quantize(CENT, rounding=ROUND_HALF_UP)


def _fits_money(value: Decimal) -> bool:
    return abs(value) < MONEY_LIMIT


def _usable_price(value: Decimal) -> bool:
    return Decimal("0") <= value < MONEY_LIMIT


def _quantity(value: Decimal) -> Decimal:
    return value.quantize(MILLI, rounding=ROUND_HALF_UP)


def _usable_quantity(value: Decimal) -> bool:
    # Must still be positive once rounded to the stored precision
    return Decimal("0") < value < QUANTITY_LIMIT and _quantity(value) > 0


def _truncate(limit: int) -> Callable[[Optional[str]], Optional[str]]:
    return lambda value: None if value is None else value[:limit]


def _stored_confidence(value: Optional[Decimal]) -> Optional[Decimal]:
    # Floor so a stored 0.7000 can never belong to a below-threshold result
    return None if value is None else value.quantize(Decimal("0.0001"), rounding=ROUND_FLOOR)


@dataclass(frozen=True)
class FieldRule:
    target: str
    source: str
    default: Optional[Callable[[MappingContext], Any]] = None
    accept: Callable[[Any], bool] = _present
    transform: Optional[Callable[[Any], Any]] = None

    def resolve(self, result: Any, ctx: MappingContext) -> Any:
        value = getattr(result, self.source, None)
        if not (value is not None and self.accept(value)):
            value = self.default(ctx) if self.default else None
        if value is not None and self.transform:
            value = self.transform(value)
        return value


INVOICE_RULES: tuple[FieldRule, ...] = (
    FieldRule("vendor_name", "vendor_name"),
    FieldRule("invoice_number", "invoice_number", transform=_truncate(100)),
    FieldRule("invoice_date", "invoice_date", default=lambda ctx: ctx.created_at.date()),
    FieldRule("due_date", "due_date"),
    FieldRule("total_amount", "total_amount", default=lambda ctx: Decimal("0"), accept=_fits_money,
              transform=_money),
    FieldRule("currency", "currency", default=lambda ctx: ctx.default_currency),
    FieldRule("tax_amount", "tax_amount", accept=_fits_money, transform=_money),
    FieldRule("payment_method", "payment_method", transform=_truncate(50)),
    FieldRule("confidence", "confidence", transform=_stored_confidence),
)

LINE_ITEM_RULES: tuple[FieldRule, ...] = (
    FieldRule("description", "description", default=lambda ctx: ""),
    FieldRule("quantity", "quantity", default=lambda ctx: Decimal("1"), accept=_usable_quantity,
              transform=_quantity),
    FieldRule("unit_price", "unit_price", default=lambda ctx: Decimal("0"), accept=_usable_price,
              transform=_money),
    FieldRule("category", "category", transform=_truncate(100)),
    FieldRule("sku", "sku", transform=_truncate(100)),
)


def apply_rules(rules: Sequence[FieldRule], result: Any, target: Any, ctx: MappingContext) -> Any:
    for rule in rules:
        setattr(target, rule.target, rule.resolve(result, ctx))
    return target


def _norm(name: Optional[str]) -> str:
    return (name or "").strip().casefold()


def match_category(name: Optional[str], categories: Sequence[Category]) -> Optional[Category]:
    """Case-insensitive exact name match. Never creates anything."""
    wanted = _norm(name)
    if not wanted:
        return None
    for category in categories:
        if _norm(category.name) == wanted:
            return category
    return None


def build_line_item(item: ExtractedLineItem, position: int, ctx: MappingContext) -> LineItem:
    line = LineItem(id=uuid.uuid4(), position=position)
    apply_rules(LINE_ITEM_RULES, item, line, ctx)
    # Provider totals are ignored
    line.recalculate_total()
    return line


def build_audit_data(
    result: AnalysisResult,
    provider_name: str,
    ocr_text: str,
    analyzed_at: datetime,
) -> dict:
    data = {
        "ocr_text": ocr_text or "",
        "llm_provider": provider_name,
        "analysis_timestamp": analyzed_at.isoformat(),
    }
    extras = {
        "vendor_address": result.vendor_address,
        "vendor_phone": result.vendor_phone,
        "vendor_email": result.vendor_email,
        "suggested_category": result.suggested_category,
        "suggested_subcategory": result.suggested_subcategory,
    }
    data.update({k: v for k, v in extras.items() if v is not None})
    return data


def map_analysis(
    invoice: Invoice,
    result: AnalysisResult,
    categories: Sequence[Category],
    provider_name: str,
    ocr_text: str,
    analyzed_at: datetime,
    default_currency: str,
) -> Invoice:
    """Populate invoice header, category refs, line items and audit data in place."""
    ctx = MappingContext(created_at=invoice.created_at, default_currency=default_currency)
    apply_rules(INVOICE_RULES, result, invoice, ctx)

    category = match_category(result.suggested_category, categories)
    invoice.category_id = category.id if category else None
    subcategory = None
    if category is not None:
        children = [c for c in categories if c.parent_id == category.id]
        subcategory = match_category(result.suggested_subcategory, children)
    invoice.subcategory_id = subcategory.id if subcategory else None

    invoice.line_items = [
        build_line_item(item, position, ctx)
        for position, item in enumerate(result.line_items)
    ]
    invoice.extracted_data = build_audit_data(result, provider_name, ocr_text, analyzed_at)
    return invoice

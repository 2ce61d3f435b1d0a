"""
Response schemas for the invoice endpoints.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.tables import Invoice

_camel = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LineItemResponse(BaseModel):
    model_config = _camel

    id: str
    description: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    category: Optional[str] = None
    sku: Optional[str] = None


class AttachmentResponse(BaseModel):
    model_config = _camel

    id: str
    file_name: str
    file_type: str
    file_size: int
    storage_key: str
    storage_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    page_count: int = 1


class InvoiceResponse(BaseModel):
    model_config = _camel

    id: str
    import_batch_id: Optional[str] = None
    vendor_name: Optional[str] = None
    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = Field(default=None, serialization_alias="date")
    due_date: Optional[date] = None
    total_amount: Optional[Decimal] = None
    currency: str
    tax_amount: Optional[Decimal] = None
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    status: str
    confidence: Optional[Decimal] = None
    payment_method: Optional[str] = None
    extracted_data: Optional[dict[str, Any]] = None
    line_items: list[LineItemResponse] = Field(default_factory=list)
    attachment: Optional[AttachmentResponse] = None
    created_at: datetime
    updated_at: datetime
    processed_at: Optional[datetime] = None

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> "InvoiceResponse":
        attachment = invoice.attachment
        return cls(
            id=str(invoice.id),
            import_batch_id=str(invoice.import_batch_id) if invoice.import_batch_id else None,
            vendor_name=invoice.vendor_name,
            invoice_number=invoice.invoice_number,
            invoice_date=invoice.invoice_date,
            due_date=invoice.due_date,
            total_amount=invoice.total_amount,
            currency=invoice.currency,
            tax_amount=invoice.tax_amount,
            category_id=str(invoice.category_id) if invoice.category_id else None,
            subcategory_id=str(invoice.subcategory_id) if invoice.subcategory_id else None,
            status=invoice.status,
            confidence=invoice.confidence,
            payment_method=invoice.payment_method,
            extracted_data=invoice.extracted_data,
            line_items=[
                LineItemResponse(
                    id=str(item.id),
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.total_price,
                    category=item.category,
                    sku=item.sku,
                )
                for item in invoice.line_items
            ],
            attachment=AttachmentResponse(
                id=str(attachment.id),
                file_name=attachment.file_name,
                file_type=attachment.content_type,
                file_size=attachment.file_size,
                storage_key=attachment.storage_key,
                storage_url=attachment.storage_url,
                thumbnail_url=attachment.thumbnail_url,
                width=attachment.width,
                height=attachment.height,
                page_count=attachment.page_count,
            ) if attachment is not None else None,
            created_at=invoice.created_at,
            updated_at=invoice.updated_at,
            processed_at=invoice.processed_at,
        )

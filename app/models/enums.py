"""
Python enums matching PostgreSQL enum types.
Names and values MUST match the DB DDL exactly.
"""

from enum import Enum


class ImportType(str, Enum):
    BANK_TRANSACTION = "BANK_TRANSACTION"
    INVOICE_DOCUMENT = "INVOICE_DOCUMENT"


class ImportStatus(str, Enum):
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


class TransactionType(str, Enum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class InvoiceStatus(str, Enum):
    """PENDING belongs to manual creation; the upload pipeline never sets it."""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REVIEW_REQUIRED = "REVIEW_REQUIRED"


class CategoryType(str, Enum):
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"

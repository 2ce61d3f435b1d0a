"""
Prompts and response parsing shared by every LLM provider.
"""

import json
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from app.schemas.analysis import AnalysisResult

# Keep OCR text bounded so long multi-page scans don't blow the context window
MAX_OCR_CHARS = 12000

INVOICE_SYSTEM_PROMPT = (
    "You are an expert at reading invoices and receipts. "
    "You answer with a single JSON object and nothing else."
)

INVOICE_PROMPT = """Analyze this invoice/receipt and extract the following information as JSON:
{
  "vendorName": "string",
  "invoiceNumber": "string",
  "date": "YYYY-MM-DD",
  "dueDate": "YYYY-MM-DD",
  "totalAmount": number,
  "currency": "ISO 4217 code, e.g. USD",
  "taxAmount": number,
  "suggestedCategory": "string (e.g. Food & Dining, Transportation, Utilities, Shopping)",
  "suggestedSubcategory": "string",
  "confidence": number between 0 and 1,
  "paymentMethod": "string",
  "lineItems": [
    {"description": "string", "quantity": number, "unitPrice": number, "totalPrice": number, "category": "string", "sku": "string"}
  ],
  "vendorAddress": "string",
  "vendorPhone": "string",
  "vendorEmail": "string"
}

Use null for anything you cannot read. Do not guess amounts.
"""

QUERY_SYSTEM_PROMPT = (
    "You are a personal finance assistant. Answer the user's question about "
    "their expenses concisely. If the question needs data you do not have, say so."
)


def build_invoice_prompt(ocr_text: str) -> str:
    text = (ocr_text or "").strip()
    if not text:
        return INVOICE_PROMPT + "\nNo OCR text is available; read the attached image."
    if len(text) > MAX_OCR_CHARS:
        text = text[:MAX_OCR_CHARS]
    return f"{INVOICE_PROMPT}\nOCR Text:\n{text}"


def clean_json_response(content: str) -> str:
    """Strip markdown fences and any prose around the outermost JSON object."""
    text = (content or "").strip()
    if "```" in text:
        text = text.replace("```json", "").replace("```JSON", "").replace("```", "")

    first_brace = text.find("{")
    last_brace = text.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        text = text[first_brace:last_brace + 1]
    return text.strip()


def parse_json_response(content: str) -> dict[str, Any]:
    """Parse provider text into a dict. Numbers become Decimal, never float."""
    try:
        data = json.loads(clean_json_response(content), parse_float=Decimal)
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse JSON response: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def parse_analysis_response(provider_name: str, content: str) -> AnalysisResult:
    """Provider text -> AnalysisResult, or LlmResponseError."""
    from app.llm.base import LlmResponseError

    try:
        return AnalysisResult.model_validate(parse_json_response(content))
    except (ValueError, ValidationError) as e:
        raise LlmResponseError(provider_name, str(e)) from e

"""
Prometheus metrics for the ingestion pipelines.
"""

from prometheus_client import Counter, Histogram


# ── CSV Imports ──────────────────────────────────────────────
csv_imports_total = Counter(
    "csv_imports_total",
    "Bank CSV import batches by final status",
    ["status"],
)

csv_rows_total = Counter(
    "csv_rows_total",
    "Bank CSV data rows by outcome",
    ["outcome"],
)

# ── Invoices ─────────────────────────────────────────────────
invoices_uploaded_total = Counter(
    "invoices_uploaded_total",
    "Invoice files accepted for processing",
    ["content_type"],
)

invoices_rejected_total = Counter(
    "invoices_rejected_total",
    "Invoice uploads rejected by validation",
    ["error_code"],
)

invoices_processed_total = Counter(
    "invoices_processed_total",
    "Invoices that reached a terminal status",
    ["status"],
)

confidence_scores = Histogram(
    "invoice_confidence_scores",
    "Distribution of provider-reported extraction confidence",
    ["provider"],
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 0.95, 1.0],
)

# ── Pipeline Stages ──────────────────────────────────────────
pipeline_stage_duration_seconds = Histogram(
    "pipeline_stage_duration_seconds",
    "Time per pipeline stage",
    ["pipeline", "stage"],
    buckets=[0.05, 0.1, 0.5, 1, 5, 10, 30, 60, 120],
)

# ── External Calls ───────────────────────────────────────────
llm_request_duration_seconds = Histogram(
    "llm_request_duration_seconds",
    "Latency of LLM provider calls",
    ["provider", "operation", "outcome"],
    buckets=[0.5, 1, 2, 5, 10, 20, 30, 60, 120],
)

ocr_failures_total = Counter(
    "ocr_failures_total",
    "OCR calls that degraded to empty text",
    ["engine_name"],
)

# ── Maintenance ──────────────────────────────────────────────
stale_records_swept_total = Counter(
    "stale_records_swept_total",
    "Records stuck in PROCESSING that were forced to FAILED",
    ["record_type"],
)

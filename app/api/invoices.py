"""
/api/v1/invoices endpoints.
Upload (inline or queued processing) and single-invoice lookup.
"""

import uuid

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status

from app.config import settings
from app.dependencies import get_invoice_repository, get_invoice_service, get_user_id, verify_api_key
from app.pipeline.invoice_processing import (
    InvoiceProcessingError,
    InvoiceProcessingService,
    InvoiceUpload,
    InvoiceValidationError,
)
from app.repositories.invoices import InvoiceRepository
from app.schemas.invoices import InvoiceResponse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/invoices", tags=["invoices"], dependencies=[Depends(verify_api_key)])

_VALIDATION_STATUS = {
    "ERR_EMPTY_FILE": status.HTTP_400_BAD_REQUEST,
    "ERR_UNSUPPORTED_TYPE": status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    "ERR_FILE_TOO_LARGE": status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
}


@router.post(
    "/upload",
    response_model=InvoiceResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def upload_invoice(
    response: Response,
    file: UploadFile = File(...),
    user_id: uuid.UUID = Depends(get_user_id),
    service: InvoiceProcessingService = Depends(get_invoice_service),
):
    """Upload an invoice image/PDF and extract it."""
    upload = InvoiceUpload(
        file_name=file.filename or "invoice",
        content_type=(file.content_type or "application/octet-stream").lower(),
        content=await file.read(),
    )

    try:
        if settings.INVOICE_PROCESSING_MODE == "queue":
            invoice = await service.receive_invoice(upload, user_id)
            try:
                from app.worker.jobs import enqueue_invoice_processing
                enqueue_invoice_processing(str(invoice.id))
                response.status_code = status.HTTP_202_ACCEPTED
                return InvoiceResponse.from_invoice(invoice)
            except Exception as enqueue_err:
                # Redis unavailable: finish the work in this request instead
                logger.warning("enqueue_failed", invoice_id=str(invoice.id), error=str(enqueue_err))
                invoice = await service.process_invoice(invoice, upload.content, upload.content_type)
        else:
            invoice = await service.upload_and_process_invoice(upload, user_id)
    except InvoiceValidationError as e:
        raise HTTPException(
            status_code=_VALIDATION_STATUS.get(e.error_code, status.HTTP_400_BAD_REQUEST),
            detail={"message": e.message, "errorCode": e.error_code},
        )
    except InvoiceProcessingError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": e.message, "errorCode": e.error_code, "invoiceId": str(e.invoice_id)},
        )

    return InvoiceResponse.from_invoice(invoice)


@router.get("/{invoice_id}", response_model=InvoiceResponse, response_model_by_alias=True)
async def get_invoice(
    invoice_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_user_id),
    invoices: InvoiceRepository = Depends(get_invoice_repository),
):
    invoice = await invoices.get(invoice_id, user_id=user_id)
    if invoice is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return InvoiceResponse.from_invoice(invoice)

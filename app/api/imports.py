"""
/api/v1/transactions endpoints.
Bank CSV import and import-batch lookup.
"""

import uuid

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from app.dependencies import (
    get_csv_import_service,
    get_import_batch_repository,
    get_user_id,
    verify_api_key,
)
from app.pipeline.csv_import import CsvImportError, CsvImportService
from app.repositories.import_batches import ImportBatchRepository
from app.schemas.imports import ImportBatchResponse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"], dependencies=[Depends(verify_api_key)])


@router.post("/import", response_model=ImportBatchResponse)
async def import_transactions(
    file: UploadFile = File(...),
    user_id: uuid.UUID = Depends(get_user_id),
    service: CsvImportService = Depends(get_csv_import_service),
    batches: ImportBatchRepository = Depends(get_import_batch_repository),
):
    """
    Import a bank statement CSV.
    Always answers with the batch summary, including when the whole batch FAILED.
    """
    content = await file.read()
    file_name = file.filename or "transactions.csv"

    try:
        batch = await service.import_bank_transactions(file_name, content, user_id)
    except CsvImportError as e:
        batch = await batches.get(e.batch_id)
        if batch is None:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Import failed and batch {e.batch_id} could not be loaded: {e.message}",
            )

    return ImportBatchResponse.from_batch(batch)


@router.get("/imports/{batch_id}", response_model=ImportBatchResponse)
async def get_import_batch(
    batch_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_user_id),
    batches: ImportBatchRepository = Depends(get_import_batch_repository),
):
    """Poll one import batch (either pipeline) owned by the caller."""
    batch = await batches.get(batch_id, user_id=user_id)
    if batch is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Import batch not found")
    return ImportBatchResponse.from_batch(batch)

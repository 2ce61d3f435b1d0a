"""
Health endpoints.
/health always answers 200 and reports dependency state in the body;
/health/ready is the strict readiness probe.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.config import settings
from app.dependencies import get_llm_provider, get_ocr_engine
from app.engines.base import TextExtractionEngine
from app.llm.base import LlmProvider
from app.models.database import async_session_factory

router = APIRouter(tags=["health"])


async def _database_ok() -> tuple[bool, str | None]:
    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1, None
    except Exception as e:
        return False, str(e)[:200]


@router.get("/health")
async def health_check(
    ocr: TextExtractionEngine = Depends(get_ocr_engine),
    llm: LlmProvider = Depends(get_llm_provider),
):
    """Liveness: always 200, even when the database is down."""
    db_ok, db_error = await _database_ok()
    ocr_ok = await ocr.health_check()

    response = {
        "status": "healthy" if db_ok and ocr_ok else "degraded",
        "version": settings.APP_VERSION,
        "database": "connected" if db_ok else "unreachable",
        "ocr_engine": {"name": ocr.engine_name, "available": ocr_ok},
        "llm_provider": llm.provider_name,
        "processing_mode": settings.INVOICE_PROCESSING_MODE,
    }
    if db_error:
        response["database_error"] = db_error
    return response


@router.get("/health/ready")
async def readiness_check():
    """Readiness probe: 503 until the database answers."""
    db_ok, _ = await _database_ok()
    if not db_ok:
        return JSONResponse(status_code=503, content={"ready": False})
    return {"ready": True}

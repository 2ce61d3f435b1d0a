"""
Top-level API router.
Combines all sub-routers into a single router.
"""

from fastapi import APIRouter

from app.api.health import router as health_router
from app.api.imports import router as imports_router
from app.api.invoices import router as invoices_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(imports_router)
api_router.include_router(invoices_router)

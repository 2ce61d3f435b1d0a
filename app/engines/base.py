"""
Abstract base class for OCR text extraction engines.
"""

from abc import ABC, abstractmethod

import structlog

from app.observability import metrics

logger = structlog.get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


def is_image(content_type: str) -> bool:
    return (content_type or "").lower().startswith("image/")


def is_pdf(content_type: str) -> bool:
    return (content_type or "").lower() == PDF_CONTENT_TYPE


class TextExtractionEngine(ABC):
    """
    Turns raw image/PDF bytes into plain text.

    extract_text never raises: unreadable input, unsupported content types
    and engine failures all come back as an empty string so the caller can
    continue with vision-only extraction.
    """

    @property
    @abstractmethod
    def engine_name(self) -> str:
        """Unique identifier: 'tesseract', 'stub'"""
        ...

    @abstractmethod
    async def _extract_image(self, data: bytes) -> str:
        ...

    @abstractmethod
    async def _extract_pdf(self, data: bytes) -> str:
        ...

    async def extract_text(self, data: bytes, content_type: str) -> str:
        try:
            if is_image(content_type):
                text = await self._extract_image(data)
            elif is_pdf(content_type):
                text = await self._extract_pdf(data)
            else:
                logger.warning("ocr_unsupported_content_type", engine=self.engine_name,
                               content_type=content_type)
                return ""
        except Exception as e:
            metrics.ocr_failures_total.labels(engine_name=self.engine_name).inc()
            logger.warning("ocr_failed", engine=self.engine_name, content_type=content_type,
                           error=f"{type(e).__name__}: {e}")
            return ""

        logger.debug("ocr_complete", engine=self.engine_name, chars=len(text))
        return text

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify engine is available and responding."""
        ...


class EngineError(Exception):
    """Raised inside an engine; converted to empty text by extract_text."""

    def __init__(self, engine_name: str, error_code: str, message: str):
        self.engine_name = engine_name
        self.error_code = error_code
        self.message = message
        super().__init__(f"[{engine_name}] {error_code}: {message}")

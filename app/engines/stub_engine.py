"""
Stub OCR engine for local development and tests.
Returns fixed text without touching Tesseract or poppler.
"""

from app.engines.base import TextExtractionEngine


class StubEngine(TextExtractionEngine):
    """Fake engine that returns the same text for every document."""

    def __init__(self, text: str = ""):
        self.text = text

    @property
    def engine_name(self) -> str:
        return "stub"

    async def _extract_image(self, data: bytes) -> str:
        return self.text

    async def _extract_pdf(self, data: bytes) -> str:
        return self.text

    async def health_check(self) -> bool:
        """Stub is always healthy."""
        return True

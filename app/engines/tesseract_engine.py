"""
Tesseract OCR engine.
Images are recognised directly; PDFs are rendered page by page first and
the per-page text is joined with blank lines.
"""

import asyncio
from typing import Optional

import pytesseract
from PIL import Image
import structlog

from app.engines.base import EngineError, TextExtractionEngine
from app.pipeline.renderer import correct_orientation, load_image, render_pdf_bytes

logger = structlog.get_logger(__name__)

PAGE_SEPARATOR = "\n\n"


class TesseractEngine(TextExtractionEngine):
    """Tesseract via pytesseract. CPU-bound work runs in a worker thread."""

    engine_name = "tesseract"

    def __init__(
        self,
        lang: str = "eng",
        psm: int = 1,
        dpi: int = 300,
        tesseract_cmd: Optional[str] = None,
        poppler_path: Optional[str] = None,
        fix_orientation: bool = True,
    ):
        """
        Args:
            lang: Tesseract language code
            psm: Page segmentation mode (1 = automatic with OSD)
            dpi: Render resolution for PDF pages
        """
        self.lang = lang
        self.psm = psm
        self.dpi = dpi
        self.poppler_path = poppler_path
        self.fix_orientation = fix_orientation
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def _ocr(self, img: Image.Image) -> str:
        if self.fix_orientation:
            img = correct_orientation(img)
        return pytesseract.image_to_string(img, lang=self.lang, config=f"--psm {self.psm}")

    def _image_to_text(self, data: bytes) -> str:
        try:
            img = load_image(data)
        except Exception as e:
            raise EngineError(self.engine_name, "ERR_IMAGE_DECODE", str(e)) from e
        return self._ocr(img)

    def _pdf_to_text(self, data: bytes) -> str:
        pages = render_pdf_bytes(data, dpi=self.dpi, poppler_path=self.poppler_path)
        parts = []
        for index, page in enumerate(pages):
            text = self._ocr(page)
            logger.debug("tesseract_page_complete", page_index=index, chars=len(text))
            parts.append(text + PAGE_SEPARATOR)
        return "".join(parts)

    async def _extract_image(self, data: bytes) -> str:
        return await asyncio.to_thread(self._image_to_text, data)

    async def _extract_pdf(self, data: bytes) -> str:
        return await asyncio.to_thread(self._pdf_to_text, data)

    async def health_check(self) -> bool:
        """Check if Tesseract is installed and accessible."""
        try:
            await asyncio.to_thread(pytesseract.get_tesseract_version)
            return True
        except Exception:
            return False

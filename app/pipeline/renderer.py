"""
Raster helpers for uploaded invoices.

Renders PDF pages to images for OCR, corrects page orientation and reads
cheap attachment metadata (page count, pixel size).
"""

import io
from typing import Optional

from PIL import Image
from pdf2image import convert_from_bytes, pdfinfo_from_bytes
import structlog

from app.engines.base import is_image, is_pdf

logger = structlog.get_logger(__name__)


# ─── PDF Rendering ────────────────────────────────────────────

def render_pdf_bytes(
    data: bytes,
    dpi: int = 300,
    poppler_path: Optional[str] = None,
) -> list[Image.Image]:
    """Render every page of a PDF to a PIL image."""
    try:
        images = convert_from_bytes(
            data,
            dpi=dpi,
            fmt="png",
            thread_count=2,
            poppler_path=poppler_path,
        )
    except Exception as e:
        logger.error("pdf_render_failed", error=str(e))
        raise RuntimeError(f"Failed to render PDF: {e}") from e

    logger.info("pdf_rendered", page_count=len(images), dpi=dpi)
    return images


def load_image(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


# ─── Orientation Detection ────────────────────────────────────

def correct_orientation(img: Image.Image, min_confidence: float = 0.5) -> Image.Image:
    """
    Rotate an image upright using Tesseract OSD.
    Best-effort: returns the input unchanged when OSD is unavailable or unsure.
    """
    try:
        import pytesseract
        osd = pytesseract.image_to_osd(img, output_type=pytesseract.Output.DICT)
        rotation = osd.get("rotate", 0)
        conf = osd.get("orientation_conf", 0)

        if rotation != 0 and conf > min_confidence:
            logger.debug("orientation_corrected", rotation=rotation, conf=conf)
            return img.rotate(-rotation, expand=True)
    except Exception as e:
        logger.debug("orientation_detection_skipped", reason=str(e))

    return img


# ─── Attachment Metadata ──────────────────────────────────────

def count_pages(data: bytes, content_type: str, poppler_path: Optional[str] = None) -> int:
    """Page count for a PDF, 1 for anything else (or when poppler can't tell)."""
    if not is_pdf(content_type):
        return 1
    try:
        info = pdfinfo_from_bytes(data, poppler_path=poppler_path)
        return int(info.get("Pages", 1)) or 1
    except Exception as e:
        logger.debug("page_count_unavailable", reason=str(e))
        return 1


def image_dimensions(data: bytes, content_type: str) -> tuple[Optional[int], Optional[int]]:
    """(width, height) for images; (None, None) for PDFs or undecodable data."""
    if not is_image(content_type):
        return None, None
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.width, img.height
    except Exception as e:
        logger.debug("image_dimensions_unavailable", reason=str(e))
        return None, None

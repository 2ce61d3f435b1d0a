"""
OCR engine selection from settings.
"""

from app.config import Settings
from app.engines.base import TextExtractionEngine


def build_ocr_engine(config: Settings) -> TextExtractionEngine:
    name = config.OCR_ENGINE.strip().lower()
    if name == "tesseract":
        from app.engines.tesseract_engine import TesseractEngine
        return TesseractEngine(
            lang=config.TESSERACT_LANG,
            psm=config.TESSERACT_PSM,
            dpi=config.RENDER_DPI,
            tesseract_cmd=config.TESSERACT_CMD,
            poppler_path=config.POPPLER_PATH,
        )
    if name == "stub":
        from app.engines.stub_engine import StubEngine
        return StubEngine()
    raise ValueError(f"Unknown OCR_ENGINE '{config.OCR_ENGINE}'")

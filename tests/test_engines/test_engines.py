"""
Tests for OCR engines. Tesseract itself is patched out.
"""

import io

import pytest
from PIL import Image

from app.config import Settings
from app.engines import tesseract_engine
from app.engines.factory import build_ocr_engine
from app.engines.stub_engine import StubEngine
from app.engines.tesseract_engine import TesseractEngine


def _png_bytes():
    buf = io.BytesIO()
    Image.new("RGB", (40, 20), "white").save(buf, format="PNG")
    return buf.getvalue()


class TestStubEngine:
    @pytest.mark.asyncio
    async def test_image_and_pdf(self):
        engine = StubEngine(text="TOTAL 5.00")
        assert await engine.extract_text(b"x", "image/jpeg") == "TOTAL 5.00"
        assert await engine.extract_text(b"x", "application/pdf") == "TOTAL 5.00"

    @pytest.mark.asyncio
    async def test_unsupported_type_is_empty(self):
        assert await StubEngine(text="nope").extract_text(b"x", "text/csv") == ""


class TestTesseractEngine:
    @pytest.mark.asyncio
    async def test_image(self, monkeypatch):
        monkeypatch.setattr(tesseract_engine.pytesseract, "image_to_string",
                            lambda img, lang, config: f"{img.width}x{img.height} {config}")
        engine = TesseractEngine(psm=6, fix_orientation=False)
        assert await engine.extract_text(_png_bytes(), "image/png") == "40x20 --psm 6"

    @pytest.mark.asyncio
    async def test_pdf_pages_joined(self, monkeypatch):
        pages = [Image.new("RGB", (10, 10)), Image.new("RGB", (10, 10))]
        monkeypatch.setattr(tesseract_engine, "render_pdf_bytes", lambda data, dpi, poppler_path: pages)
        texts = iter(["page one", "page two"])
        monkeypatch.setattr(tesseract_engine.pytesseract, "image_to_string",
                            lambda img, lang, config: next(texts))
        engine = TesseractEngine(fix_orientation=False)
        assert await engine.extract_text(b"%PDF", "application/pdf") == "page one\n\npage two\n\n"

    @pytest.mark.asyncio
    async def test_undecodable_image_degrades_to_empty(self):
        engine = TesseractEngine(fix_orientation=False)
        assert await engine.extract_text(b"not an image", "image/png") == ""

    @pytest.mark.asyncio
    async def test_engine_crash_degrades_to_empty(self, monkeypatch):
        def boom(img, lang, config):
            raise RuntimeError("tesseract not installed")
        monkeypatch.setattr(tesseract_engine.pytesseract, "image_to_string", boom)
        engine = TesseractEngine(fix_orientation=False)
        assert await engine.extract_text(_png_bytes(), "image/png") == ""


class TestFactory:
    def test_stub(self):
        assert build_ocr_engine(Settings(OCR_ENGINE="stub")).engine_name == "stub"

    def test_tesseract(self):
        engine = build_ocr_engine(Settings(OCR_ENGINE="tesseract", TESSERACT_PSM=4))
        assert engine.engine_name == "tesseract"
        assert engine.psm == 4

    def test_unknown(self):
        with pytest.raises(ValueError):
            build_ocr_engine(Settings(OCR_ENGINE="abbyy"))

from app.config.settings import Settings
from app.ocr.base import BaseOcrEngine
from app.ocr.tesseract_adapter import TesseractEngine


class OcrEngineFactory:
    """Creates the configured OCR engine."""

    @classmethod
    def create(cls, settings: Settings) -> BaseOcrEngine:
        engine = settings.ocr_engine.lower()
        if engine == "tesseract":
            return TesseractEngine(tesseract_cmd=settings.tesseract_cmd)
        raise ValueError(f"Unknown OCR engine '{engine}'. Choose from: ['tesseract']")

import math
from pathlib import Path

from app.events.models import ProgressEvent
from app.events.progress import ProgressChannel
from app.logging.logger import Log
from app.normalization.base import BaseImageNormalizer
from app.ocr.base import BaseOcrEngine, BaseOcrSession
from app.ocr.models import OcrOutput
from app.processor.file_store import FileStore
from app.processor.models import Document, PageOcrResult
from app.processor.outcomes import best_effort


def coerce_confidence(value: object) -> float:
    """Engine confidence as a float in [0, 100]; anything non-numeric becomes 0."""
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return max(0.0, min(100.0, number))


class PageRecognizer:
    """Runs normalization and OCR for a single page image."""

    def __init__(
        self,
        normalizer: BaseImageNormalizer,
        ocr_engine: BaseOcrEngine,
        file_store: FileStore,
        progress: ProgressChannel,
        default_language: str = "eng",
    ) -> None:
        self._normalizer = normalizer
        self._ocr_engine = ocr_engine
        self._file_store = file_store
        self._progress = progress
        self._default_language = default_language

    def recognize(self, document: Document, page_number: int, image_path: Path) -> PageOcrResult:
        """Recognize one page.

        The OCR session is always closed, whether recognition succeeds or not.

        Raises:
            OcrEngineError: if the engine cannot load or recognize the page.
        """
        document_id = document.id or 0
        language = document.language or self._default_language
        self._step(document_id, page_number, "starting")

        session: BaseOcrSession | None = None
        try:
            self._step(document_id, page_number, "loading-model")
            session = self._ocr_engine.open_session(language)

            self._step(document_id, page_number, "preprocessing")
            image_bytes = self._prepare_image(image_path, page_number)

            self._step(document_id, page_number, "recognizing")
            output = session.recognize(image_bytes)

            best_effort(
                f"Thumbnail for page {page_number} of document {document_id}",
                self._normalizer.thumbnail,
                image_path,
                self._file_store.thumbnail_path(document.content_hash, page_number),
            )
            return self._to_result(output)
        finally:
            if session is not None:
                self._step(document_id, page_number, "cleanup")
                try:
                    session.close()
                except Exception as exc:
                    Log.warning(f"OCR session cleanup failed for page {page_number}: {exc}")

    def _prepare_image(self, image_path: Path, page_number: int) -> bytes:
        """Full normalization, then a minimal transform, then the raw file."""
        try:
            return self._normalizer.normalize(image_path)
        except Exception as exc:
            Log.warning(f"Preprocessing failed for page {page_number}: {exc}")
        try:
            return self._normalizer.minimal(image_path)
        except Exception as exc:
            Log.warning(f"Minimal preprocessing failed for page {page_number}, using original: {exc}")
        return image_path.read_bytes()

    def _step(self, document_id: int, page_number: int, step: str) -> None:
        self._progress.publish(document_id, ProgressEvent.page_step(page_number, step))

    @staticmethod
    def _to_result(output: OcrOutput) -> PageOcrResult:
        text = output.text or ""
        word_count = len(output.words) if output.words else len(text.split())
        return PageOcrResult(
            text=text,
            confidence=coerce_confidence(output.confidence),
            word_count=word_count,
            char_count=len(text),
        )

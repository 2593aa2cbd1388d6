import shutil

import pytest

from app.config.settings import Settings
from app.database.repositories.documents_repository import DocumentsRepository
from app.events.models import ProgressEvent, ProgressStatus, SearchMatch
from app.events.progress import ProgressChannel
from app.events.search import LiveSearchNotifier
from app.normalization import ImageNormalizer
from app.ocr.base import BaseOcrEngine, BaseOcrSession
from app.ocr.exceptions import OcrEngineError
from app.ocr.models import OcrOutput
from app.processor.file_store import FileStore
from app.processor.models import Document, DocumentStatus, PageStatus
from app.processor.page_recognizer import PageRecognizer
from app.processor.processor import Processor, build_processor
from app.rasterization.pymupdf_adapter import PyMuPdfRasterizer


class _ScriptedSession(BaseOcrSession):
    def __init__(self, engine: "_ScriptedEngine") -> None:
        self._engine = engine

    def recognize(self, image_bytes: bytes) -> OcrOutput:
        self._engine.calls += 1
        if self._engine.calls in self._engine.fail_on:
            raise OcrEngineError("scripted failure")
        return OcrOutput(text="Invoice 2023\nTotal due 500", confidence=88.0)

    def close(self) -> None:
        self._engine.closed += 1


class _ScriptedEngine(BaseOcrEngine):
    """Deterministic engine so the pipeline can run without tesseract installed."""

    def __init__(self, fail_on: set[int] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.calls = 0
        self.closed = 0

    def open_session(self, language: str) -> BaseOcrSession:
        return _ScriptedSession(self)


def _make_processor(
    file_store: FileStore,
    engine: BaseOcrEngine,
    progress: ProgressChannel,
    notifier: LiveSearchNotifier,
) -> Processor:
    return Processor(
        doc_repo=DocumentsRepository(),
        file_store=file_store,
        rasterizer=PyMuPdfRasterizer(dpi=72),
        page_recognizer=PageRecognizer(ImageNormalizer(), engine, file_store, progress),
        progress=progress,
        search_notifier=notifier,
        sleep=lambda _seconds: None,
    )


@pytest.mark.integration
class TestProcessorPipeline:
    def test_multi_page_pdf_is_processed_and_persisted(
        self, seed_multi_page_document: Document, file_store: FileStore
    ) -> None:
        document = seed_multi_page_document
        progress = ProgressChannel()
        events: list[ProgressEvent] = []
        progress.subscribe(document.id or 0, events.append)
        engine = _ScriptedEngine()
        processor = _make_processor(file_store, engine, progress, LiveSearchNotifier())

        processor.process_document(document.id or 0, file_store.source_path(document))

        stored = DocumentsRepository().find_by_id(document.id or 0)
        assert stored is not None
        assert stored.status == DocumentStatus.DONE
        assert [p.page_number for p in stored.pages] == [1, 2, 3]
        assert all(p.status == PageStatus.DONE for p in stored.pages)
        assert stored.meta is not None
        assert stored.meta.successful_pages == 3
        assert engine.closed == 3
        assert events[-1].status == ProgressStatus.DONE
        assert not file_store.work_dir(document.id or 0).exists()
        for number in (1, 2, 3):
            assert file_store.thumbnail_path(document.content_hash, number).exists()

    def test_image_document_is_a_single_page(
        self, seed_image_document: Document, file_store: FileStore
    ) -> None:
        document = seed_image_document
        notifier = LiveSearchNotifier()
        matches: list[SearchMatch] = []
        notifier.subscribe(matches.append, "total due")
        processor = _make_processor(file_store, _ScriptedEngine(), ProgressChannel(), notifier)

        processor.process_document(document.id or 0, file_store.source_path(document))

        stored = DocumentsRepository().find_by_id(document.id or 0)
        assert stored is not None
        assert stored.status == DocumentStatus.DONE
        assert len(stored.pages) == 1
        assert len(matches) == 1
        assert file_store.source_path(document).exists()

    def test_partial_failure_keeps_document_done(
        self, seed_multi_page_document: Document, file_store: FileStore
    ) -> None:
        document = seed_multi_page_document
        engine = _ScriptedEngine(fail_on={2, 3})
        processor = _make_processor(file_store, engine, ProgressChannel(), LiveSearchNotifier())

        processor.process_document(document.id or 0, file_store.source_path(document))

        stored = DocumentsRepository().find_by_id(document.id or 0)
        assert stored is not None
        assert stored.status == DocumentStatus.DONE
        assert [p.status for p in stored.pages] == [
            PageStatus.DONE,
            PageStatus.FAILED,
            PageStatus.DONE,
        ]
        assert stored.pages[1].attempts == 2
        assert stored.pages[1].error == "scripted failure"

    def test_missing_source_marks_document_failed(
        self, seed_pdf_document: Document, file_store: FileStore
    ) -> None:
        document = seed_pdf_document
        file_store.source_path(document).unlink()
        processor = _make_processor(
            file_store, _ScriptedEngine(), ProgressChannel(), LiveSearchNotifier()
        )

        processor.process_document(document.id or 0, file_store.source_path(document))

        stored = DocumentsRepository().find_by_id(document.id or 0)
        assert stored is not None
        assert stored.status == DocumentStatus.FAILED


@pytest.mark.integration
@pytest.mark.skipif(shutil.which("tesseract") is None, reason="tesseract binary not installed")
class TestTesseractEndToEnd:
    def test_recognizes_rendered_pdf_text(
        self,
        seed_pdf_document: Document,
        file_store: FileStore,
        test_settings: Settings,
    ) -> None:
        document = seed_pdf_document
        settings = test_settings.model_copy(
            update={"upload_dir": str(file_store.upload_dir), "pdf_engine": "pymupdf"}
        )
        processor = build_processor(
            settings,
            progress=ProgressChannel(),
            search_notifier=LiveSearchNotifier(),
            file_store=file_store,
        )

        processor.process_document(document.id or 0, file_store.source_path(document))

        stored = DocumentsRepository().find_by_id(document.id or 0)
        assert stored is not None
        assert stored.status == DocumentStatus.DONE
        assert "invoice" in stored.pages[0].text.lower()
        assert stored.pages[0].confidence > 0


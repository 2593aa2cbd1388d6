import shutil
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from app.config.settings import Settings
from app.database.repositories.documents_repository import DocumentsRepository
from app.events.models import ProgressEvent
from app.events.progress import ProgressChannel
from app.events.search import LiveSearchNotifier
from app.events.stats import StatsBroadcaster
from app.logging.logger import Log
from app.normalization.normalizer import ImageNormalizer
from app.ocr.factory import OcrEngineFactory
from app.processor.exceptions import AllPagesFailedError, SourceFileNotFoundError
from app.processor.file_store import FileStore
from app.processor.models import Document, DocumentStatus, Page, PageOcrResult, PageStatus
from app.processor.outcomes import best_effort, retry_call
from app.processor.page_recognizer import PageRecognizer
from app.processor.pipeline import PipelineContext
from app.rasterization.base import BaseRasterizer
from app.rasterization.factory import RasterizerFactory


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Processor:
    """Drives one document through queued -> processing -> done | failed.

    Pipeline: mark processing -> rasterize -> init pages -> OCR each page with
    retry -> finalize -> remove working directory.

    Pages of one document run strictly one after another. process_document()
    is the outermost error boundary of a run and never raises.
    """

    def __init__(
        self,
        *,
        doc_repo: DocumentsRepository,
        file_store: FileStore,
        rasterizer: BaseRasterizer,
        page_recognizer: PageRecognizer,
        progress: ProgressChannel,
        search_notifier: LiveSearchNotifier,
        stats: StatsBroadcaster | None = None,
        max_attempts: int = 2,
        retry_delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._doc_repo = doc_repo
        self._file_store = file_store
        self._rasterizer = rasterizer
        self._page_recognizer = page_recognizer
        self._progress = progress
        self._search_notifier = search_notifier
        self._stats = stats
        self._max_attempts = max_attempts
        self._retry_delay_seconds = retry_delay_seconds
        self._sleep = sleep

    def process_document(self, document_id: int, source_path: Path) -> None:
        """Run the full OCR pipeline for a document."""
        Log.info(f"Starting OCR for document {document_id}, file: {source_path}")
        try:
            document = self._doc_repo.find_by_id(document_id)
        except Exception as exc:
            Log.error(f"Could not load document {document_id}: {exc}")
            return
        if document is None:
            Log.error(f"Document {document_id} not found, nothing to process")
            return

        context = PipelineContext(
            document_id=document_id,
            source_path=source_path,
            work_dir=self._file_store.work_dir(document_id),
        )
        try:
            self._run(document, context)
        except Exception as exc:
            self._finalize_failure(context, exc)
        finally:
            self._cleanup(context)

    def _run(self, document: Document, context: PipelineContext) -> None:
        # Step 1: Mark processing
        document.status = DocumentStatus.PROCESSING
        self._doc_repo.save(document)
        Log.info(f"Document {context.document_id}: type {document.mime_type}, language {document.language}")
        self._publish(context, ProgressEvent.processing(context.document_id))

        # Step 2: Rasterize
        if not context.source_path.exists():
            raise SourceFileNotFoundError(f"Source file not found: {context.source_path}")
        context.work_dir.mkdir(parents=True, exist_ok=True)
        self._publish(context, ProgressEvent.converting(context.document_id))
        image_paths = self._rasterizer.rasterize(
            context.source_path, context.work_dir, document.mime_type
        )
        context.total_pages = len(image_paths)

        # Step 3: Initialize pages
        document.pages = [Page(page_number=n) for n in range(1, context.total_pages + 1)]
        self._doc_repo.save(document)

        # Step 4: OCR each page
        for page_number, image_path in enumerate(image_paths, start=1):
            self._process_page(document, context, page_number, image_path)

        # Step 5: Summarize
        meta = context.build_meta(_now())
        if context.successful_pages == 0:
            raise AllPagesFailedError("All pages failed to process")

        # Step 6: Finalize
        document.meta = meta
        document.status = DocumentStatus.DONE
        self._doc_repo.save(document)
        Log.info(
            f"Document {context.document_id} done: {context.successful_pages}/"
            f"{context.total_pages} pages, average confidence {meta.average_confidence:.1f}"
        )
        self._publish(
            context,
            ProgressEvent.done(context.document_id, context.total_pages, context.successful_pages),
        )
        self._refresh_stats()

    def _process_page(
        self,
        document: Document,
        context: PipelineContext,
        page_number: int,
        image_path: Path,
    ) -> None:
        def attempt(attempt_number: int) -> PageOcrResult:
            Log.info(
                f"Processing page {page_number}/{context.total_pages} of document "
                f"{context.document_id} (attempt {attempt_number}/{self._max_attempts})"
            )
            self._publish(
                context,
                ProgressEvent.starting_ocr(
                    page_number, context.total_pages, attempt_number, self._max_attempts
                ),
            )
            return self._page_recognizer.recognize(document, page_number, image_path)

        outcome = retry_call(
            attempt,
            max_attempts=self._max_attempts,
            delay_seconds=self._retry_delay_seconds,
            sleep=self._sleep,
            label=f"Page {page_number} of document {context.document_id}",
        )
        index = page_number - 1

        if outcome.ok and outcome.value is not None:
            result = outcome.value
            page = Page(
                page_number=page_number,
                text=result.text,
                confidence=result.confidence,
                status=PageStatus.DONE,
                processed_at=_now(),
                attempts=outcome.attempts,
                word_count=result.word_count,
                char_count=result.char_count,
            )
            document.pages[index] = page
            context.record_success(page.confidence)
            self._doc_repo.save(document)
            self._publish(
                context,
                ProgressEvent.page_complete(
                    page_number,
                    context.total_pages,
                    page.confidence,
                    context.successful_pages,
                    context.failed_pages,
                    context.average_confidence,
                ),
            )
            best_effort(
                "Live search notification",
                self._search_notifier.notify_page_processed,
                document,
                page,
            )
            Log.info(f"Completed page {page_number} with confidence {page.confidence:.1f}")
            return

        error = str(outcome.error)
        document.pages[index] = Page(
            page_number=page_number,
            status=PageStatus.FAILED,
            processed_at=_now(),
            attempts=outcome.attempts,
            error=error,
        )
        context.record_failure()
        self._doc_repo.save(document)
        self._publish(
            context,
            ProgressEvent.page_failed(
                page_number,
                context.total_pages,
                error,
                outcome.attempts,
                self._max_attempts,
                context.successful_pages,
                context.failed_pages,
                context.average_confidence,
            ),
        )

    def _finalize_failure(self, context: PipelineContext, exc: Exception) -> None:
        Log.error(f"Document {context.document_id} processing failed: {exc}")
        try:
            failed = self._doc_repo.find_by_id(context.document_id)
            if failed is not None:
                failed.status = DocumentStatus.FAILED
                if context.meta is not None:
                    failed.meta = context.meta
                self._doc_repo.save(failed)
        except Exception as save_exc:
            Log.error(f"Failed to mark document {context.document_id} as failed: {save_exc}")
        self._publish(context, ProgressEvent.failed(context.document_id, str(exc)))
        self._refresh_stats()

    def _cleanup(self, context: PipelineContext) -> None:
        if not context.work_dir.exists():
            return
        try:
            shutil.rmtree(context.work_dir)
            Log.debug(f"Removed working directory {context.work_dir}")
        except OSError as exc:
            Log.warning(f"Could not remove working directory {context.work_dir}: {exc}")

    def _publish(self, context: PipelineContext, event: ProgressEvent) -> None:
        self._progress.publish(context.document_id, event)

    def _refresh_stats(self) -> None:
        if self._stats is not None:
            best_effort("Stats broadcast", self._stats.broadcast)


def build_processor(
    settings: Settings,
    *,
    progress: ProgressChannel,
    search_notifier: LiveSearchNotifier,
    stats: StatsBroadcaster | None = None,
    doc_repo: DocumentsRepository | None = None,
    file_store: FileStore | None = None,
) -> Processor:
    """Build a Processor with all required adapters."""
    doc_repo = doc_repo if doc_repo is not None else DocumentsRepository()
    file_store = file_store if file_store is not None else FileStore(Path(settings.upload_dir))
    page_recognizer = PageRecognizer(
        normalizer=ImageNormalizer(),
        ocr_engine=OcrEngineFactory.create(settings),
        file_store=file_store,
        progress=progress,
        default_language=settings.default_language,
    )
    return Processor(
        doc_repo=doc_repo,
        file_store=file_store,
        rasterizer=RasterizerFactory.create(settings),
        page_recognizer=page_recognizer,
        progress=progress,
        search_notifier=search_notifier,
        stats=stats,
        max_attempts=settings.page_max_attempts,
        retry_delay_seconds=settings.page_retry_delay_seconds,
    )

from concurrent.futures import Future

from app.database.repositories.documents_repository import DocumentsRepository
from app.logging.logger import Log
from app.processor.exceptions import DocumentNotFoundError
from app.processor.file_store import FileStore
from app.processor.models import DocumentStatus, PageStatus
from app.worker.dispatcher import Dispatcher


class Reprocessor:
    """Resets a document to queued and schedules a fresh OCR run."""

    def __init__(
        self,
        doc_repo: DocumentsRepository,
        file_store: FileStore,
        dispatcher: Dispatcher,
    ) -> None:
        self._doc_repo = doc_repo
        self._file_store = file_store
        self._dispatcher = dispatcher

    def reprocess(self, document_id: int, language: str | None = None) -> Future[None] | None:
        """Reset every page to pending, set status queued, and dispatch a run.

        Returns None when a worker claimed the queued document first; that
        worker performs the run instead.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        document = self._doc_repo.find_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")

        for page in document.pages:
            page.status = PageStatus.PENDING
            page.error = None
            page.attempts = 0
        document.status = DocumentStatus.QUEUED
        if language:
            document.language = language
        self._doc_repo.save(document)

        Log.info(f"Document {document_id} reset for reprocessing")
        claimed = self._doc_repo.claim(document_id)
        if claimed is None:
            Log.info(f"Document {document_id} already picked up by a worker")
            return None
        return self._dispatcher.submit(document_id, self._file_store.source_path(claimed))

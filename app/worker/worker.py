import time

from app.config.settings import Settings
from app.database.repositories.documents_repository import DocumentsRepository
from app.logging.logger import Log
from app.processor.file_store import FileStore
from app.worker.dispatcher import Dispatcher


class Worker:
    """Poll loop: claim queued documents -> dispatch -> sleep."""

    def __init__(
        self,
        doc_repo: DocumentsRepository,
        file_store: FileStore,
        dispatcher: Dispatcher,
        settings: Settings,
    ) -> None:
        self._doc_repo = doc_repo
        self._file_store = file_store
        self._dispatcher = dispatcher
        self._settings = settings

    def run(self, max_polls: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_polls is set, stop after that many polls (for testing).
        """
        Log.info("Worker started, polling for queued documents")
        polls = 0
        try:
            while max_polls is None or polls < max_polls:
                dispatched = self._dispatch_queued()
                polls += 1
                if dispatched == 0:
                    Log.debug("No queued documents, sleeping")
                    time.sleep(self._settings.queue_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def _dispatch_queued(self) -> int:
        """Claim as many queued documents as there are free slots and dispatch them."""
        free_slots = self._settings.max_concurrent_documents - self._dispatcher.in_flight_count()
        if free_slots <= 0:
            return 0

        try:
            documents = self._doc_repo.claim_queued(
                min(self._settings.queue_batch_size, free_slots)
            )
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return 0

        dispatched = 0
        for document in documents:
            if document.id is None:
                continue
            self._dispatcher.submit(document.id, self._file_store.source_path(document))
            dispatched += 1
        return dispatched

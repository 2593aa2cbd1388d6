import threading
from collections import Counter
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from app.config.settings import Settings
from app.logging.logger import Log
from app.processor.processor import Processor


class Dispatcher:
    """Run document pipelines on a bounded thread pool.

    Different documents progress concurrently; each run is sequential inside.
    Callers submit only documents they claimed through the repository, so a
    document never runs twice at once.
    """

    def __init__(self, processor: Processor, settings: Settings) -> None:
        self._processor = processor
        self._executor = ThreadPoolExecutor(
            max_workers=settings.max_concurrent_documents,
            thread_name_prefix="document",
        )
        self._in_flight: Counter[int] = Counter()
        self._lock = threading.Lock()

    def submit(self, document_id: int, source_path: Path) -> Future[None]:
        """Schedule a pipeline run and return its future."""
        with self._lock:
            self._in_flight[document_id] += 1
        Log.info(f"Dispatching document {document_id}")
        return self._executor.submit(self._run, document_id, source_path)

    def in_flight_count(self) -> int:
        with self._lock:
            return sum(1 for count in self._in_flight.values() if count > 0)

    def shutdown(self, wait: bool = True) -> None:
        Log.info("Dispatcher shutting down")
        self._executor.shutdown(wait=wait)

    def _run(self, document_id: int, source_path: Path) -> None:
        try:
            self._processor.process_document(document_id, source_path)
        except Exception as exc:
            Log.exception(f"Unexpected error while processing document {document_id}: {exc}")
        finally:
            with self._lock:
                self._in_flight[document_id] -= 1
                if self._in_flight[document_id] <= 0:
                    del self._in_flight[document_id]

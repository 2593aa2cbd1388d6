import threading
from collections.abc import Callable

from app.database.repositories.documents_repository import DocumentsRepository
from app.database.repositories.stats_repository import StatsRepository
from app.events.models import StatsSnapshot
from app.logging.logger import Log

StatsSink = Callable[[StatsSnapshot], None]


class StatsBroadcaster:
    """Recomputes global counters and pushes them to every stats subscriber."""

    def __init__(self, doc_repo: DocumentsRepository, stats_repo: StatsRepository) -> None:
        self._doc_repo = doc_repo
        self._stats_repo = stats_repo
        self._sinks: list[StatsSink] = []
        self._lock = threading.Lock()

    def subscribe(self, sink: StatsSink) -> None:
        with self._lock:
            self._sinks.append(sink)

    def unsubscribe(self, sink: StatsSink) -> None:
        with self._lock:
            if sink in self._sinks:
                self._sinks.remove(sink)

    def snapshot(self) -> StatsSnapshot:
        return StatsSnapshot(
            documents=self._doc_repo.count(),
            pages=self._doc_repo.count_pages(),
            searches=self._stats_repo.get_search_count(),
        )

    def broadcast(self) -> StatsSnapshot | None:
        """Push a fresh snapshot to all subscribers. Errors are logged, not raised."""
        try:
            snapshot = self.snapshot()
        except Exception as exc:
            Log.error(f"Failed to compute stats: {exc}")
            return None

        with self._lock:
            sinks = list(self._sinks)
        for sink in sinks:
            try:
                sink(snapshot)
            except Exception as exc:
                Log.warning(f"Stats delivery failed: {exc}")
        Log.debug(
            f"Stats broadcast: {snapshot.documents} documents, "
            f"{snapshot.pages} pages, {snapshot.searches} searches"
        )
        return snapshot

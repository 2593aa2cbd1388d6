import threading
from collections.abc import Callable

from app.events.models import ProgressEvent
from app.logging.logger import Log

ProgressSink = Callable[[ProgressEvent], None]


class ProgressChannel:
    """Delivers a document's progress events to its single current observer.

    Subscribing replaces any previous observer for the same document. Events
    published while nobody is subscribed are dropped; nothing is buffered.
    """

    def __init__(self) -> None:
        self._sinks: dict[int, ProgressSink] = {}
        self._lock = threading.Lock()

    def subscribe(self, document_id: int, sink: ProgressSink) -> None:
        with self._lock:
            self._sinks[document_id] = sink

    def unsubscribe(self, document_id: int) -> None:
        with self._lock:
            self._sinks.pop(document_id, None)

    def has_observer(self, document_id: int) -> bool:
        with self._lock:
            return document_id in self._sinks

    def publish(self, document_id: int, event: ProgressEvent) -> bool:
        """Deliver an event; return True if an observer received it.

        A sink that raises is deregistered and the error is not propagated.
        """
        with self._lock:
            sink = self._sinks.get(document_id)
        if sink is None:
            Log.debug(f"No progress observer for document {document_id}, dropping {event.status.value}")
            return False
        try:
            sink(event)
        except Exception as exc:
            Log.warning(f"Progress delivery for document {document_id} failed, dropping observer: {exc}")
            with self._lock:
                # The observer may have been replaced while we were delivering.
                if self._sinks.get(document_id) is sink:
                    del self._sinks[document_id]
            return False
        return True

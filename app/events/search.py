import threading
from collections.abc import Callable
from dataclasses import dataclass

from app.events.models import SearchMatch
from app.logging.logger import Log
from app.processor.file_store import thumbnail_url
from app.processor.models import Document, Page
from app.search.snippets import find_snippet, leading_snippet

SearchSink = Callable[[SearchMatch], None]


def normalize_query(raw_query: str | None) -> str:
    return (raw_query or "").lower()


@dataclass(frozen=True, eq=False)
class SearchSubscription:
    """Handle returned by LiveSearchNotifier.subscribe()."""

    query: str
    sink: SearchSink


class LiveSearchNotifier:
    """Pushes match events to standing search queries as pages finish OCR.

    This is separate from the batch search path and never touches search
    statistics.
    """

    def __init__(self) -> None:
        self._subscriptions: set[SearchSubscription] = set()
        self._lock = threading.Lock()

    def subscribe(self, sink: SearchSink, raw_query: str | None) -> SearchSubscription:
        subscription = SearchSubscription(query=normalize_query(raw_query), sink=sink)
        with self._lock:
            self._subscriptions.add(subscription)
        return subscription

    def unsubscribe(self, subscription: SearchSubscription | None) -> None:
        if subscription is None:
            return
        with self._lock:
            self._subscriptions.discard(subscription)

    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def notify_page_processed(self, document: Document, page: Page) -> int:
        """Send a match to every subscription whose query appears in the page or title.

        Returns the number of subscribers that received a match.
        """
        with self._lock:
            subscriptions = list(self._subscriptions)
        if not subscriptions or document.id is None:
            return 0

        title = document.title.lower()
        text = page.text.lower()
        delivered = 0
        for subscription in subscriptions:
            query = subscription.query
            if not query or (query not in text and query not in title):
                continue
            try:
                subscription.sink(self._build_match(document, page, query))
                delivered += 1
            except Exception as exc:
                Log.warning(f"Live search delivery failed for query '{query}': {exc}")
        return delivered

    @staticmethod
    def _build_match(document: Document, page: Page, query: str) -> SearchMatch:
        found = find_snippet(page.text, query)
        snippet = found[1] if found is not None else leading_snippet(page.text)
        return SearchMatch(
            document_id=document.id or 0,
            title=document.display_title,
            filename=document.original_filename,
            page_number=page.page_number,
            confidence=page.confidence,
            snippet=snippet,
            thumbnail=thumbnail_url(document.content_hash, page.page_number),
        )

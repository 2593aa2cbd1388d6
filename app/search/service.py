from dataclasses import dataclass, field

from app.database.repositories.documents_repository import DocumentsRepository
from app.database.repositories.stats_repository import StatsRepository
from app.events.stats import StatsBroadcaster
from app.processor.file_store import thumbnail_url
from app.processor.models import Document
from app.processor.outcomes import best_effort
from app.search.snippets import find_snippet

MAX_LIMIT = 50


@dataclass(frozen=True)
class PageHit:
    page_number: int
    confidence: float
    snippet: str
    match_index: int
    thumbnail: str


@dataclass(frozen=True)
class DocumentHit:
    document_id: int
    title: str
    filename: str
    total_pages: int
    pages: list[PageHit] = field(default_factory=list)


@dataclass(frozen=True)
class SearchResults:
    results: list[DocumentHit]
    total: int
    page: int
    limit: int


class SearchService:
    """On-demand search over recognized page text.

    Each search bumps the global search counter; live subscriptions do not.
    """

    def __init__(
        self,
        doc_repo: DocumentsRepository,
        stats_repo: StatsRepository,
        stats: StatsBroadcaster | None = None,
    ) -> None:
        self._doc_repo = doc_repo
        self._stats_repo = stats_repo
        self._stats = stats

    def search(self, query: str, page: int = 1, limit: int = 10) -> SearchResults:
        page = max(1, page)
        limit = max(1, min(MAX_LIMIT, limit))
        query = query.strip()
        if not query:
            return SearchResults(results=[], total=0, page=page, limit=limit)

        best_effort("Search counter update", self._record_search)

        documents = self._doc_repo.search(query, limit=limit, offset=(page - 1) * limit)
        results = [hit for hit in (self._to_hit(doc, query) for doc in documents) if hit]
        return SearchResults(results=results, total=len(results), page=page, limit=limit)

    def _record_search(self) -> None:
        self._stats_repo.increment_search_count()
        if self._stats is not None:
            self._stats.broadcast()

    @staticmethod
    def _to_hit(document: Document, query: str) -> DocumentHit | None:
        pages: list[PageHit] = []
        for page in document.pages:
            found = find_snippet(page.text, query)
            if found is None:
                continue
            match_index, snippet = found
            pages.append(
                PageHit(
                    page_number=page.page_number,
                    confidence=page.confidence,
                    snippet=snippet,
                    match_index=match_index,
                    thumbnail=thumbnail_url(document.content_hash, page.page_number),
                )
            )
        if not pages:
            return None
        return DocumentHit(
            document_id=document.id or 0,
            title=document.title,
            filename=document.original_filename,
            total_pages=len(document.pages),
            pages=pages,
        )

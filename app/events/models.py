from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class ProgressStatus(str, Enum):
    PROCESSING = "processing"
    CONVERTING = "converting"
    STARTING_OCR = "starting_ocr"
    PAGE_COMPLETE = "page_complete"
    PAGE_FAILED = "page_failed"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({ProgressStatus.DONE, ProgressStatus.FAILED})


@dataclass(frozen=True)
class ProgressEvent:
    """A progress update about one document.

    Build events through the per-kind constructors below; each one fills only
    the fields that kind carries. to_dict() drops the unset ones.
    """

    status: ProgressStatus
    document_id: int | None = None
    page: int | None = None
    step: str | None = None
    progress_fraction: float | None = None
    current_page: int | None = None
    total_pages: int | None = None
    attempt: int | None = None
    max_attempts: int | None = None
    confidence: float | None = None
    successful_pages: int | None = None
    failed_pages: int | None = None
    average_confidence: float | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict[str, Any]:
        payload = {key: value for key, value in asdict(self).items() if value is not None}
        payload["status"] = self.status.value
        return payload

    @classmethod
    def processing(cls, document_id: int) -> "ProgressEvent":
        return cls(status=ProgressStatus.PROCESSING, document_id=document_id)

    @classmethod
    def converting(cls, document_id: int) -> "ProgressEvent":
        return cls(status=ProgressStatus.CONVERTING, document_id=document_id)

    @classmethod
    def page_step(cls, page: int, step: str) -> "ProgressEvent":
        """Sub-step inside one page's recognition (loading-model, recognizing, ...)."""
        return cls(status=ProgressStatus.PROCESSING, page=page, step=step)

    @classmethod
    def starting_ocr(
        cls, page: int, total_pages: int, attempt: int, max_attempts: int
    ) -> "ProgressEvent":
        return cls(
            status=ProgressStatus.STARTING_OCR,
            page=page,
            current_page=page,
            total_pages=total_pages,
            progress_fraction=(page - 1) / total_pages,
            attempt=attempt,
            max_attempts=max_attempts,
        )

    @classmethod
    def page_complete(
        cls,
        page: int,
        total_pages: int,
        confidence: float,
        successful_pages: int,
        failed_pages: int,
        average_confidence: float,
    ) -> "ProgressEvent":
        return cls(
            status=ProgressStatus.PAGE_COMPLETE,
            page=page,
            current_page=page,
            total_pages=total_pages,
            progress_fraction=page / total_pages,
            confidence=confidence,
            successful_pages=successful_pages,
            failed_pages=failed_pages,
            average_confidence=average_confidence,
        )

    @classmethod
    def page_failed(
        cls,
        page: int,
        total_pages: int,
        error: str,
        attempt: int,
        max_attempts: int,
        successful_pages: int,
        failed_pages: int,
        average_confidence: float,
    ) -> "ProgressEvent":
        return cls(
            status=ProgressStatus.PAGE_FAILED,
            page=page,
            current_page=page,
            total_pages=total_pages,
            progress_fraction=page / total_pages,
            error=error,
            attempt=attempt,
            max_attempts=max_attempts,
            successful_pages=successful_pages,
            failed_pages=failed_pages,
            average_confidence=average_confidence,
        )

    @classmethod
    def done(cls, document_id: int, total_pages: int, successful_pages: int) -> "ProgressEvent":
        return cls(
            status=ProgressStatus.DONE,
            document_id=document_id,
            total_pages=total_pages,
            successful_pages=successful_pages,
            progress_fraction=1.0,
        )

    @classmethod
    def failed(cls, document_id: int, error: str) -> "ProgressEvent":
        return cls(status=ProgressStatus.FAILED, document_id=document_id, error=error)


@dataclass(frozen=True)
class SearchMatch:
    """A page that matched a live search query."""

    document_id: int
    title: str
    filename: str
    page_number: int
    confidence: float
    snippet: str
    thumbnail: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.document_id,
            "title": self.title,
            "filename": self.filename,
            "page": {
                "page_number": self.page_number,
                "confidence": self.confidence,
                "snippet": self.snippet,
                "thumbnail": self.thumbnail,
            },
        }


@dataclass(frozen=True)
class StatsSnapshot:
    documents: int
    pages: int
    searches: int

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class DocumentStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"


class PageStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass
class Page:
    """OCR result for one rasterized page (stored inside documents.pages)."""

    page_number: int
    text: str = ""
    confidence: float = 0.0
    status: PageStatus = PageStatus.PENDING
    processed_at: datetime | None = None
    attempts: int = 0
    error: str | None = None
    word_count: int = 0
    char_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "page_number": self.page_number,
            "text": self.text,
            "confidence": self.confidence,
            "status": self.status.value,
            "processed_at": _format_datetime(self.processed_at),
            "attempts": self.attempts,
            "word_count": self.word_count,
            "char_count": self.char_count,
        }
        if self.status == PageStatus.FAILED:
            payload["error"] = self.error
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Page":
        status = PageStatus(data.get("status", PageStatus.PENDING.value))
        return cls(
            page_number=int(data["page_number"]),
            text=data.get("text") or "",
            confidence=float(data.get("confidence") or 0.0),
            status=status,
            processed_at=_parse_datetime(data.get("processed_at")),
            attempts=int(data.get("attempts") or 0),
            error=data.get("error") if status == PageStatus.FAILED else None,
            word_count=int(data.get("word_count") or 0),
            char_count=int(data.get("char_count") or 0),
        )


@dataclass(frozen=True)
class DocumentMeta:
    """Summary statistics written once a run finalizes."""

    total_pages: int
    successful_pages: int
    failed_pages: int
    average_confidence: float
    completed_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_pages": self.total_pages,
            "successful_pages": self.successful_pages,
            "failed_pages": self.failed_pages,
            "average_confidence": self.average_confidence,
            "completed_at": _format_datetime(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DocumentMeta | None":
        if not data:
            return None
        completed_at = _parse_datetime(data.get("completed_at"))
        if completed_at is None:
            return None
        return cls(
            total_pages=int(data.get("total_pages") or 0),
            successful_pages=int(data.get("successful_pages") or 0),
            failed_pages=int(data.get("failed_pages") or 0),
            average_confidence=float(data.get("average_confidence") or 0.0),
            completed_at=completed_at,
        )


@dataclass
class Document:
    """Domain model for a scanned document and its pages."""

    title: str
    original_filename: str
    stored_filename: str
    content_hash: str
    mime_type: str
    language: str = "eng"
    status: DocumentStatus = DocumentStatus.QUEUED
    pages: list[Page] = field(default_factory=list)
    meta: DocumentMeta | None = None
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def display_title(self) -> str:
        return self.title or self.original_filename or "Document"


@dataclass(frozen=True)
class PageOcrResult:
    """Output of recognizing a single page."""

    text: str
    confidence: float
    word_count: int
    char_count: int

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from app.processor.models import DocumentMeta


@dataclass(slots=True)
class PipelineContext:
    """Per-run state: paths and the running page tallies."""

    document_id: int
    source_path: Path
    work_dir: Path
    total_pages: int = 0
    successful_pages: int = 0
    failed_pages: int = 0
    total_confidence: float = 0.0
    meta: DocumentMeta | None = None

    @property
    def average_confidence(self) -> float:
        if self.successful_pages == 0:
            return 0.0
        return self.total_confidence / self.successful_pages

    def record_success(self, confidence: float) -> None:
        self.successful_pages += 1
        self.total_confidence += confidence

    def record_failure(self) -> None:
        self.failed_pages += 1

    def build_meta(self, completed_at: datetime) -> DocumentMeta:
        self.meta = DocumentMeta(
            total_pages=self.total_pages,
            successful_pages=self.successful_pages,
            failed_pages=self.failed_pages,
            average_confidence=self.average_confidence,
            completed_at=completed_at,
        )
        return self.meta

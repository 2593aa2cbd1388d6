import mimetypes
from pathlib import Path

from app.database.repositories.documents_repository import DocumentsRepository
from app.logging.logger import Log
from app.processor.exceptions import UnsupportedMimeTypeError
from app.processor.file_store import FileStore, file_hash
from app.processor.models import Document, DocumentStatus
from app.rasterization.base import PDF_MIME_TYPE


def detect_mime_type(path: Path) -> str:
    mime_type, _encoding = mimetypes.guess_type(path.name)
    return mime_type or "application/octet-stream"


class DocumentIngestor:
    """Stores an uploaded file under its content hash and queues a document for OCR."""

    def __init__(
        self,
        doc_repo: DocumentsRepository,
        file_store: FileStore,
        default_language: str = "eng",
    ) -> None:
        self._doc_repo = doc_repo
        self._file_store = file_store
        self._default_language = default_language

    def ingest(
        self,
        source: Path,
        title: str | None = None,
        language: str | None = None,
    ) -> Document:
        """Create a queued document for a PDF or image file.

        Raises:
            FileNotFoundError: if source does not exist.
            UnsupportedMimeTypeError: if the file is neither a PDF nor an image.
        """
        if not source.is_file():
            raise FileNotFoundError(f"File not found: {source}")
        mime_type = detect_mime_type(source)
        if mime_type != PDF_MIME_TYPE and not mime_type.startswith("image/"):
            raise UnsupportedMimeTypeError(f"Unsupported file type: {mime_type}")

        content_hash = file_hash(source)
        stored = self._file_store.store(source, content_hash)
        document = Document(
            title=(title or "").strip() or source.name,
            original_filename=source.name,
            stored_filename=stored.name,
            content_hash=content_hash,
            mime_type=mime_type,
            language=(language or "").strip() or self._default_language,
            status=DocumentStatus.QUEUED,
        )
        self._doc_repo.create(document)
        Log.info(f"Ingested {source.name} as document {document.id} ({mime_type})")
        return document

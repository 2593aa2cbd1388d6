import hashlib
import shutil
from pathlib import Path

from app.processor.models import Document

_HASH_CHUNK_SIZE = 1024 * 1024


def document_file_path(upload_dir: Path, content_hash: str, stored_filename: str) -> Path:
    """Build path to a stored source file: {upload_dir}/{content_hash}{ext}"""
    suffix = Path(stored_filename).suffix or ".jpg"
    return upload_dir / f"{content_hash}{suffix}"


def thumbnail_filename(content_hash: str, page_number: int) -> str:
    return f"{content_hash}-page-{page_number}.png"


def thumbnail_url(content_hash: str, page_number: int) -> str:
    """Public reference to a page thumbnail, as served from the uploads directory."""
    return f"/uploads/{thumbnail_filename(content_hash, page_number)}"


def file_hash(path: Path) -> str:
    """SHA-256 hex digest of a file's contents."""
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class FileStore:
    """Resolves where source files, page images and thumbnails live on disk."""

    def __init__(self, upload_dir: Path) -> None:
        self._upload_dir = upload_dir

    @property
    def upload_dir(self) -> Path:
        return self._upload_dir

    def source_path(self, document: Document) -> Path:
        return document_file_path(
            self._upload_dir, document.content_hash, document.stored_filename
        )

    def work_dir(self, document_id: int) -> Path:
        """Temporary directory for a document's rendered page images."""
        return self._upload_dir / "pages" / str(document_id)

    def thumbnail_path(self, content_hash: str, page_number: int) -> Path:
        return self._upload_dir / thumbnail_filename(content_hash, page_number)

    def store(self, source: Path, content_hash: str) -> Path:
        """Copy a source file into the upload directory under its content hash.

        Identical content is stored once.
        """
        target = document_file_path(self._upload_dir, content_hash, source.name)
        if not target.exists():
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
        return target

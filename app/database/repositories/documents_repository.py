from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from app.database.connection import get_connection
from app.processor.exceptions import DocumentNotFoundError
from app.processor.models import Document, DocumentMeta, DocumentStatus, Page

_COLUMNS = """
    id, title, original_filename, stored_filename, content_hash, mime_type,
    language, status, pages, meta, created_at, updated_at
"""


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class DocumentsRepository:
    """Database operations for the documents table."""

    def create(self, document: Document) -> int:
        """Insert a new document and return its generated ID."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO documents
                    (title, original_filename, stored_filename, content_hash,
                     mime_type, language, status, pages, meta)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING id
                    """,
                    (
                        document.title,
                        document.original_filename,
                        document.stored_filename,
                        document.content_hash,
                        document.mime_type,
                        document.language,
                        document.status.value,
                        Jsonb([page.to_dict() for page in document.pages]),
                        Jsonb(document.meta.to_dict() if document.meta else {}),
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError("INSERT INTO documents returned no id")
        document.id = int(row[0])
        return document.id

    def find_by_id(self, document_id: int) -> Document | None:
        """Find a document by ID. Returns None when it does not exist."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return self._to_document(row)

    def save(self, document: Document) -> None:
        """Persist every mutable field of the document and refresh updated_at.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        if document.id is None:
            raise ValueError("Cannot save a document without an id; use create()")
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET title = %s,
                        language = %s,
                        status = %s,
                        pages = %s,
                        meta = %s,
                        updated_at = NOW()
                    WHERE id = %s
                    RETURNING updated_at
                    """,
                    (
                        document.title,
                        document.language,
                        document.status.value,
                        Jsonb([page.to_dict() for page in document.pages]),
                        Jsonb(document.meta.to_dict() if document.meta else {}),
                        document.id,
                    ),
                )
                row = cur.fetchone()
                if row is None:
                    raise DocumentNotFoundError(f"Document {document.id} not found")
            conn.commit()
        document.updated_at = row[0]

    def count(self) -> int:
        """Return the total number of documents."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT COUNT(*) FROM documents")
                row = cur.fetchone()
        return int(row[0]) if row else 0

    def count_pages(self) -> int:
        """Return the number of pages across all documents."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT COALESCE(SUM(jsonb_array_length(pages)), 0) FROM documents"
                )
                row = cur.fetchone()
        return int(row[0]) if row else 0

    def claim_queued(self, limit: int) -> list[Document]:
        """Atomically claim up to `limit` of the oldest queued documents.

        Claimed rows move to 'processing' in the same statement.
        Uses FOR UPDATE SKIP LOCKED so concurrent claimers never
        receive the same document.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE documents
                    SET status = 'processing', updated_at = NOW()
                    WHERE id IN (
                        SELECT id FROM documents
                        WHERE status = 'queued'
                        ORDER BY created_at
                        LIMIT %s
                        FOR UPDATE SKIP LOCKED
                    )
                    RETURNING {_COLUMNS}
                    """,
                    (limit,),
                )
                rows = cur.fetchall()
            conn.commit()
        documents = [self._to_document(row) for row in rows]
        documents.sort(key=lambda d: d.id or 0)
        return documents

    def claim(self, document_id: int) -> Document | None:
        """Claim one queued document by ID.

        Returns None when the document is not queued, e.g. because
        another process claimed it first.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    UPDATE documents
                    SET status = 'processing', updated_at = NOW()
                    WHERE id = %s AND status = 'queued'
                    RETURNING {_COLUMNS}
                    """,
                    (document_id,),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            return None
        return self._to_document(row)

    def search(self, query: str, limit: int, offset: int = 0) -> list[Document]:
        """Find documents whose title or any page text contains `query` (case-insensitive)."""
        pattern = f"%{_escape_like(query)}%"
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM documents
                    WHERE title ILIKE %s
                       OR EXISTS (
                           SELECT 1 FROM jsonb_array_elements(pages) AS page
                           WHERE page->>'text' ILIKE %s
                       )
                    ORDER BY updated_at DESC, created_at DESC
                    LIMIT %s OFFSET %s
                    """,
                    (pattern, pattern, limit, offset),
                )
                rows = cur.fetchall()
        return [self._to_document(row) for row in rows]

    @staticmethod
    def _to_document(row: dict[str, Any]) -> Document:
        return Document(
            id=row["id"],
            title=row["title"] or "",
            original_filename=row["original_filename"],
            stored_filename=row["stored_filename"],
            content_hash=row["content_hash"],
            mime_type=row["mime_type"],
            language=row["language"],
            status=DocumentStatus(row["status"]),
            pages=[Page.from_dict(page) for page in row["pages"] or []],
            meta=DocumentMeta.from_dict(row["meta"] or {}),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

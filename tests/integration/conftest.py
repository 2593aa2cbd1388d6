import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from app.config.settings import Settings
from app.database.connection import close_pool, get_connection, init_pool
from app.database.repositories.documents_repository import DocumentsRepository
from app.database.schema import ensure_schema
from app.processor.file_store import FileStore, file_hash
from app.processor.models import Document


def _test_settings() -> Settings:
    return Settings(db_database=os.environ.get("DB_DATABASE", "docscan_test"))


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        ensure_schema()
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a scratch database"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[list[int], None, None]:
    document_ids: list[int] = []
    yield document_ids
    if not document_ids:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM documents WHERE id = ANY(%s)", (document_ids,))
        conn.commit()


@pytest.fixture
def file_store(tmp_path: Path) -> FileStore:
    return FileStore(tmp_path / "uploads")


def _seed(
    source: Path,
    mime_type: str,
    file_store: FileStore,
    cleanup: list[int],
) -> Document:
    content_hash = file_hash(source)
    stored = file_store.store(source, content_hash)
    document = Document(
        title="Invoice 2023",
        original_filename=source.name,
        stored_filename=stored.name,
        content_hash=content_hash,
        mime_type=mime_type,
    )
    DocumentsRepository().create(document)
    assert document.id is not None
    cleanup.append(document.id)
    return document


@pytest.fixture
def seed_pdf_document(
    tmp_path: Path,
    sample_pdf_bytes: bytes,
    file_store: FileStore,
    integration_cleanup: list[int],
) -> Document:
    source = tmp_path / "invoice.pdf"
    source.write_bytes(sample_pdf_bytes)
    return _seed(source, "application/pdf", file_store, integration_cleanup)


@pytest.fixture
def seed_multi_page_document(
    tmp_path: Path,
    multi_page_pdf_bytes: bytes,
    file_store: FileStore,
    integration_cleanup: list[int],
) -> Document:
    source = tmp_path / "pages.pdf"
    source.write_bytes(multi_page_pdf_bytes)
    return _seed(source, "application/pdf", file_store, integration_cleanup)


@pytest.fixture
def seed_image_document(
    sample_png_path: Path,
    file_store: FileStore,
    integration_cleanup: list[int],
) -> Document:
    return _seed(sample_png_path, "image/png", file_store, integration_cleanup)

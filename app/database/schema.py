from app.database.connection import get_connection
from app.logging.logger import Log

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    id BIGSERIAL PRIMARY KEY,
    title TEXT NOT NULL DEFAULT '',
    original_filename TEXT NOT NULL,
    stored_filename TEXT NOT NULL,
    content_hash TEXT NOT NULL,
    mime_type TEXT NOT NULL,
    language TEXT NOT NULL DEFAULT 'eng',
    status TEXT NOT NULL DEFAULT 'queued'
        CHECK (status IN ('queued', 'processing', 'done', 'failed')),
    pages JSONB NOT NULL DEFAULT '[]'::jsonb,
    meta JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS documents_content_hash_idx ON documents (content_hash);
CREATE INDEX IF NOT EXISTS documents_status_created_at_idx ON documents (status, created_at);

CREATE TABLE IF NOT EXISTS search_stats (
    id SMALLINT PRIMARY KEY DEFAULT 1 CHECK (id = 1),
    search_count BIGINT NOT NULL DEFAULT 0,
    last_updated TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""


def ensure_schema() -> None:
    """Create the documents and search_stats tables when missing."""
    with get_connection() as conn:
        conn.execute(SCHEMA_SQL)
        conn.commit()
    Log.info("Database schema is up to date")

from app.database.connection import get_connection


class StatsRepository:
    """Database operations for the singleton search_stats row."""

    def get_search_count(self) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT search_count FROM search_stats WHERE id = 1")
                row = cur.fetchone()
        return int(row[0]) if row else 0

    def increment_search_count(self) -> int:
        """Add one to the search counter, creating the row on first use."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO search_stats (id, search_count, last_updated)
                    VALUES (1, 1, NOW())
                    ON CONFLICT (id) DO UPDATE
                    SET search_count = search_stats.search_count + 1,
                        last_updated = NOW()
                    RETURNING search_count
                    """
                )
                row = cur.fetchone()
            conn.commit()
        return int(row[0]) if row else 0

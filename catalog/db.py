import logging
from pathlib import Path

import aiosqlite

from catalog.models import CatalogTrack

logger = logging.getLogger(__name__)

# Default path to SQLite database (relative to project root)
DEFAULT_DB_PATH = Path(__file__).parent.parent / "catalog.db"

# Upper bound on rows returned by a single substring lookup
MAX_LOOKUP_ROWS = 100


class TrackCatalog:
    """Async SQLite client for the local track catalog.

    Expects two tables, ``artists(id, name)`` and
    ``tracks(id, title, artist_id, file, duration, thumbnail)``.
    """

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or DEFAULT_DB_PATH
        self._conn: aiosqlite.Connection | None = None

    async def connect(self):
        """Open database connection."""
        if not self.db_path.exists():
            raise FileNotFoundError(f"Track catalog not found at {self.db_path}.")

        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row
        logger.info(f"Connected to SQLite catalog: {self.db_path}")

    async def is_available(self) -> bool:
        """Check if the database connection is alive."""
        try:
            if self._conn is None:
                return False
            async with self._conn.execute("SELECT 1") as cursor:
                row = await cursor.fetchone()
                return row is not None
        except Exception:
            return False

    async def close(self):
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None
            logger.info("Closed SQLite connection")

    async def _find(self, column: str, substring: str) -> list[CatalogTrack]:
        if not self._conn:
            raise RuntimeError("Database not connected")

        sql = f"""
            SELECT t.id, t.title, COALESCE(a.name, '') AS artist_name,
                   COALESCE(t.duration, 0) AS duration,
                   COALESCE(t.thumbnail, '') AS thumbnail, t.file
            FROM tracks t
            LEFT JOIN artists a ON a.id = t.artist_id
            WHERE {column} LIKE ? COLLATE NOCASE
            LIMIT ?
        """
        cursor = await self._conn.execute(sql, (f"%{substring}%", MAX_LOOKUP_ROWS))
        rows = await cursor.fetchall()
        return [CatalogTrack(**{**dict(row), "id": str(row["id"])}) for row in rows]

    async def find_by_title(self, title: str) -> list[CatalogTrack]:
        """Find tracks whose title contains the given substring (case-insensitive)."""
        return await self._find("t.title", title)

    async def find_by_artist(self, artist: str) -> list[CatalogTrack]:
        """Find tracks whose artist name contains the given substring (case-insensitive)."""
        return await self._find("a.name", artist)

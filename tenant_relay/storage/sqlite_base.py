# tenant_relay/storage/sqlite_base.py
import sqlite3
import logging
from pathlib import Path
from typing import Optional

from ..settings import settings

logger = logging.getLogger(__name__)

# Global connection instance to ensure single connection per application lifecycle
_db_connection: Optional[sqlite3.Connection] = None


async def get_sqlite_db_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    """
    Get or create the process-wide SQLite connection.

    The first call opens the database (creating its directory if needed)
    and initializes the schema. Later calls return the same handle; the
    ``db_path`` argument only matters on the first call.

    Raises:
        sqlite3.Error: If database connection fails
    """
    global _db_connection
    if _db_connection is None:
        configured_path = db_path or settings.sqlite_db_path
        try:
            resolved_path = Path(configured_path).resolve()
            resolved_path.parent.mkdir(parents=True, exist_ok=True)

            logger.info(f"Attempting to connect to SQLite DB at: {resolved_path}")

            # Enable thread-safe access for async/FastAPI compatibility
            _db_connection = sqlite3.connect(str(resolved_path), check_same_thread=False)
            _db_connection.row_factory = sqlite3.Row

            logger.info(f"Successfully connected to SQLite DB: {resolved_path}")

            await init_sqlite_db(_db_connection)
        except sqlite3.Error as e:
            logger.error(
                f"Error connecting to SQLite database at {configured_path}: {e}",
                exc_info=True
            )
            _db_connection = None
            raise
    return _db_connection


async def init_sqlite_db(conn: Optional[sqlite3.Connection] = None):
    """
    Create the tenant document table if it does not exist.

    The document body is stored as JSON text so fields written by the
    admin console survive untouched; ``etag`` is replaced on every write.
    """
    db_conn = conn or await get_sqlite_db_connection()
    cursor = db_conn.cursor()

    cursor.execute('''
    CREATE TABLE IF NOT EXISTS relay_tenants (
        id TEXT PRIMARY KEY,
        body TEXT NOT NULL,
        etag TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    ''')
    logger.info("Ensured 'relay_tenants' table exists.")

    db_conn.commit()
    logger.info("SQLite database schema initialized/verified.")


async def close_sqlite_db_connection():
    """Close the global SQLite connection during application shutdown."""
    global _db_connection
    if _db_connection is not None:
        logger.info("Closing SQLite DB connection.")
        _db_connection.close()
        _db_connection = None
        logger.info("SQLite DB connection closed.")

# tenant_relay/tenants/sqlite_tenant_store.py
import sqlite3
import logging
import json
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from uuid import uuid4

from .errors import StoreUnavailable, VersionConflict
from .models import Found, NotFound, ReadResult, StoredDocument, ETAG_FIELD
from .storage_interfaces import AbstractTenantDocumentBackend
from ..storage.sqlite_base import get_sqlite_db_connection

logger = logging.getLogger(__name__)


class SQLiteTenantDocumentBackend(AbstractTenantDocumentBackend):
    """
    SQLite implementation of the tenant document backend.

    Conditional writes are single statements: ``INSERT`` relies on the
    primary key for create-if-absent, ``UPDATE ... WHERE etag = ?`` for
    replace-if-match. Any process sharing the database file gets the same
    guarantees.
    """

    def __init__(self, db_path: Optional[str] = None):
        self._db_path = db_path

    async def initialize(self) -> None:
        """Ensure the database and table exist."""
        await get_sqlite_db_connection(self._db_path)
        logger.info("SQLiteTenantDocumentBackend initialized.")

    async def teardown(self) -> None:
        """Connection is managed globally so no action needed."""
        logger.info("SQLiteTenantDocumentBackend teardown (connection managed globally).")

    async def _execute_query(self, query: str, params: tuple = (), commit: bool = True) -> sqlite3.Cursor:
        """
        Execute a SQL query with transaction management.

        ``sqlite3.IntegrityError`` is re-raised as-is for the caller to
        interpret; every other ``sqlite3.Error`` becomes ``StoreUnavailable``.
        """
        conn = await get_sqlite_db_connection(self._db_path)
        cursor = conn.cursor()
        try:
            cursor.execute(query, params)
            if commit:
                conn.commit()
        except sqlite3.IntegrityError:
            if commit:
                conn.rollback()
            raise
        except sqlite3.Error as e:
            logger.error(f"SQLite error executing query '{query.strip()}': {e}", exc_info=True)
            if commit:
                conn.rollback()
            raise StoreUnavailable(f"SQLite tenant backend failed: {e}") from e
        return cursor

    def _row_to_document(self, row: sqlite3.Row) -> StoredDocument:
        try:
            body = json.loads(row["body"])
        except (TypeError, ValueError) as e:
            logger.error(f"Corrupt tenant document for id '{row['id']}': {e}", exc_info=True)
            raise StoreUnavailable(f"Stored document for '{row['id']}' is not valid JSON.", row["id"]) from e
        return StoredDocument(body=body, etag=row["etag"])

    @staticmethod
    def _serialize(body: Dict[str, Any]) -> str:
        return json.dumps({k: v for k, v in body.items() if k != ETAG_FIELD})

    async def read_document(self, tenant_id: str) -> ReadResult:
        query = "SELECT id, body, etag FROM relay_tenants WHERE id = ?"
        cursor = await self._execute_query(query, (tenant_id,), commit=False)
        row = cursor.fetchone()
        if row is None:
            return NotFound(tenant_id=tenant_id)
        return Found(document=self._row_to_document(row))

    async def create_document(self, tenant_id: str, body: Dict[str, Any]) -> StoredDocument:
        etag = uuid4().hex
        query = """
            INSERT INTO relay_tenants (id, body, etag, updated_at)
            VALUES (?, ?, ?, ?)
        """
        params = (tenant_id, self._serialize(body), etag, datetime.now(timezone.utc).isoformat())
        try:
            await self._execute_query(query, params)
        except sqlite3.IntegrityError as e:
            logger.info(f"Store: create lost the race for tenant '{tenant_id}'.")
            raise VersionConflict(tenant_id) from e
        return StoredDocument(body={k: v for k, v in body.items() if k != ETAG_FIELD}, etag=etag)

    async def replace_document(
        self, tenant_id: str, body: Dict[str, Any], if_match: str
    ) -> StoredDocument:
        etag = uuid4().hex
        query = """
            UPDATE relay_tenants SET body = ?, etag = ?, updated_at = ?
            WHERE id = ? AND etag = ?
        """
        params = (
            self._serialize(body),
            etag,
            datetime.now(timezone.utc).isoformat(),
            tenant_id,
            if_match,
        )
        try:
            cursor = await self._execute_query(query, params)
        except sqlite3.IntegrityError as e:
            raise StoreUnavailable(f"Unexpected integrity error replacing '{tenant_id}': {e}", tenant_id) from e
        if cursor.rowcount == 0:
            raise VersionConflict(tenant_id, if_match)
        return StoredDocument(body={k: v for k, v in body.items() if k != ETAG_FIELD}, etag=etag)

    async def list_documents(self, skip: int = 0, limit: int = 100) -> List[StoredDocument]:
        query = """
            SELECT id, body, etag FROM relay_tenants
            ORDER BY id
            LIMIT ? OFFSET ?
        """
        cursor = await self._execute_query(query, (limit, skip), commit=False)
        return [self._row_to_document(row) for row in cursor.fetchall()]


# Singleton instance management
_sqlite_backend_instance: Optional[SQLiteTenantDocumentBackend] = None


async def get_sqlite_tenant_backend() -> SQLiteTenantDocumentBackend:
    """Get or create the singleton SQLite backend, initialized on first use."""
    global _sqlite_backend_instance
    if _sqlite_backend_instance is None:
        _sqlite_backend_instance = SQLiteTenantDocumentBackend()
        await _sqlite_backend_instance.initialize()
    return _sqlite_backend_instance

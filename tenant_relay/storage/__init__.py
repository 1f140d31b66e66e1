# tenant_relay/storage/__init__.py

"""Storage module initialization.

Owns the process-wide SQLite connection used by the tenant document backend.
"""

from .sqlite_base import (
    get_sqlite_db_connection,
    init_sqlite_db,
    close_sqlite_db_connection
)

__all__ = [
    "get_sqlite_db_connection",
    "init_sqlite_db",
    "close_sqlite_db_connection"
]

# tenant_relay/tenants/__init__.py
"""
Tenant record management.

The message path uses ``TenantStore`` (bounded optimistic-concurrency
upsert); the admin console uses ``TenantAdminService``. Both sit on an
``AbstractTenantDocumentBackend``. The admin router lives in
``tenant_relay.tenants.endpoints``.
"""

from .errors import (
    TenantStoreError,
    StoreUnavailable,
    ConcurrencyConflict,
    VersionConflict,
    NotificationFailure,
)
from .models import (
    StoredDocument,
    Found,
    NotFound,
    ReadResult,
    TenantHints,
    TenantRecord,
    NewTenantNotification,
    merge_tenant_document,
)
from .storage_interfaces import AbstractTenantDocumentBackend
from .sqlite_tenant_store import SQLiteTenantDocumentBackend, get_sqlite_tenant_backend
from .memory_tenant_store import InMemoryTenantDocumentBackend
from .secondary_index import AbstractTenantIndex, NullTenantIndex, RedisTenantIndex
from .tenant_store import TenantStore, UpsertState
from .service import TenantAdminService

__all__ = [
    # Errors
    "TenantStoreError",
    "StoreUnavailable",
    "ConcurrencyConflict",
    "VersionConflict",
    "NotificationFailure",
    # Data models
    "StoredDocument",
    "Found",
    "NotFound",
    "ReadResult",
    "TenantHints",
    "TenantRecord",
    "NewTenantNotification",
    "merge_tenant_document",
    # Storage backends
    "AbstractTenantDocumentBackend",
    "SQLiteTenantDocumentBackend",
    "get_sqlite_tenant_backend",
    "InMemoryTenantDocumentBackend",
    # Secondary index
    "AbstractTenantIndex",
    "NullTenantIndex",
    "RedisTenantIndex",
    # Services
    "TenantStore",
    "UpsertState",
    "TenantAdminService",
]

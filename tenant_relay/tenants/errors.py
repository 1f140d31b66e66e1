# tenant_relay/tenants/errors.py
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import TenantRecord


class TenantStoreError(Exception):
    """Base class for failures that cross the tenant store boundary."""

    def __init__(self, message: str, tenant_id: Optional[str] = None):
        self.tenant_id = tenant_id
        super().__init__(message)


class StoreUnavailable(TenantStoreError):
    """
    The backend read or write failed for a reason other than not-found or
    version mismatch: I/O error, timeout, locked database, unreachable host.

    Never retried inside the store. Callers degrade to default credentials.
    """


class ConcurrencyConflict(TenantStoreError):
    """
    The conditional write still conflicted after the single retry.

    ``last_known_record`` is the most recent snapshot the store read, so the
    caller can finish its turn with possibly stale data.
    """

    def __init__(
        self,
        message: str,
        tenant_id: Optional[str] = None,
        last_known_record: Optional["TenantRecord"] = None
    ):
        super().__init__(message, tenant_id=tenant_id)
        self.last_known_record = last_known_record


class VersionConflict(Exception):
    """
    Raised by a backend when a conditional write loses: the document already
    exists on create, or its etag no longer matches on replace.
    """

    def __init__(self, tenant_id: str, expected_etag: Optional[str] = None):
        self.tenant_id = tenant_id
        self.expected_etag = expected_etag
        if expected_etag:
            message = f"Version mismatch for tenant '{tenant_id}' (expected etag {expected_etag})."
        else:
            message = f"Tenant '{tenant_id}' already exists."
        super().__init__(message)


class NotificationFailure(Exception):
    """A notification sink could not deliver. Always logged, never surfaced."""

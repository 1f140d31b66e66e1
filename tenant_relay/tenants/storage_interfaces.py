# tenant_relay/tenants/storage_interfaces.py
from abc import ABC, abstractmethod
from typing import Any, Dict, List
from .models import ReadResult, StoredDocument


class AbstractTenantDocumentBackend(ABC):
    """
    Point-read / conditional-write contract over tenant documents.

    Implementations must key every operation by tenant id (no queries on the
    hot path), raise ``VersionConflict`` when a conditional write loses, and
    raise ``StoreUnavailable`` for every other failure.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the storage backend and prepare it for operations."""
        pass

    @abstractmethod
    async def teardown(self) -> None:
        """Clean up resources and properly close the storage backend."""
        pass

    @abstractmethod
    async def read_document(self, tenant_id: str) -> ReadResult:
        """
        Consistent point read by tenant id.

        Returns:
            ``Found`` with the document and its etag, or ``NotFound``
        """
        pass

    @abstractmethod
    async def create_document(self, tenant_id: str, body: Dict[str, Any]) -> StoredDocument:
        """
        Insert a document only if none exists for this tenant.

        Returns:
            The stored document with its new etag

        Raises:
            VersionConflict: If a document already exists
        """
        pass

    @abstractmethod
    async def replace_document(
        self, tenant_id: str, body: Dict[str, Any], if_match: str
    ) -> StoredDocument:
        """
        Replace the document only if its current etag equals ``if_match``.

        Returns:
            The stored document with its new etag

        Raises:
            VersionConflict: If the etag changed or the document is gone
        """
        pass

    @abstractmethod
    async def list_documents(self, skip: int = 0, limit: int = 100) -> List[StoredDocument]:
        """Paginated listing for the admin surface, ordered by tenant id."""
        pass

# tenant_relay/tenants/memory_tenant_store.py
import copy
import logging
from typing import Any, Dict, List, Tuple
from uuid import uuid4

from .errors import VersionConflict
from .models import Found, NotFound, ReadResult, StoredDocument, ETAG_FIELD
from .storage_interfaces import AbstractTenantDocumentBackend

logger = logging.getLogger(__name__)


class InMemoryTenantDocumentBackend(AbstractTenantDocumentBackend):
    """
    Process-local backend for development and tests.

    Each method body runs without awaiting, so within one event loop every
    conditional write is atomic. Documents are deep-copied in and out.
    """

    def __init__(self):
        self._documents: Dict[str, Tuple[Dict[str, Any], str]] = {}

    async def initialize(self) -> None:
        logger.info("InMemoryTenantDocumentBackend initialized.")

    async def teardown(self) -> None:
        self._documents.clear()

    async def read_document(self, tenant_id: str) -> ReadResult:
        entry = self._documents.get(tenant_id)
        if entry is None:
            return NotFound(tenant_id=tenant_id)
        body, etag = entry
        return Found(document=StoredDocument(body=copy.deepcopy(body), etag=etag))

    async def create_document(self, tenant_id: str, body: Dict[str, Any]) -> StoredDocument:
        if tenant_id in self._documents:
            raise VersionConflict(tenant_id)
        return self._put(tenant_id, body)

    async def replace_document(
        self, tenant_id: str, body: Dict[str, Any], if_match: str
    ) -> StoredDocument:
        entry = self._documents.get(tenant_id)
        if entry is None or entry[1] != if_match:
            raise VersionConflict(tenant_id, if_match)
        return self._put(tenant_id, body)

    async def list_documents(self, skip: int = 0, limit: int = 100) -> List[StoredDocument]:
        tenant_ids = sorted(self._documents)[skip:skip + limit]
        return [
            StoredDocument(body=copy.deepcopy(self._documents[t][0]), etag=self._documents[t][1])
            for t in tenant_ids
        ]

    def _put(self, tenant_id: str, body: Dict[str, Any]) -> StoredDocument:
        stored_body = {k: copy.deepcopy(v) for k, v in body.items() if k != ETAG_FIELD}
        etag = uuid4().hex
        self._documents[tenant_id] = (stored_body, etag)
        return StoredDocument(body=copy.deepcopy(stored_body), etag=etag)

# tenant_relay/tenants/service.py
import logging
from typing import Any, Dict, List, Optional

from .errors import VersionConflict
from .models import (
    Found,
    ProviderCredentialsUpdate,
    TenantRecord,
    PROVIDER_SECRET_FIELD,
    PROVIDER_VERSION_FIELD,
    RESERVED_FIELDS,
)
from .storage_interfaces import AbstractTenantDocumentBackend
from ..utils.security import FernetEncryptor

logger = logging.getLogger(__name__)


class TenantAdminService:
    """
    The out-of-band writer: administrative changes to tenant records.

    Writes are conditional on an etag like the message path, but never
    retried. A lost write surfaces as ``VersionConflict`` so the console
    can re-read and decide. Only the keys named in a request are touched.
    """

    def __init__(
        self,
        backend: AbstractTenantDocumentBackend,
        encryptor: Optional[FernetEncryptor] = None
    ):
        self.backend = backend
        self._encryptor = encryptor

    async def get_tenant(self, tenant_id: str) -> Optional[TenantRecord]:
        logger.info(f"Service: Getting tenant '{tenant_id}'")
        result = await self.backend.read_document(tenant_id)
        if isinstance(result, Found):
            return TenantRecord.from_document(result.document)
        return None

    async def list_tenants(self, skip: int = 0, limit: int = 100) -> List[TenantRecord]:
        logger.info(f"Service: Listing tenants with skip: {skip}, limit: {limit}")
        documents = await self.backend.list_documents(skip=skip, limit=limit)
        return [TenantRecord.from_document(doc) for doc in documents]

    async def _conditional_update(
        self,
        tenant_id: str,
        changes: Dict[str, Any],
        if_match: Optional[str]
    ) -> Optional[TenantRecord]:
        result = await self.backend.read_document(tenant_id)
        if not isinstance(result, Found):
            return None
        current = result.document
        if if_match and if_match != current.etag:
            logger.warning(
                f"Service: stale If-Match for tenant '{tenant_id}' "
                f"(given {if_match}, current {current.etag})."
            )
            raise VersionConflict(tenant_id, if_match)

        body = dict(current.body)
        body.update(changes)
        stored = await self.backend.replace_document(tenant_id, body, current.etag)
        return TenantRecord.from_document(stored)

    async def set_provider_credentials(
        self,
        tenant_id: str,
        update: ProviderCredentialsUpdate,
        if_match: Optional[str] = None
    ) -> Optional[TenantRecord]:
        """
        Store runtime credentials for a tenant, encrypting the secret when an
        encryption key is configured.

        Returns:
            The updated record, or None if the tenant does not exist
        """
        logger.info(f"Service: Setting provider credentials for tenant '{tenant_id}'")
        secret = update.voiceflow_secret
        if self._encryptor is not None and self._encryptor.key_valid:
            secret = self._encryptor.encrypt(secret)
        else:
            logger.warning(f"Service: storing provider secret for '{tenant_id}' unencrypted.")

        changes: Dict[str, Any] = {PROVIDER_SECRET_FIELD: secret}
        if update.voiceflow_version is not None:
            changes[PROVIDER_VERSION_FIELD] = update.voiceflow_version
        return await self._conditional_update(tenant_id, changes, if_match)

    async def update_fields(
        self,
        tenant_id: str,
        fields: Dict[str, Any],
        if_match: Optional[str] = None
    ) -> Optional[TenantRecord]:
        """
        Set administrative fields on a tenant.

        Raises:
            ValueError: If a key is reserved for the store or storage layer
        """
        rejected = sorted(k for k in fields if k in RESERVED_FIELDS or k.startswith("_"))
        if rejected:
            raise ValueError(f"Fields cannot be set through the admin API: {', '.join(rejected)}")
        logger.info(f"Service: Updating fields {sorted(fields)} for tenant '{tenant_id}'")
        return await self._conditional_update(tenant_id, fields, if_match)

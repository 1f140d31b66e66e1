# tenant_relay/turns/credentials.py
import logging
from typing import Optional

from .models import ProviderCredentials
from ..tenants.models import TenantRecord
from ..utils.security import FernetEncryptor

logger = logging.getLogger(__name__)


def resolve_provider_credentials(
    record: Optional[TenantRecord],
    default_api_key: Optional[str],
    default_version: Optional[str],
    encryptor: Optional[FernetEncryptor] = None
) -> ProviderCredentials:
    """
    Pick runtime credentials for a turn.

    The tenant's secret and version each fall back to the ambient defaults
    independently. ``source`` reports where the secret came from.
    """
    tenant_secret = record.voiceflow_secret if record else None
    tenant_version = record.voiceflow_version if record else None

    if tenant_secret and encryptor is not None:
        tenant_secret = encryptor.reveal(tenant_secret)

    credentials = ProviderCredentials(
        api_key=tenant_secret or default_api_key,
        version_id=tenant_version or default_version,
        source="tenant" if tenant_secret else "default",
    )
    logger.debug(
        f"Turn: credentials for tenant '{record.id if record else None}' "
        f"from {credentials.source}, version={credentials.version_id}"
    )
    return credentials

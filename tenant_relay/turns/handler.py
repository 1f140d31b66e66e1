# tenant_relay/turns/handler.py
import logging
from typing import List, Optional

from .credentials import resolve_provider_credentials
from .models import MessageContext, RuntimeOutput, TurnResult
from .runtime import AbstractRuntimeClient
from ..tenants.errors import ConcurrencyConflict, StoreUnavailable
from ..tenants.models import TenantRecord
from ..tenants.tenant_store import TenantStore
from ..utils.security import FernetEncryptor

logger = logging.getLogger(__name__)

APOLOGY_TEXT = "Sorry, something went wrong on our side. Please try again in a moment."


class TurnHandler:
    """
    Runs one inbound message: refresh the tenant record, pick credentials,
    forward the utterance to the runtime.

    Tenant store failures degrade the turn rather than abort it: a stale
    snapshot or the ambient credentials are used instead.
    """

    def __init__(
        self,
        store: TenantStore,
        runtime_client: Optional[AbstractRuntimeClient] = None,
        default_api_key: Optional[str] = None,
        default_version: Optional[str] = None,
        encryptor: Optional[FernetEncryptor] = None
    ):
        self.store = store
        self.runtime_client = runtime_client
        self.default_api_key = default_api_key
        self.default_version = default_version
        self.encryptor = encryptor

    async def handle(self, context: MessageContext) -> TurnResult:
        record: Optional[TenantRecord] = None
        record_status = "committed"
        try:
            record = await self.store.upsert_tenant(
                context.tenant_id,
                user_id=context.user_id,
                company_name=context.company_name,
                email=context.email,
            )
        except ConcurrencyConflict as e:
            logger.warning(f"Turn: {e} Continuing with last known record.")
            record = e.last_known_record
            record_status = "stale"
        except StoreUnavailable as e:
            logger.error(f"Turn: tenant store unavailable for '{context.tenant_id}': {e}")
            record_status = "unavailable"

        credentials = resolve_provider_credentials(
            record, self.default_api_key, self.default_version, self.encryptor
        )

        outputs: List[RuntimeOutput] = []
        if self.runtime_client is None:
            logger.warning("Turn: no runtime client configured; returning no outputs.")
        elif not credentials.api_key:
            logger.error(f"Turn: no runtime credentials for tenant '{context.tenant_id}'.")
            outputs = [RuntimeOutput(type="text", value=APOLOGY_TEXT)]
        else:
            try:
                outputs = await self.runtime_client.interact(context.user_id, context.utterance, credentials)
            except Exception as e:
                logger.error(f"Turn: runtime interaction failed for '{context.tenant_id}': {e}", exc_info=True)
                outputs = [RuntimeOutput(type="text", value=APOLOGY_TEXT)]

        return TurnResult(
            tenant_id=context.tenant_id,
            record_status=record_status,
            credentials_source=credentials.source,
            outputs=outputs,
        )

# tenant_relay/main.py
from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging
from typing import Any, List, Optional
import httpx
from dotenv import load_dotenv
load_dotenv()

from .settings import settings
from .storage.sqlite_base import close_sqlite_db_connection
from .tenants.storage_interfaces import AbstractTenantDocumentBackend
from .tenants.sqlite_tenant_store import get_sqlite_tenant_backend
from .tenants.memory_tenant_store import InMemoryTenantDocumentBackend
from .tenants.secondary_index import AbstractTenantIndex, NullTenantIndex, RedisTenantIndex
from .tenants.tenant_store import TenantStore
from .tenants.endpoints import tenants_admin_router
from .notifications.sinks import (
    AbstractNotificationSink, LoggingNotificationSink, WebhookNotificationSink,
)
from .turns.handler import TurnHandler
from .turns.endpoints import messages_router
from .turns.runtime import AbstractRuntimeClient
from .utils.security import FernetEncryptor

if not logging.getLogger().hasHandlers():
    logging.basicConfig(
        level="DEBUG" if settings.debug_mode else settings.log_level.upper(),
        format='%(asctime)s - %(name)s [%(levelname)s] - %(message)s'
    )

logger = logging.getLogger(__name__)


async def build_tenant_backend() -> AbstractTenantDocumentBackend:
    if settings.storage_backend == "sqlite":
        backend = await get_sqlite_tenant_backend()
        logger.info("SQLite backend selected and connection initialized.")
        return backend
    if settings.storage_backend == "memory":
        backend = InMemoryTenantDocumentBackend()
        await backend.initialize()
        logger.warning("In-memory tenant backend selected; records are lost on restart.")
        return backend
    raise ValueError(f"Unsupported storage_backend: {settings.storage_backend}")


async def build_tenant_index() -> AbstractTenantIndex:
    index: AbstractTenantIndex = RedisTenantIndex() if settings.secondary_index_enabled else NullTenantIndex()
    try:
        await index.initialize()
    except Exception as e:
        # The index is off the critical path; start without it.
        logger.error(f"Secondary index unavailable at startup, continuing without it: {e}")
        index = NullTenantIndex()
    return index


def build_notification_sink() -> AbstractNotificationSink:
    if settings.notification_webhook_url:
        client = httpx.AsyncClient(timeout=settings.notification_timeout_seconds)
        return WebhookNotificationSink(
            client,
            settings.notification_webhook_url,
            mailbox=settings.notification_mailbox,
            owns_client=True,
        )
    return LoggingNotificationSink()


def create_app(runtime_client: Optional[AbstractRuntimeClient] = None) -> FastAPI:
    """
    Build the relay application.

    ``runtime_client`` is the conversational runtime adapter; without one
    the relay still maintains tenant records but returns no outputs.
    """

    @asynccontextmanager
    async def relay_app_lifespan(app_instance: FastAPI):
        logger.info("Application startup initiated.")
        initialized: List[Any] = []

        backend = await build_tenant_backend()
        initialized.append(backend)
        index = await build_tenant_index()
        initialized.append(index)
        sink = build_notification_sink()
        initialized.append(sink)
        encryptor = FernetEncryptor(settings.relay_encryption_key)

        store = TenantStore(
            backend,
            index=index,
            notification_sink=sink,
            timeout_seconds=settings.store_timeout_seconds,
        )
        app_instance.state.tenant_backend = backend
        app_instance.state.tenant_store = store
        app_instance.state.encryptor = encryptor
        app_instance.state.turn_handler = TurnHandler(
            store,
            runtime_client=runtime_client,
            default_api_key=settings.voiceflow_api_key,
            default_version=settings.voiceflow_version,
            encryptor=encryptor,
        )
        if runtime_client is not None:
            initialized.append(runtime_client)
        logger.info("Tenant store and turn handler initialized.")

        yield

        logger.info("Application shutdown initiated.")
        await store.drain_background_tasks()
        for component in reversed(initialized):
            try:
                await component.teardown()
            except Exception as e_td:
                logger.error(f"Teardown error: {e_td}", exc_info=True)
        if settings.storage_backend == "sqlite":
            await close_sqlite_db_connection()
        logger.info("All components torn down.")

    app_instance = FastAPI(title=settings.app_name, lifespan=relay_app_lifespan)
    app_instance.include_router(messages_router)
    app_instance.include_router(tenants_admin_router)

    @app_instance.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok", "storage_backend": settings.storage_backend}

    return app_instance


app = create_app()

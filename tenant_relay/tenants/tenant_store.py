# tenant_relay/tenants/tenant_store.py
import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Set

from .errors import ConcurrencyConflict, NotificationFailure, StoreUnavailable, VersionConflict
from .models import (
    Found,
    NewTenantNotification,
    ReadResult,
    StoredDocument,
    TenantHints,
    TenantRecord,
    merge_tenant_document,
)
from .secondary_index import AbstractTenantIndex, NullTenantIndex
from .storage_interfaces import AbstractTenantDocumentBackend

if TYPE_CHECKING:
    from ..notifications.sinks import AbstractNotificationSink

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UpsertState(str, Enum):
    """States of the read-merge-write protocol, used in log lines."""
    READ = "read"
    CREATE_MERGE = "create_merge"
    UPDATE_MERGE = "update_merge"
    WRITE = "write"
    CONFLICT = "conflict"
    REREAD = "reread"
    REMERGE = "remerge"
    WRITE_RETRY = "write_retry"
    COMMITTED = "committed"
    FAILED = "failed"


class TenantStore:
    """
    Owns the durable tenant record on the message path.

    ``upsert_tenant`` reads the record, merges the fields this component
    owns, and writes it back conditioned on the etag it read. A lost write
    is retried exactly once from a fresh read; a second loss raises
    ``ConcurrencyConflict``. Only the attempt that commits a create fires
    the new-tenant side effects, and only after the commit.

    Correctness relies on the backend's conditional write alone, so several
    processes may share one backend.
    """

    MAX_WRITE_ATTEMPTS = 2

    def __init__(
        self,
        backend: AbstractTenantDocumentBackend,
        index: Optional[AbstractTenantIndex] = None,
        notification_sink: Optional["AbstractNotificationSink"] = None,
        timeout_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = _utcnow
    ):
        self.backend = backend
        self.index = index or NullTenantIndex()
        self.notification_sink = notification_sink
        self.timeout_seconds = timeout_seconds
        self._clock = clock
        self._background_tasks: Set[asyncio.Task] = set()

    async def _call_backend(
        self,
        operation: str,
        tenant_id: str,
        call: Awaitable[Any],
        timeout: Optional[float]
    ) -> Any:
        """
        Await one backend call under the deadline.

        ``VersionConflict`` passes through for the retry loop; timeouts and
        any other backend error surface as ``StoreUnavailable``.
        """
        try:
            return await asyncio.wait_for(call, timeout)
        except (VersionConflict, StoreUnavailable):
            raise
        except asyncio.TimeoutError as e:
            logger.error(f"Store: {operation} for tenant '{tenant_id}' timed out after {timeout}s.")
            raise StoreUnavailable(
                f"Tenant backend {operation} timed out after {timeout}s.", tenant_id
            ) from e
        except Exception as e:
            logger.error(f"Store: {operation} for tenant '{tenant_id}' failed: {e}", exc_info=True)
            raise StoreUnavailable(f"Tenant backend {operation} failed: {e}", tenant_id) from e

    def _effective_timeout(self, timeout: Optional[float]) -> Optional[float]:
        return timeout if timeout is not None else self.timeout_seconds

    async def _read(self, tenant_id: str, timeout: Optional[float]) -> ReadResult:
        return await self._call_backend("read", tenant_id, self.backend.read_document(tenant_id), timeout)

    async def get_tenant_config(
        self, tenant_id: str, timeout: Optional[float] = None
    ) -> Optional[TenantRecord]:
        """Pure read. Returns None when the tenant has never been seen."""
        result = await self._read(tenant_id, self._effective_timeout(timeout))
        if isinstance(result, Found):
            return TenantRecord.from_document(result.document)
        return None

    async def upsert_tenant(
        self,
        tenant_id: str,
        user_id: Optional[str] = None,
        company_name: Optional[str] = None,
        email: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> TenantRecord:
        """
        Create the tenant record on first contact or refresh ``lastSeen``.

        Provenance hints seed a new record and fill provenance fields that
        are still empty; they never overwrite stored values. Fields written
        by the admin console are carried over untouched.

        Raises:
            StoreUnavailable: A backend call failed or exceeded its deadline
            ConcurrencyConflict: The write conflicted again after one retry
        """
        if not tenant_id:
            raise ValueError("tenant_id must be a non-empty string.")

        hints = TenantHints(user_id=user_id, company_name=company_name, email=email)
        deadline = self._effective_timeout(timeout)
        last_known: Optional[TenantRecord] = None
        attempt = 0

        while True:
            attempt += 1
            retrying = attempt > 1
            state = UpsertState.REREAD if retrying else UpsertState.READ
            logger.debug(f"Store: tenant '{tenant_id}' -> {state.value}")

            result = await self._read(tenant_id, deadline)
            base: Optional[StoredDocument] = None
            if isinstance(result, Found):
                base = result.document
                last_known = TenantRecord.from_document(base)
                state = UpsertState.REMERGE if retrying else UpsertState.UPDATE_MERGE
            else:
                if not retrying:
                    logger.info(f"Store: creating new tenant record for '{tenant_id}'.")
                state = UpsertState.CREATE_MERGE

            body = merge_tenant_document(base.body if base else None, tenant_id, hints, self._clock())
            is_new = base is None
            logger.debug(f"Store: tenant '{tenant_id}' -> {state.value}")

            state = UpsertState.WRITE_RETRY if retrying else UpsertState.WRITE
            try:
                if is_new:
                    stored = await self._call_backend(
                        "create", tenant_id, self.backend.create_document(tenant_id, body), deadline
                    )
                else:
                    stored = await self._call_backend(
                        "replace", tenant_id, self.backend.replace_document(tenant_id, body, base.etag), deadline
                    )
            except VersionConflict:
                if attempt < self.MAX_WRITE_ATTEMPTS:
                    logger.warning(
                        f"Store: {UpsertState.CONFLICT.value} on {state.value} for tenant '{tenant_id}'; "
                        "re-reading latest document for a single retry."
                    )
                    continue
                logger.error(
                    f"Store: {UpsertState.FAILED.value} - tenant '{tenant_id}' still conflicted "
                    f"after {attempt} attempts."
                )
                raise ConcurrencyConflict(
                    f"Tenant '{tenant_id}' was modified concurrently; retry budget exhausted.",
                    tenant_id=tenant_id,
                    last_known_record=last_known,
                )

            record = TenantRecord.from_document(stored)
            logger.info(
                f"Store: {UpsertState.COMMITTED.value} tenant '{tenant_id}' "
                f"(new={is_new}, attempt={attempt}, lastSeen={body['lastSeen']})."
            )
            if is_new:
                await self._dispatch_new_tenant(record, deadline)
            await self._project_to_index(record, deadline)
            return record

    async def _dispatch_new_tenant(self, record: TenantRecord, timeout: Optional[float]) -> None:
        """Fire the one-time side effects of a committed create."""
        if self.notification_sink is not None:
            notification = NewTenantNotification(
                tenant_id=record.id,
                user_id=record.user_id,
                company_name=record.company_name,
                email=record.email,
                created_at=record.last_seen or self._clock(),
            )
            task = asyncio.create_task(self._deliver_notification(notification))
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)

        try:
            await asyncio.wait_for(self.index.seed_tenant(record), timeout)
        except Exception as e:
            logger.warning(f"Index: seed for new tenant '{record.id}' failed: {e}", exc_info=True)

    async def _deliver_notification(self, notification: NewTenantNotification) -> None:
        try:
            await self.notification_sink.notify_new_tenant(notification)
        except NotificationFailure as e:
            logger.warning(f"Notify: new-tenant notification for '{notification.tenant_id}' failed: {e}")
        except Exception as e:
            logger.error(
                f"Notify: unexpected error notifying for '{notification.tenant_id}': {e}",
                exc_info=True
            )

    async def _project_to_index(self, record: TenantRecord, timeout: Optional[float]) -> None:
        try:
            await asyncio.wait_for(self.index.upsert_tenant(record), timeout)
        except Exception as e:
            logger.warning(f"Index: upsert for tenant '{record.id}' failed: {e}", exc_info=True)

    async def drain_background_tasks(self) -> None:
        """Wait for scheduled notifications. Used at shutdown and in tests."""
        pending = list(self._background_tasks)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

# tests/conftest.py
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from tenant_relay.storage.sqlite_base import close_sqlite_db_connection
from tenant_relay.tenants.errors import NotificationFailure, VersionConflict
from tenant_relay.tenants.memory_tenant_store import InMemoryTenantDocumentBackend
from tenant_relay.tenants.models import NewTenantNotification, TenantRecord
from tenant_relay.tenants.secondary_index import AbstractTenantIndex
from tenant_relay.tenants.sqlite_tenant_store import SQLiteTenantDocumentBackend
from tenant_relay.tenants.storage_interfaces import AbstractTenantDocumentBackend
from tenant_relay.notifications.sinks import AbstractNotificationSink

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s - %(name)s - [%(levelname)s] - %(message)s",
)

T0 = datetime(2024, 5, 1, 9, 30, 0, tzinfo=timezone.utc)


class SteppingClock:
    """Returns T0, T0+1s, T0+2s, ... on successive calls."""

    def __init__(self, start: datetime = T0, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


class FrozenClock:
    def __init__(self, value: datetime = T0):
        self.value = value

    def __call__(self) -> datetime:
        return self.value


class RecordingSink(AbstractNotificationSink):
    def __init__(self):
        self.notifications: List[NewTenantNotification] = []

    async def notify_new_tenant(self, notification: NewTenantNotification) -> None:
        self.notifications.append(notification)


class FailingSink(AbstractNotificationSink):
    def __init__(self, error: Exception = None):
        self.error = error or NotificationFailure("relay down")
        self.calls = 0

    async def notify_new_tenant(self, notification: NewTenantNotification) -> None:
        self.calls += 1
        raise self.error


class RecordingIndex(AbstractTenantIndex):
    def __init__(self):
        self.seeded: List[TenantRecord] = []
        self.upserted: List[TenantRecord] = []

    async def initialize(self) -> None:
        pass

    async def teardown(self) -> None:
        pass

    async def seed_tenant(self, record: TenantRecord) -> None:
        self.seeded.append(record)

    async def upsert_tenant(self, record: TenantRecord) -> None:
        self.upserted.append(record)


class FailingIndex(RecordingIndex):
    async def seed_tenant(self, record: TenantRecord) -> None:
        raise RuntimeError("index seed exploded")

    async def upsert_tenant(self, record: TenantRecord) -> None:
        raise ConnectionError("redis unreachable")


class DelegatingBackend(AbstractTenantDocumentBackend):
    """Forwards to an inner backend and counts calls; subclasses inject faults."""

    def __init__(self, inner: AbstractTenantDocumentBackend):
        self.inner = inner
        self.calls: Dict[str, int] = {"read": 0, "create": 0, "replace": 0}

    async def initialize(self) -> None:
        await self.inner.initialize()

    async def teardown(self) -> None:
        await self.inner.teardown()

    async def read_document(self, tenant_id: str):
        self.calls["read"] += 1
        return await self.inner.read_document(tenant_id)

    async def create_document(self, tenant_id: str, body: Dict[str, Any]):
        self.calls["create"] += 1
        return await self.inner.create_document(tenant_id, body)

    async def replace_document(self, tenant_id: str, body: Dict[str, Any], if_match: str):
        self.calls["replace"] += 1
        return await self.inner.replace_document(tenant_id, body, if_match)

    async def list_documents(self, skip: int = 0, limit: int = 100):
        return await self.inner.list_documents(skip=skip, limit=limit)

    @property
    def writes(self) -> int:
        return self.calls["create"] + self.calls["replace"]


class ConflictingBackend(DelegatingBackend):
    """
    Before each of the next ``conflicts`` writes, another writer (the admin
    console) commits a change, so the write loses on its stale etag.
    """

    def __init__(self, inner: AbstractTenantDocumentBackend, conflicts: int):
        super().__init__(inner)
        self.conflicts_remaining = conflicts

    async def _interfere(self, tenant_id: str) -> None:
        result = await self.inner.read_document(tenant_id)
        body = dict(result.document.body)
        body["consoleEdits"] = body.get("consoleEdits", 0) + 1
        await self.inner.replace_document(tenant_id, body, result.document.etag)

    async def replace_document(self, tenant_id: str, body: Dict[str, Any], if_match: str):
        if self.conflicts_remaining > 0:
            self.conflicts_remaining -= 1
            await self._interfere(tenant_id)
        return await super().replace_document(tenant_id, body, if_match)


class RacingCreateBackend(DelegatingBackend):
    """Another process creates the document just before our create lands."""

    def __init__(self, inner: AbstractTenantDocumentBackend, rival_body: Dict[str, Any]):
        super().__init__(inner)
        self.rival_body = rival_body
        self.raced = False

    async def create_document(self, tenant_id: str, body: Dict[str, Any]):
        if not self.raced:
            self.raced = True
            await self.inner.create_document(tenant_id, self.rival_body)
        return await super().create_document(tenant_id, body)


class FirstReadBarrierBackend(DelegatingBackend):
    """Holds every caller's first read until ``parties`` callers have read."""

    def __init__(self, inner: AbstractTenantDocumentBackend, parties: int):
        super().__init__(inner)
        self.parties = parties
        self._seen = set()
        self._released = asyncio.Event()

    async def read_document(self, tenant_id: str):
        result = await super().read_document(tenant_id)
        task = asyncio.current_task()
        if task not in self._seen:
            self._seen.add(task)
            if len(self._seen) >= self.parties:
                self._released.set()
            await self._released.wait()
        return result


class SlowBackend(DelegatingBackend):
    def __init__(self, inner: AbstractTenantDocumentBackend, delay: float, on: str = "read"):
        super().__init__(inner)
        self.delay = delay
        self.on = on

    async def read_document(self, tenant_id: str):
        if self.on == "read":
            await asyncio.sleep(self.delay)
        return await super().read_document(tenant_id)

    async def create_document(self, tenant_id: str, body: Dict[str, Any]):
        if self.on == "write":
            await asyncio.sleep(self.delay)
        return await super().create_document(tenant_id, body)

    async def replace_document(self, tenant_id: str, body: Dict[str, Any], if_match: str):
        if self.on == "write":
            await asyncio.sleep(self.delay)
        return await super().replace_document(tenant_id, body, if_match)


class BrokenBackend(DelegatingBackend):
    def __init__(self, inner: AbstractTenantDocumentBackend, error: Exception, on: str = "read"):
        super().__init__(inner)
        self.error = error
        self.on = on

    async def read_document(self, tenant_id: str):
        if self.on == "read":
            raise self.error
        return await super().read_document(tenant_id)

    async def replace_document(self, tenant_id: str, body: Dict[str, Any], if_match: str):
        if self.on == "write":
            raise self.error
        return await super().replace_document(tenant_id, body, if_match)

    async def create_document(self, tenant_id: str, body: Dict[str, Any]):
        if self.on == "write":
            raise self.error
        return await super().create_document(tenant_id, body)


@pytest.fixture
async def memory_backend():
    backend = InMemoryTenantDocumentBackend()
    await backend.initialize()
    yield backend
    await backend.teardown()


@pytest.fixture
async def sqlite_backend(tmp_path):
    await close_sqlite_db_connection()
    backend = SQLiteTenantDocumentBackend(str(tmp_path / "relay.sqlite3"))
    await backend.initialize()
    yield backend
    await backend.teardown()
    await close_sqlite_db_connection()


@pytest.fixture(params=["memory", "sqlite"])
async def backend(request, tmp_path):
    """Both shipped backends, so store properties hold for each."""
    if request.param == "memory":
        inner = InMemoryTenantDocumentBackend()
        await inner.initialize()
        yield inner
        await inner.teardown()
    else:
        await close_sqlite_db_connection()
        inner = SQLiteTenantDocumentBackend(str(tmp_path / "relay.sqlite3"))
        await inner.initialize()
        yield inner
        await close_sqlite_db_connection()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def index():
    return RecordingIndex()


@pytest.fixture
def clock():
    return SteppingClock()

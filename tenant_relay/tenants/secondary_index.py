# tenant_relay/tenants/secondary_index.py
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional
import redis.asyncio as aioredis

from .models import TenantRecord, format_timestamp
from ..settings import settings as relay_settings

logger = logging.getLogger(__name__)


class AbstractTenantIndex(ABC):
    """
    Denormalized projection of tenant records for the management read path.

    Writes are best-effort; the tenant store logs and swallows any error
    raised here.
    """

    @abstractmethod
    async def initialize(self) -> None:
        pass

    @abstractmethod
    async def teardown(self) -> None:
        pass

    @abstractmethod
    async def seed_tenant(self, record: TenantRecord) -> None:
        """Record the creation of a tenant. Called once per created tenant."""
        pass

    @abstractmethod
    async def upsert_tenant(self, record: TenantRecord) -> None:
        """Project the latest committed fields of a tenant."""
        pass


class NullTenantIndex(AbstractTenantIndex):
    """Used when the secondary index is disabled."""

    async def initialize(self) -> None:
        logger.info("Secondary tenant index disabled.")

    async def teardown(self) -> None:
        pass

    async def seed_tenant(self, record: TenantRecord) -> None:
        pass

    async def upsert_tenant(self, record: TenantRecord) -> None:
        pass


class RedisTenantIndex(AbstractTenantIndex):
    """
    One Redis hash per tenant plus a set of all known tenant ids.

    Layout:
        {prefix}:{tenant_id}  hash  id, userId, companyName, email, lastSeen, createdAt
        {prefix}s             set   tenant ids

    Provider credentials are never projected.
    """

    def __init__(
        self,
        redis_client: Optional[aioredis.Redis] = None,
        key_prefix: Optional[str] = None
    ):
        self._redis_client = redis_client
        self._owns_client = redis_client is None
        self.key_prefix = key_prefix or relay_settings.secondary_index_key_prefix

    async def initialize(self) -> None:
        """Connect to Redis using global settings unless a client was injected."""
        if self._redis_client:
            logger.info("RedisTenantIndex using injected Redis client.")
            return

        connection_params = {
            "host": relay_settings.redis_host,
            "port": relay_settings.redis_port,
            "db": relay_settings.redis_db,
            "decode_responses": True,
        }
        if relay_settings.redis_password:
            connection_params["password"] = relay_settings.redis_password

        logger.info(
            f"Connecting to Redis at {connection_params['host']}:"
            f"{connection_params['port']}, DB: {connection_params['db']}"
        )
        try:
            self._redis_client = aioredis.Redis(**connection_params)
            await self._redis_client.ping()
            logger.info("Successfully connected to Redis and pinged.")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}", exc_info=True)
            self._redis_client = None
            raise

    async def teardown(self) -> None:
        if self._redis_client and self._owns_client:
            logger.info("Closing Redis connection.")
            await self._redis_client.aclose()
            logger.info("Redis connection closed.")
        self._redis_client = None

    def _get_client(self) -> aioredis.Redis:
        if not self._redis_client:
            raise RuntimeError("RedisTenantIndex not initialized. Call initialize() first.")
        return self._redis_client

    def tenant_key(self, tenant_id: str) -> str:
        if not tenant_id:
            raise ValueError("tenant_id is required to construct an index key.")
        return f"{self.key_prefix}:{tenant_id}"

    @property
    def members_key(self) -> str:
        return f"{self.key_prefix}s"

    @staticmethod
    def _projection(record: TenantRecord) -> Dict[str, str]:
        fields = {
            "id": record.id,
            "userId": record.user_id,
            "companyName": record.company_name,
            "email": record.email,
            "lastSeen": format_timestamp(record.last_seen) if record.last_seen else None,
        }
        return {key: value for key, value in fields.items() if value}

    async def seed_tenant(self, record: TenantRecord) -> None:
        client = self._get_client()
        key = self.tenant_key(record.id)
        created_at = format_timestamp(record.last_seen) if record.last_seen else ""
        await client.hset(key, mapping=self._projection(record))
        await client.hsetnx(key, "createdAt", created_at)
        await client.sadd(self.members_key, record.id)
        logger.debug(f"Index: seeded '{key}'.")

    async def upsert_tenant(self, record: TenantRecord) -> None:
        client = self._get_client()
        key = self.tenant_key(record.id)
        await client.hset(key, mapping=self._projection(record))
        logger.debug(f"Index: projected '{key}'.")

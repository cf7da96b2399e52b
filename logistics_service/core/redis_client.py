"""
Logistics Service — Redis inventory cache

Caches per-product non-expired availability for read endpoints. The database
stays authoritative: every write path invalidates the affected keys and no
availability check ever reads from here.
"""
import logging
import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

INVENTORY_KEY = "inventory:{product_id}"


class InventoryCache:
    def __init__(self, client: aioredis.Redis, ttl_seconds: int):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int, connect_timeout: float) -> "InventoryCache":
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=connect_timeout,
        )
        return cls(client, ttl_seconds)

    async def get_available(self, product_id: str) -> float | None:
        try:
            cached = await self.client.get(INVENTORY_KEY.format(product_id=product_id))
        except aioredis.RedisError:
            logger.warning("Inventory cache read failed for %s", product_id, exc_info=True)
            return None
        if cached is None:
            return None
        try:
            return float(cached)
        except ValueError:
            return None

    async def set_available(self, product_id: str, quantity: float) -> None:
        try:
            await self.client.setex(INVENTORY_KEY.format(product_id=product_id), self.ttl_seconds, quantity)
        except aioredis.RedisError:
            logger.warning("Inventory cache write failed for %s", product_id, exc_info=True)

    async def invalidate(self, *product_ids: str) -> None:
        keys = [INVENTORY_KEY.format(product_id=p) for p in set(product_ids) if p]
        if not keys:
            return
        try:
            await self.client.delete(*keys)
        except aioredis.RedisError:
            # Stale entries expire on their own within the TTL
            logger.warning("Could not invalidate inventory cache keys %s", keys, exc_info=True)

    async def ping(self) -> None:
        await self.client.ping()

    async def close(self) -> None:
        await self.client.aclose()

import asyncio
import time
import uuid
from typing import Dict, Optional, Tuple
import redis
import redis.asyncio as aioredis
from redis.exceptions import LockError, RedisError
from app.core.config import settings

redis_client = redis.Redis(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    decode_responses=True
)

async_redis_client = aioredis.Redis(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    decode_responses=True
)

def reservation_key(product_gid: str, signature: str) -> str:
    return f"variant-reservation:{product_gid}:{signature}"

class ReservationLock:
    """
    Short-lived reservation keyed on (product, dimension signature).

    ``acquire`` never blocks: it returns a token when the reservation was
    taken and None when someone else holds it.
    """

    async def acquire(self, key: str, ttl: float) -> Optional[object]:
        raise NotImplementedError

    async def release(self, key: str, token: object) -> None:
        raise NotImplementedError

class RedisReservationLock(ReservationLock):
    def __init__(self, client: Optional[aioredis.Redis] = None):
        self.client = client or async_redis_client

    async def acquire(self, key: str, ttl: float) -> Optional[object]:
        lock = self.client.lock(key, timeout=ttl, blocking=False)
        if await lock.acquire():
            return lock
        return None

    async def release(self, key: str, token: object) -> None:
        try:
            await token.release()
        except LockError:
            # Expired before release; the TTL already freed it
            pass

class InMemoryReservationLock(ReservationLock):
    """Process-local reservations, for single-worker deployments and tests."""

    def __init__(self):
        self._held: Dict[str, Tuple[str, float]] = {}
        self._guard = asyncio.Lock()

    async def acquire(self, key: str, ttl: float) -> Optional[object]:
        async with self._guard:
            now = time.monotonic()
            held = self._held.get(key)
            if held and held[1] > now:
                return None
            token = uuid.uuid4().hex
            self._held[key] = (token, now + ttl)
            return token

    async def release(self, key: str, token: object) -> None:
        async with self._guard:
            held = self._held.get(key)
            if held and held[0] == token:
                del self._held[key]


def ping_redis() -> bool:
    """
    Check the Redis connection used for reservations and the event log
    """
    try:
        return bool(redis_client.ping())
    except RedisError:
        return False

"""
Database Module - Supabase and Redis Clients

Provides singleton instances of:
- Async Supabase client (remote cart replica, product catalog, auth)
- Sync Upstash Redis client backing per-device cart storage
"""

from typing import Optional

from supabase._async.client import AsyncClient, create_client as acreate_client
from upstash_redis import Redis

from storefront import config


_async_supabase_client: Optional[AsyncClient] = None
_redis_client: Optional[Redis] = None


def _require_supabase_config() -> tuple[str, str]:
    key = config.get_supabase_key()
    if not config.SUPABASE_URL or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_ANON_KEY) must be set")
    return config.SUPABASE_URL, key


async def get_supabase() -> AsyncClient:
    """
    Get async Supabase client (singleton).
    Preferred for all async operations.
    """
    global _async_supabase_client

    if _async_supabase_client is None:
        url, key = _require_supabase_config()
        _async_supabase_client = await acreate_client(url, key)

    return _async_supabase_client


def get_redis() -> Redis:
    """
    Get Upstash Redis client (singleton).

    The device store is synchronous by contract, so this is the blocking
    REST client, not upstash_redis.asyncio.
    """
    global _redis_client

    if _redis_client is None:
        if not config.UPSTASH_REDIS_REST_URL or not config.UPSTASH_REDIS_REST_TOKEN:
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        _redis_client = Redis(url=config.UPSTASH_REDIS_REST_URL, token=config.UPSTASH_REDIS_REST_TOKEN)

    return _redis_client


class RedisKeys:
    """Redis key layout for device-scoped data."""

    DEVICE = "device:"  # device:{device_id}:{storage_key}

    @staticmethod
    def device_key(device_id: str, storage_key: str) -> str:
        return f"{RedisKeys.DEVICE}{device_id}:{storage_key}"

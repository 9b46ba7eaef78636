import json
from typing import Any, Dict, Optional, Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.core.config import settings


# Failures of either flat-storage backend.
KV_ERRORS = (RedisError, OSError)


class KeyValueStore(Protocol):
    """Flat string storage: the legacy history blob and the session cache live here."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)


class RedisKeyValueStore:
    def __init__(self, redis: Optional[Redis] = None, namespace: str = "fashion-sense") -> None:
        self._redis = redis
        self.namespace = namespace

    def _client(self) -> Redis:
        if self._redis is None:
            self._redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
        return self._redis

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[str]:
        return await self._client().get(self._key(key))

    async def set(self, key: str, value: str) -> None:
        await self._client().set(self._key(key), value)

    async def remove(self, key: str) -> None:
        await self._client().delete(self._key(key))


def make_kv_store(namespace: str) -> KeyValueStore:
    if (settings.KV_BACKEND or "memory").lower() == "redis":
        return RedisKeyValueStore(namespace=namespace)
    return InMemoryKeyValueStore()


async def cache_json_get(kv: KeyValueStore, key: str) -> Optional[Any]:
    val = await kv.get(key)
    return json.loads(val) if val else None


async def cache_json_set(kv: KeyValueStore, key: str, data: Any) -> None:
    await kv.set(key, json.dumps(data))

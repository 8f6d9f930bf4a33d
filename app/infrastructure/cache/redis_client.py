# app/infrastructure/cache/redis_client.py

import json
from typing import Any, Iterable, List, Optional

import redis.asyncio as redis

from app.config.settings import settings


class RedisClient:
    def __init__(self, url: Optional[str] = None, client: Optional[redis.Redis] = None):
        self.client = client or redis.from_url(
            url or settings.redis_url,
            decode_responses=True,
        )

    async def get_json(self, key: str) -> Optional[dict]:
        """Get and decode a JSON value. Returns None if key does not exist."""
        raw = await self.client.get(key)
        return json.loads(raw) if raw else None

    async def mget_json(self, keys: Iterable[str]) -> List[Optional[dict]]:
        """Decode several JSON values in one round trip; missing keys come back as None."""
        keys = list(keys)
        if not keys:
            return []
        raws = await self.client.mget(keys)
        return [json.loads(raw) if raw else None for raw in raws]

    async def smembers(self, key: str) -> set:
        return await self.client.smembers(key)

    def pipeline(self) -> Any:
        """Transactional pipeline for WATCH / MULTI / EXEC."""
        return self.client.pipeline(transaction=True)

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self) -> None:
        await self.client.aclose()

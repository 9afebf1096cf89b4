"""Route-pair cache: in-process LRU or Redis, 30-minute freshness window."""

import asyncio
import json
import logging
from collections import OrderedDict
from datetime import timedelta
from typing import Any

import redis.asyncio as redis

from tworoute.config import Settings, settings
from tworoute.services.transfer.models import TransferRequest, TransferRoute, utcnow

logger = logging.getLogger(__name__)

TTL_ROUTE_PAIR = 30 * 60  # 30 minutes


def route_pair_key(request: TransferRequest) -> str:
    origin = request.origin.coordinates
    destination = request.destination.coordinates
    context = request.context
    return (
        f"transfer:{origin.lat},{origin.lng}:{destination.lat},{destination.lng}"
        f":{context.time_of_day}:{context.day_of_week}"
    )


class RouteCache:
    """Shared pair (de)serialisation and freshness check; backends store raw dicts."""

    def __init__(self, ttl: int = TTL_ROUTE_PAIR):
        self.ttl = ttl

    async def get(self, key: str) -> dict | None:
        raise NotImplementedError

    async def set(self, key: str, value: dict) -> bool:
        raise NotImplementedError

    async def delete(self, key: str) -> bool:
        raise NotImplementedError

    async def close(self):
        pass

    async def discard(self, key: str, payload: dict) -> bool:
        """Drop an entry that was read as payload."""
        return await self.delete(key)

    def is_fresh(self, *routes: TransferRoute) -> bool:
        max_age = timedelta(seconds=self.ttl)
        now = utcnow()
        return all(now - route.last_updated < max_age for route in routes)

    async def get_pair(self, request: TransferRequest) -> tuple[TransferRoute, TransferRoute] | None:
        """Cached (primary, backup) for the request, or None on miss, expiry or bad payload."""
        key = route_pair_key(request)
        payload = await self.get(key)
        if payload is None:
            return None
        try:
            primary = TransferRoute.from_dict(payload["primary"])
            backup = TransferRoute.from_dict(payload["backup"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding undecodable cache entry {key}: {e}")
            await self.discard(key, payload)
            return None
        if not self.is_fresh(primary, backup):
            logger.debug(f"Cache entry {key} is stale")
            await self.discard(key, payload)
            return None
        return primary, backup

    async def set_pair(self, request: TransferRequest, primary: TransferRoute, backup: TransferRoute) -> bool:
        payload = {
            "primary": primary.to_dict(),
            "backup": backup.to_dict(),
            "cached_at": utcnow().isoformat(),
        }
        return await self.set(route_pair_key(request), payload)


class MemoryRouteCache(RouteCache):
    """Bounded LRU held in process memory."""

    def __init__(self, ttl: int = TTL_ROUTE_PAIR, max_entries: int = 1024):
        super().__init__(ttl)
        self.max_entries = max_entries
        self._entries: OrderedDict[str, dict] = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> dict | None:
        async with self._lock:
            value = self._entries.get(key)
            if value is not None:
                self._entries.move_to_end(key)
            return value

    async def set(self, key: str, value: dict) -> bool:
        async with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted cache entry {evicted}")
        return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def discard(self, key: str, payload: dict) -> bool:
        async with self._lock:
            if self._entries.get(key) is not payload:
                return False
            del self._entries[key]
            return True

    async def clear(self):
        async with self._lock:
            self._entries.clear()


class RedisRouteCache(RouteCache):
    """Redis-backed cache. Disables itself when Redis is unreachable."""

    def __init__(self, redis_url: str, ttl: int = TTL_ROUTE_PAIR):
        super().__init__(ttl)
        self.redis_url = redis_url
        self._redis: redis.Redis | None = None

    async def _get_redis(self) -> redis.Redis | None:
        if self._redis is None:
            try:
                self._redis = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                )
                await self._redis.ping()
            except Exception as e:
                logger.warning(f"Redis unavailable, route cache disabled: {e}")
                self._redis = None
                return None
        return self._redis

    async def get(self, key: str) -> Any | None:
        """Returns None on miss or error."""
        try:
            r = await self._get_redis()
            if r is None:
                return None
            raw = await r.get(key)
            if raw is None:
                return None
            return json.loads(raw)
        except Exception as e:
            logger.warning(f"Route cache read failed for {key}: {e}")
            return None

    async def set(self, key: str, value: dict) -> bool:
        try:
            r = await self._get_redis()
            if r is None:
                return False
            await r.set(key, json.dumps(value, default=str), ex=self.ttl)
            return True
        except Exception as e:
            logger.warning(f"Route cache write failed for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            r = await self._get_redis()
            if r is None:
                return False
            await r.delete(key)
            return True
        except Exception:
            return False

    async def discard(self, key: str, payload: dict) -> bool:
        # Keys expire server-side after ttl and the next set_pair overwrites them.
        return False

    async def close(self):
        if self._redis:
            await self._redis.aclose()
            self._redis = None


def create_route_cache(config: Settings = settings) -> RouteCache:
    ttl = config.route_cache_ttl_minutes * 60
    if config.route_cache_backend == "redis":
        logger.info(f"Using Redis route cache at {config.redis_url}")
        return RedisRouteCache(config.redis_url, ttl=ttl)
    return MemoryRouteCache(ttl=ttl, max_entries=config.route_cache_max_entries)

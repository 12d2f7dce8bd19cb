# storefront/domain/services/cache_store.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from storefront.core.errors import BackendUnavailable

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# Anything that means "the cache backend is not there right now"
BACKEND_ERRORS = (RedisError, OSError, TimeoutError)


class LookupStatus(str, Enum):
    HIT = "hit"
    MISS = "miss"
    BACKEND_DOWN = "backend_down"


@dataclass(frozen=True, slots=True)
class CacheLookup:
    status: LookupStatus
    value: Any = None

    @property
    def hit(self) -> bool:
        return self.status is LookupStatus.HIT


def _encode(obj: Any) -> Any:
    """json.dumps fallback: decimals as text so no precision is lost."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not cache-serializable")


def dumps(value: Any) -> str:
    return json.dumps(value, default=_encode, separators=(",", ":"), ensure_ascii=False)


def loads(raw: str) -> Any:
    return json.loads(raw)


class CacheStore:
    """
    Typed cache-aside primitives over Redis.

    The cache is an optimization, never a dependency: every primitive except
    `increment` fails soft when Redis is missing or unreachable (False / None),
    and the failure is logged. Other components never touch Redis directly.
    """

    def __init__(self, redis: Optional[Redis], default_ttl: int = 3600):
        self.redis = redis
        self.default_ttl = default_ttl

    @property
    def available(self) -> bool:
        return self.redis is not None

    # ---------- read ----------
    async def lookup(self, key: str) -> CacheLookup:
        """Three-way read: hit, miss, or backend down."""
        if self.redis is None:
            return CacheLookup(LookupStatus.BACKEND_DOWN)
        try:
            raw = await self.redis.get(key)
        except BACKEND_ERRORS as e:
            logger.warning("cache get error key=%s err=%s", key, e)
            return CacheLookup(LookupStatus.BACKEND_DOWN)
        if raw is None:
            return CacheLookup(LookupStatus.MISS)
        try:
            return CacheLookup(LookupStatus.HIT, loads(raw))
        except ValueError as e:
            # an undecodable entry is treated as absent
            logger.warning("cache decode error key=%s err=%s", key, e)
            return CacheLookup(LookupStatus.MISS)

    async def get(self, key: str, model: Optional[Type[M]] = None) -> Any:
        """
        Value stored under `key`, or None when absent, expired or unreachable.
        With `model`, the payload is validated into that pydantic model.
        """
        res = await self.lookup(key)
        if not res.hit:
            return None
        if model is None:
            return res.value
        try:
            return model.model_validate(res.value)
        except ValidationError as e:
            logger.warning("cache payload does not match model key=%s model=%s err=%s", key, model.__name__, e)
            return None

    async def exists(self, key: str) -> bool:
        if self.redis is None:
            return False
        try:
            return await self.redis.exists(key) == 1
        except BACKEND_ERRORS as e:
            logger.warning("cache exists error key=%s err=%s", key, e)
            return False

    # ---------- write ----------
    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        """
        Store `value` as JSON. The TTL restarts on every write;
        ttl_seconds == 0 stores the entry without expiry.
        """
        if self.redis is None:
            return False
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        if ttl < 0:
            raise ValueError("ttl_seconds must be >= 0")
        try:
            payload = dumps(value)
        except TypeError as e:
            logger.error("cache serialize error key=%s err=%s", key, e)
            return False
        try:
            if ttl == 0:
                await self.redis.set(key, payload)
            else:
                await self.redis.set(key, payload, ex=ttl)
            logger.debug("cache set key=%s ttl=%ss bytes=%s", key, ttl, len(payload))
            return True
        except BACKEND_ERRORS as e:
            logger.warning("cache set error key=%s err=%s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        """Deleting a key that does not exist is a success."""
        if self.redis is None:
            return False
        try:
            await self.redis.delete(key)
            return True
        except BACKEND_ERRORS as e:
            logger.warning("cache delete error key=%s err=%s", key, e)
            return False

    async def increment(self, key: str) -> int:
        """Atomic INCR (a missing key starts at 0). Raises BackendUnavailable."""
        if self.redis is None:
            raise BackendUnavailable("cache backend not configured", key=key)
        try:
            return int(await self.redis.incr(key))
        except BACKEND_ERRORS as e:
            raise BackendUnavailable(f"cache increment failed: {e}", key=key) from e

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        if self.redis is None:
            return False
        try:
            return bool(await self.redis.expire(key, ttl_seconds))
        except BACKEND_ERRORS as e:
            logger.warning("cache expire error key=%s err=%s", key, e)
            return False

    async def clear(self, pattern: str = "*") -> bool:
        """Delete every key matching `pattern` (SCAN based). Use with caution."""
        if self.redis is None:
            return False
        try:
            batch: list[str] = []
            deleted = 0
            async for k in self.redis.scan_iter(match=pattern, count=500):
                batch.append(k)
                if len(batch) >= 500:
                    deleted += await self.redis.delete(*batch)
                    batch.clear()
            if batch:
                deleted += await self.redis.delete(*batch)
            logger.info("cache clear pattern=%s deleted=%s", pattern, deleted)
            return True
        except BACKEND_ERRORS as e:
            logger.warning("cache clear error pattern=%s err=%s", pattern, e)
            return False

    async def ping(self) -> bool:
        if self.redis is None:
            return False
        try:
            return bool(await self.redis.ping())
        except BACKEND_ERRORS as e:
            logger.warning("cache ping error err=%s", e)
            return False

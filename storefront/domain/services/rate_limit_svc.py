# storefront/domain/services/rate_limit_svc.py
import logging
import time
from enum import Enum
from typing import Callable, Set

from storefront.core.errors import BackendUnavailable
from storefront.domain.services.cache_keys import rate_limit_key
from storefront.domain.services.cache_store import CacheStore

logger = logging.getLogger(__name__)


class RateLimitDecision(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"
    BACKEND_DOWN = "backend_down"

    @property
    def allowed(self) -> bool:
        # fail open: an outage admits the request
        return self is not RateLimitDecision.DENIED


class RateLimiter:
    """
    Fixed-window request counter.

    Windows are aligned on multiples of `window_seconds`; a burst straddling a
    boundary can therefore admit up to 2 x limit requests.
    """

    def __init__(self, cache: CacheStore, clock: Callable[[], float] = time.time):
        self.cache = cache
        self.clock = clock
        # window keys whose expiry could not be set yet (this process only)
        self._unexpired: Set[str] = set()

    def window_id(self, window_seconds: int) -> int:
        return int(self.clock() // window_seconds)

    async def check(self, identity: str, limit: int, window_seconds: int) -> RateLimitDecision:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        key = rate_limit_key(identity, self.window_id(window_seconds))
        try:
            current = await self.cache.increment(key)
        except BackendUnavailable as e:
            logger.warning("rate_limit backend down identity=%s err=%s", identity, e)
            return RateLimitDecision.BACKEND_DOWN

        if current == 1 or key in self._unexpired:
            # the increment that created the window sets its expiry; a failed attempt
            # is retried on the next hit
            if await self.cache.expire(key, window_seconds):
                self._unexpired.discard(key)
            else:
                self._unexpired.add(key)
                logger.warning("rate_limit expire failed key=%s, retrying on next hit", key)

        if current <= limit:
            return RateLimitDecision.ALLOWED
        logger.info("rate_limit denied identity=%s count=%s limit=%s", identity, current, limit)
        return RateLimitDecision.DENIED

    async def check_rate_limit(self, identity: str, limit: int, window_seconds: int) -> bool:
        decision = await self.check(identity, limit, window_seconds)
        return decision.allowed

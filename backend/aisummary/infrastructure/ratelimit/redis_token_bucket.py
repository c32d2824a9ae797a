# aisummary/infrastructure/ratelimit/redis_token_bucket.py
from __future__ import annotations
import time, logging
from typing import Callable, Optional, Tuple

import redis
from redis.exceptions import NoScriptError


logger = logging.getLogger(__name__)


"""
Global token bucket (shared by every worker process / host), unit: requests per minute.
    key: {prefix}:{env}:{vendor}:v1

    Atomic Lua step behind acquire_once():
      1) refill from Redis server TIME
      2) tokens >= 1 -> take one, allowed=1; otherwise return the wait in ms
      3) persist tokens/ts with a TTL so idle buckets expire
"""
class RedisTokenBucketLimiter:

    LUA_SCRIPT = """
    local key = KEYS[1]
    local capacity = tonumber(ARGV[1])
    local refill_per_ms = tonumber(ARGV[2])
    local ttl_ms = tonumber(ARGV[3])

    -- server clock, immune to skew between hosts
    local t = redis.call('TIME')
    local now = tonumber(t[1]) * 1000 + math.floor(tonumber(t[2]) / 1000)

    local data = redis.call('HMGET', key, 'tokens', 'ts')
    local tokens = tonumber(data[1])
    local ts = tonumber(data[2])

    if tokens == nil or ts == nil then
        tokens = capacity
        ts = now
    else
        local delta = now - ts
        if delta < 0 then delta = 0 end
        tokens = math.min(capacity, tokens + delta * refill_per_ms)
        ts = now
    end

    local allowed = 0
    local wait_ms = 0
    if tokens >= 1 then
        tokens = tokens - 1
        allowed = 1
    else
        wait_ms = math.ceil((1 - tokens) / refill_per_ms)
        if wait_ms < 0 then wait_ms = 0 end
    end

    redis.call('HSET', key, 'tokens', tokens, 'ts', ts)
    if ttl_ms > 0 then
      redis.call('PEXPIRE', key, ttl_ms)
    end
    return {allowed, tokens, wait_ms}
    """


    def __init__(self, client, key: str, max_rpm: int, burst: int = 2,
                 ttl_ms: int = 120000, max_wait_ms: Optional[int] = 5000,
                 sleep: Callable[[float], None] = time.sleep):
        self.r = client
        self.key = key
        self.capacity = max(1, int(burst))
        self.refill_per_ms = float(max_rpm) / 60_000.0
        self.ttl_ms = int(ttl_ms)
        self.max_wait_ms = max_wait_ms
        self._sleep = sleep
        self._sha = self.r.script_load(self.LUA_SCRIPT)


    """
       Build the generation-service limiter from settings; None when disabled.
    """
    @classmethod
    def from_settings(cls, *, vendor: str = "groq") -> RedisTokenBucketLimiter | None:
        from aisummary.core.config import settings

        if not settings.GENERATION_RL_ENABLED:
            return None

        url = settings.GENERATION_RL_REDIS_URL
        if not url:
            logger.warning("ratelimit.disabled reason=no_redis_url vendor=%s", vendor)
            return None

        r = redis.from_url(url, decode_responses=True)
        key = f"{settings.GENERATION_RL_KEY_PREFIX}:{settings.ENVIRONMENT}:{vendor}:v1"

        return cls(
            client=r,
            key=key,
            max_rpm=settings.GENERATION_RL_MAX_RPM,
            burst=settings.GENERATION_RL_BURST,
            ttl_ms=120000,
            max_wait_ms=settings.GENERATION_RL_MAX_WAIT_MS,
        )


    """
        Run the Lua script; reload it once on NOSCRIPT (Redis restarted / flushed).
    """
    def _eval(self) -> Tuple[bool, int]:
        try:
            res = self.r.evalsha(self._sha, 1, self.key, self.capacity, self.refill_per_ms, self.ttl_ms)
        except NoScriptError:
            self._sha = self.r.script_load(self.LUA_SCRIPT)
            res = self.r.evalsha(self._sha, 1, self.key, self.capacity, self.refill_per_ms, self.ttl_ms)
        allowed = int(res[0]) == 1
        wait_ms = 0 if allowed else max(0, int(float(res[2])))
        if (self.max_wait_ms is not None) and (wait_ms > self.max_wait_ms):
            wait_ms = self.max_wait_ms
        return allowed, wait_ms


    """
        Try to take one token; returns (allowed, wait_ms).
    """
    def acquire_once(self) -> tuple[bool, int]:
        return self._eval()


    """
        Block until a token is granted. Each wait is capped by max_wait_ms.
        Returns the total time waited in ms.
    """
    def acquire(self) -> int:
        waited = 0
        while True:
            allowed, wait_ms = self.acquire_once()
            if allowed:
                if waited:
                    logger.info("ratelimit.acquired key=%s waited_ms=%s", self.key, waited)
                return waited
            wait_ms = max(1, wait_ms)
            waited += wait_ms
            self._sleep(wait_ms / 1000.0)

"""Token bucket limiter against a scripted Redis double (no server needed)."""

from __future__ import annotations

from redis.exceptions import NoScriptError

from aisummary.core.config import settings
from aisummary.infrastructure.ratelimit import RedisTokenBucketLimiter


class ScriptedRedis:
    def __init__(self, replies, *, lose_script_once: bool = False) -> None:
        self.replies = list(replies)
        self.lose_script_once = lose_script_once
        self.loads = 0
        self.evals = []

    def script_load(self, script: str) -> str:
        self.loads += 1
        return f"sha-{self.loads}"

    def evalsha(self, sha, numkeys, key, *args):
        if self.lose_script_once:
            self.lose_script_once = False
            raise NoScriptError("NOSCRIPT")
        self.evals.append((sha, key, args))
        return self.replies.pop(0)


def test_acquire_waits_until_a_token_is_granted():
    sleeps = []
    r = ScriptedRedis([[0, 0, 250], [0, 0, 99999], [1, 1, 0]])
    limiter = RedisTokenBucketLimiter(r, "groq:rl:test:groq:v1", max_rpm=30, burst=2,
                                      max_wait_ms=1000, sleep=sleeps.append)

    waited = limiter.acquire()

    assert sleeps == [0.25, 1.0]     # second wait capped by max_wait_ms
    assert waited == 1250
    assert r.evals[0][2] == (2, 30 / 60_000.0, 120000)


def test_noscript_reloads_and_retries():
    r = ScriptedRedis([[1, 1, 0]], lose_script_once=True)
    limiter = RedisTokenBucketLimiter(r, "k", max_rpm=60)
    assert limiter.acquire_once() == (True, 0)
    assert r.loads == 2


def test_disabled_by_default(monkeypatch):
    monkeypatch.setattr(settings, "GENERATION_RL_ENABLED", False)
    assert RedisTokenBucketLimiter.from_settings(vendor="groq") is None

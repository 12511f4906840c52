"""Fixed-window rate limiting for the external auth endpoints.

Keys are ``rl:{policy}:{path}:{client}:{window_start}``; INCR and EXPIRE
run in one pipeline so a key never outlives its window. Redis outages
degrade to "allowed" and are logged.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional, Protocol

import redis

logger = logging.getLogger(__name__)

DEFAULT_POLICY = "external-auth"


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    policy_id: str
    quota: int
    window: int
    remaining: int
    reset: int  # seconds until the current window ends


class RateLimiter(Protocol):
    def check_rate_limit(self, key: str, path: str) -> RateLimitResult: ...


class NoOpRateLimiter:
    """Always allows; reports a full quota."""

    def __init__(self, quota: int = 10, window: int = 60, policy_id: str = DEFAULT_POLICY):
        self.quota = quota
        self.window = window
        self.policy_id = policy_id

    def check_rate_limit(self, key: str, path: str) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            policy_id=self.policy_id,
            quota=self.quota,
            window=self.window,
            remaining=self.quota,
            reset=self.window,
        )


class RedisRateLimiter:
    """Redis INCR/EXPIRE fixed window per (path, client)."""

    def __init__(
        self,
        client: redis.Redis,
        quota: int = 10,
        window: int = 60,
        policy_id: str = DEFAULT_POLICY,
    ):
        if quota <= 0 or window <= 0:
            raise ValueError("quota and window must be positive")
        self.client = client
        self.quota = quota
        self.window = window
        self.policy_id = policy_id

    def check_rate_limit(self, key: str, path: str, now: Optional[float] = None) -> RateLimitResult:
        now = time.time() if now is None else now
        window_start = int(now) - int(now) % self.window
        reset = max(1, window_start + self.window - int(now))
        redis_key = f"rl:{self.policy_id}:{path}:{key}:{window_start}"

        try:
            pipe = self.client.pipeline()
            pipe.incr(redis_key)
            pipe.expire(redis_key, self.window)
            count, _ = pipe.execute()
        except redis.RedisError as e:
            logger.error(
                "rate_limit.backend_unavailable",
                extra={"path": path, "error_type": type(e).__name__},
            )
            return RateLimitResult(True, self.policy_id, self.quota, self.window, self.quota, reset)

        count = int(count)
        return RateLimitResult(
            allowed=count <= self.quota,
            policy_id=self.policy_id,
            quota=self.quota,
            window=self.window,
            remaining=max(0, self.quota - count),
            reset=reset,
        )

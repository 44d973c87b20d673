import redis

from ...application.ports.rate_limiter import RateLimiter


class RedisRateLimiter(RateLimiter):
    """Fixed-window limiter shared by every worker through Redis."""

    def __init__(self, url: str, prefix: str = "storefront:rl:") -> None:
        self.client = redis.Redis.from_url(url)
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        rk = self._key(key)
        pipe = self.client.pipeline()
        pipe.incr(rk, 1)
        # NX keeps the window anchored at the first hit
        pipe.expire(rk, window_seconds, nx=True)
        count, _ = pipe.execute()
        return int(count) <= int(max_requests)

    def reset(self, key: str) -> None:
        self.client.delete(self._key(key))

"""Redis-backed rate limiter."""
import logging
import time
from typing import Tuple
import redis
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from monitoring import rate_limit_exceeded_counter, suspicious_activity_counter

logger = logging.getLogger(__name__)

SUSPICIOUS_WINDOW_SECONDS = 300
SCANNING_THRESHOLD = 10
ABUSE_THRESHOLD = 20


class RedisRateLimiter(BaseHTTPMiddleware):
    """
    Per-client-IP sliding window rate limiter backed by Redis.

    State lives in Redis so the limit is shared across service instances
    and survives restarts. If Redis is unavailable requests are let through.
    """

    def __init__(
        self,
        app,
        redis_client: redis.Redis,
        requests_per_minute: int = 600,
        window_seconds: int = 60
    ):
        """
        Initialize Redis-backed rate limiter.

        Args:
            app: ASGI application
            redis_client: Redis connection
            requests_per_minute: Max requests per client IP per window
            window_seconds: Sliding window size in seconds
        """
        super().__init__(app)
        self.redis = redis_client
        self.requests_per_minute = requests_per_minute
        self.window_seconds = window_seconds

    def _check_rate_limit(
        self,
        key: str,
        limit: int,
        window: int
    ) -> Tuple[bool, int]:
        """
        Check rate limit using Redis sorted set (sliding window).

        Algorithm:
        1. Remove timestamps older than window
        2. Count requests in window
        3. Add current request
        4. Set TTL

        Args:
            key: Redis key for this limit (e.g., "rate:ip:192.168.1.1")
            limit: Maximum requests allowed
            window: Time window in seconds

        Returns:
            Tuple of (is_allowed, current_count)
        """
        try:
            current_time = time.time()
            window_start = current_time - window

            pipe = self.redis.pipeline()
            pipe.zremrangebyscore(key, 0, window_start)
            pipe.zcard(key)
            pipe.zadd(key, {str(current_time): current_time})
            pipe.expire(key, window + 1)
            results = pipe.execute()

            # Count BEFORE adding current request
            count = results[1]

            return count < limit, count + 1

        except redis.RedisError as e:
            logger.error(f"Redis rate limit error: {e}")
            return True, 0

    @staticmethod
    def _client_ip(request: Request) -> str:
        if "x-forwarded-for" in request.headers:
            return request.headers["x-forwarded-for"].split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    async def dispatch(self, request: Request, call_next):
        """
        Apply the per-IP limit, then record error responses.

        Returns:
            Response, or 429 if rate limited
        """
        client_ip = self._client_ip(request)

        allowed, count = self._check_rate_limit(
            f"rate:ip:{client_ip}",
            self.requests_per_minute,
            self.window_seconds
        )

        if not allowed:
            rate_limit_exceeded_counter.add(1, {"limit_type": "ip"})
            logger.warning(
                f"Rate limit exceeded for IP {client_ip}: "
                f"{count}/{self.requests_per_minute} requests"
            )
            return JSONResponse(
                status_code=429,
                content={
                    "detail": f"Rate limit exceeded. Maximum {self.requests_per_minute} "
                              f"requests per {self.window_seconds} seconds."
                },
                headers={"Retry-After": str(self.window_seconds)}
            )

        response = await call_next(request)

        self._detect_suspicious_activity(response.status_code, client_ip)

        return response

    def _record_and_count(self, key: str, now: float) -> int:
        self.redis.zadd(key, {str(now): now})
        self.redis.expire(key, SUSPICIOUS_WINDOW_SECONDS + 1)
        return self.redis.zcount(key, now - SUSPICIOUS_WINDOW_SECONDS, now)

    def _detect_suspicious_activity(self, status_code: int, client_ip: str) -> None:
        """
        Flag clients producing many error responses.

        Patterns (per IP, over 5 minutes):
        - Endpoint scanning: 10+ 404s
        - Abuse: 20+ 4xx errors
        """
        if not 400 <= status_code < 500:
            return

        try:
            now = time.time()

            if status_code == 404:
                count = self._record_and_count(f"suspicious:404:{client_ip}", now)
                if count >= SCANNING_THRESHOLD:
                    suspicious_activity_counter.add(1, {"type": "endpoint_scanning"})
                    logger.warning(
                        f"Suspicious activity: Endpoint scanning from {client_ip} "
                        f"({count} 404s in 5 min)"
                    )

            count = self._record_and_count(f"suspicious:4xx:{client_ip}", now)
            if count >= ABUSE_THRESHOLD:
                suspicious_activity_counter.add(1, {"type": "abuse"})
                logger.warning(
                    f"Suspicious activity: Abuse from {client_ip} "
                    f"({count} 4xx errors in 5 min)"
                )

        except redis.RedisError as e:
            logger.error(f"Error detecting suspicious activity: {e}")

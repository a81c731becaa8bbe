"""Redis client configuration and utilities."""

from typing import cast

import redis
import structlog

from app.config import settings

logger = structlog.get_logger()

# Global Redis client instance
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client instance.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """
    Check if Redis connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        client = get_redis_client()
        client.ping()
        return True
    except Exception:
        return False


def close_redis_connection() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class RateLimiter:
    """Redis-based fixed window rate limiter."""

    def __init__(self, redis_client: redis.Redis):
        """Initialize rate limiter with Redis client."""
        self.redis = redis_client

    def check_rate_limit(
        self,
        key: str,
        limit: int,
        window: int = 60,
    ) -> bool:
        """
        Check if rate limit is exceeded.

        Args:
            key: Rate limit key (e.g., login e-mail)
            limit: Maximum number of requests
            window: Time window in seconds

        Returns:
            True if within limit, False if exceeded
        """
        try:
            current = cast(str | None, self.redis.get(key))

            if current is None:
                # First request in this window
                self.redis.setex(key, window, 1)
                return True

            if int(current) >= limit:
                return False

            self.redis.incr(key)
            return True
        except Exception as e:
            # Fail open
            logger.warning("rate_limiter_unavailable", key=key, error=str(e))
            return True


class TokenBlacklist:
    """Revoked refresh tokens, kept until they would have expired anyway."""

    KEY_PREFIX = "blacklist:"

    def __init__(self, redis_client: redis.Redis):
        """Initialize blacklist with Redis client."""
        self.redis = redis_client

    def revoke(self, token: str, ttl: int) -> bool:
        """Add a token to the blacklist for ``ttl`` seconds."""
        try:
            self.redis.setex(f"{self.KEY_PREFIX}{token}", ttl, "1")
            return True
        except Exception as e:
            logger.warning("token_revocation_failed", error=str(e))
            return False

    def is_revoked(self, token: str) -> bool:
        """Check whether a token has been revoked."""
        try:
            return bool(self.redis.exists(f"{self.KEY_PREFIX}{token}"))
        except Exception as e:
            logger.warning("token_blacklist_unavailable", error=str(e))
            return False

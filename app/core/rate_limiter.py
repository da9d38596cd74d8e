"""
Redis-based rate limiting for the password reset endpoints.

Prevents flooding recipients with codes and brute forcing the 6-digit space.
"""

import logging
import redis
from fastapi import HTTPException, status
from app.core.config import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Redis-based fixed window rate limiter.

    Fails open: if Redis is unreachable the request is allowed and the error is logged.
    """

    def __init__(self, redis_client: redis.Redis = None):
        """Initialize Redis connection"""
        self.redis_client = redis_client or redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            decode_responses=True,
            socket_connect_timeout=1,
            socket_timeout=1
        )

    def check_rate_limit(
        self,
        key: str,
        max_requests: int,
        window_seconds: int,
        error_message: str = "Rate limit exceeded"
    ) -> None:
        """
        Check if a request is within rate limits.

        Args:
            key: Unique identifier for this rate limit (e.g., "forgot_password:a@x.com")
            max_requests: Maximum number of requests allowed
            window_seconds: Time window in seconds
            error_message: Custom error message if rate limit exceeded

        Raises:
            HTTPException: 429 Too Many Requests if rate limit exceeded
        """
        try:
            current_count = self.redis_client.get(key)

            if current_count is None:
                # First request - set counter with expiration
                self.redis_client.setex(key, window_seconds, 1)
                return

            if int(current_count) >= max_requests:
                ttl = self.redis_client.ttl(key)
                raise HTTPException(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    detail=f"{error_message}. Try again in {ttl} seconds."
                )
            self.redis_client.incr(key)

        except redis.RedisError as e:
            logger.error(f"Redis rate limiter error: {e}")

    def reset_limit(self, key: str) -> None:
        """Reset the rate limit for a key."""
        try:
            self.redis_client.delete(key)
        except redis.RedisError as e:
            logger.error(f"Redis reset error: {e}")


# Singleton instance
rate_limiter = RateLimiter()


def check_forgot_password_limit(email: str) -> None:
    """
    Rate limit for requesting reset codes.

    Limit: 3 requests per 10 minutes per email.
    """
    rate_limiter.check_rate_limit(
        key=f"forgot_password:{email}",
        max_requests=3,
        window_seconds=600,
        error_message="Too many reset codes requested. Please wait before requesting another code"
    )


def check_reset_code_attempt_limit(email: str) -> None:
    """
    Rate limit for code verification and password reset attempts.

    Limit: 10 attempts per 10 minutes per email.
    Prevents brute force attacks on the 6-digit code.
    """
    rate_limiter.check_rate_limit(
        key=f"reset_code_attempt:{email}",
        max_requests=10,
        window_seconds=600,
        error_message="Too many verification attempts. Please wait before trying again"
    )


def clear_reset_code_attempts(email: str) -> None:
    """Forget failed code attempts once the password has been reset."""
    rate_limiter.reset_limit(f"reset_code_attempt:{email}")

"""Rate limiting for magic-link issuance.

Uses a sliding window per key (normally ``"<email>:<survey_id>"``) with
automatic cleanup of expired entries.
"""

import time
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeAlias

from app.config import settings
from app.core.exceptions import RateLimitExceeded


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""

    requests: int  # Maximum requests allowed
    window_seconds: int  # Time window in seconds


def magic_link_issue_limit() -> RateLimitConfig:
    return RateLimitConfig(
        requests=settings.magic_link_issue_limit,
        window_seconds=settings.magic_link_issue_window_seconds,
    )


Timestamp: TypeAlias = float


class RateLimiter:
    """In-memory rate limiter with sliding window.

    Note: This is an in-memory implementation suitable for single-instance
    deployments. For multi-instance deployments, consider Redis-based limiting.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        # Map of bucket -> key -> list of timestamps
        self._requests: dict[str, dict[str, list[Timestamp]]] = defaultdict(
            lambda: defaultdict(list)
        )
        self._last_cleanup = clock()
        self._cleanup_interval = 300  # Clean up every 5 minutes

    def _cleanup_expired(self, window_seconds: int) -> None:
        """Remove expired entries to prevent memory growth."""
        now = self._clock()

        if now - self._last_cleanup < self._cleanup_interval:
            return

        cutoff = now - window_seconds
        buckets_to_remove: list[str] = []

        for bucket, keys in self._requests.items():
            keys_to_remove: list[str] = []
            for key, timestamps in keys.items():
                keys[key] = [ts for ts in timestamps if ts > cutoff]
                if not keys[key]:
                    keys_to_remove.append(key)

            for key in keys_to_remove:
                del keys[key]

            if not keys:
                buckets_to_remove.append(bucket)

        for bucket in buckets_to_remove:
            del self._requests[bucket]

        self._last_cleanup = now

    def check_rate_limit(
        self,
        bucket: str,
        key: str,
        config: RateLimitConfig,
    ) -> None:
        """Check if request is within rate limits and record it.

        Args:
            bucket: Name of the limited action (e.g., "magic-link-issue")
            key: Identity being limited (e.g., "alice@example.com:<survey id>")
            config: Rate limit configuration to apply

        Raises:
            RateLimitExceeded: if the limit is exceeded
        """
        now = self._clock()
        cutoff = now - config.window_seconds

        self._cleanup_expired(config.window_seconds)

        timestamps = self._requests[bucket][key]
        recent_requests = [ts for ts in timestamps if ts > cutoff]

        if len(recent_requests) >= config.requests:
            retry_after = int(min(recent_requests) + config.window_seconds - now) + 1
            raise RateLimitExceeded(retry_after=retry_after)

        recent_requests.append(now)
        self._requests[bucket][key] = recent_requests

    def reset(self) -> None:
        self._requests.clear()


# Singleton instance for application-wide use
rate_limiter = RateLimiter()

"""Sliding-window rate limiting kept in process memory."""

from collections import deque
from dataclasses import dataclass, field
import logging
import time

from fastapi import HTTPException, Request, status

from app.core.audit import audit_rate_limited
from app.core.config import Settings


logger = logging.getLogger("wishlist.rate_limit")

MAX_ENTRIES = 10000
CLEANUP_INTERVAL = 100


@dataclass
class RateLimitEntry:
    timestamps: deque[float] = field(default_factory=deque)
    last_access: float = field(default_factory=time.monotonic)


class InMemoryRateLimiter:
    """Per-key sliding window; one instance per application."""

    def __init__(self) -> None:
        self._entries: dict[str, RateLimitEntry] = {}
        self._request_count = 0

    def _sweep(self, window_seconds: int) -> None:
        cutoff = time.monotonic() - window_seconds * 2
        stale = [key for key, entry in self._entries.items() if entry.last_access < cutoff]
        for key in stale:
            del self._entries[key]
        if len(self._entries) > MAX_ENTRIES:
            overflow = sorted(self._entries, key=lambda key: self._entries[key].last_access)
            for key in overflow[: len(self._entries) - MAX_ENTRIES]:
                del self._entries[key]
            logger.warning("Rate limit table trimmed to %d entries", MAX_ENTRIES)
        if stale:
            logger.debug("Dropped %d stale rate limit entries", len(stale))

    def is_allowed(self, key: str, max_requests: int, window_seconds: int) -> tuple[bool, int]:
        """Return (allowed, retry_after_seconds) and record the hit when allowed."""
        now = time.monotonic()
        entry = self._entries.setdefault(key, RateLimitEntry())
        entry.last_access = now

        while entry.timestamps and entry.timestamps[0] <= now - window_seconds:
            entry.timestamps.popleft()

        if len(entry.timestamps) >= max_requests:
            retry_after = int(entry.timestamps[0] + window_seconds - now) + 1
            return False, max(1, retry_after)

        entry.timestamps.append(now)
        self._request_count += 1
        if self._request_count % CLEANUP_INTERVAL == 0:
            self._sweep(window_seconds)
        return True, 0

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def get_stats(self) -> dict[str, int]:
        return {
            "total_entries": len(self._entries),
            "total_requests_tracked": self._request_count,
            "max_entries": MAX_ENTRIES,
        }


def get_client_identifier(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    if request.client:
        return f"ip:{request.client.host}"
    return f"ua:{hash(request.headers.get('User-Agent', ''))}"


def check_rate_limit(
    request: Request,
    limiter: InMemoryRateLimiter,
    settings: Settings,
    max_requests: int | None = None,
    window_seconds: int | None = None,
    key_suffix: str = "",
) -> None:
    """Raise 429 once the caller exceeds the window for this path."""
    if not settings.rate_limit_enabled:
        return

    client_id = get_client_identifier(request)
    path = request.url.path
    allowed, retry_after = limiter.is_allowed(
        f"{client_id}:{path}:{key_suffix}",
        max_requests or settings.rate_limit_requests,
        window_seconds or settings.rate_limit_window_seconds,
    )
    if not allowed:
        logger.warning(
            "Rate limit exceeded for %s on %s, retry_after=%ds",
            client_id,
            path,
            retry_after,
        )
        audit_rate_limited(request, client_id, retry_after)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Rate limit exceeded. Try again in {retry_after} seconds.",
            headers={"Retry-After": str(retry_after)},
        )

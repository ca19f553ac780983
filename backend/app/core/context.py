from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from zoneinfo import ZoneInfo

from app.core.claim_metrics import ClaimMetrics
from app.core.config import Settings
from app.core.rate_limit import InMemoryRateLimiter
from app.core.share_token import ShareTokenGenerator
from app.db.session import Database, create_engine_for


Clock = Callable[[], datetime]


def make_clock(server_timezone: str = "") -> Clock:
    """Wall clock used for deadline checks, naive and in server-local time."""
    if not server_timezone:
        return datetime.now
    zone = ZoneInfo(server_timezone)

    def _now() -> datetime:
        return datetime.now(zone).replace(tzinfo=None)

    return _now


@dataclass
class AppContext:
    """Everything a request handler needs, built once per application."""

    settings: Settings
    database: Database
    clock: Clock
    share_tokens: ShareTokenGenerator
    claim_metrics: ClaimMetrics = field(default_factory=ClaimMetrics)
    rate_limiter: InMemoryRateLimiter = field(default_factory=InMemoryRateLimiter)


def build_context(settings: Settings, clock: Clock | None = None) -> AppContext:
    return AppContext(
        settings=settings,
        database=Database(create_engine_for(settings)),
        clock=clock or make_clock(settings.server_timezone),
        share_tokens=ShareTokenGenerator(max_attempts=settings.share_token_max_attempts),
    )

"""
Ledger-backed sliding window rate limiter.

The limiter counts the caller's recent ledger rows instead of keeping its own
counters, so the count is exactly what has already been committed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from noobwriter.repositories.transaction_repository import TransactionRepository

logger = logging.getLogger(__name__)


@dataclass
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0
    # True when the count could not be read and the request was let through
    failed_open: bool = False

    @property
    def wait_message(self) -> Optional[str]:
        if self.allowed:
            return None
        seconds = max(self.retry_after, 1)
        unit = "second" if seconds == 1 else "seconds"
        return f"Too many requests. Please wait {seconds} {unit} before trying again."


class RateLimiter:
    """
    At most `max_events` rows of `types` per user within `window_seconds`.

    Fails open: when the lookup itself fails the request is allowed and a
    warning is logged.
    """

    def __init__(
        self,
        transaction_repo: TransactionRepository,
        types: Sequence[str],
        max_events: int,
        window_seconds: int,
    ):
        self.transaction_repo = transaction_repo
        self.types = list(types)
        self.max_events = max_events
        self.window_seconds = window_seconds

    def check_or_allow(
        self, user_id: int, now: Optional[datetime] = None
    ) -> RateLimitDecision:
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(seconds=self.window_seconds)

        try:
            count = self.transaction_repo.count_recent_by_types(
                user_id, self.types, since
            )
        except SQLAlchemyError as e:
            logger.warning(
                f"Rate limit lookup failed for user {user_id}, allowing request: {str(e)}"
            )
            return RateLimitDecision(
                allowed=True, remaining=self.max_events, failed_open=True
            )

        if count >= self.max_events:
            return RateLimitDecision(
                allowed=False, remaining=0, retry_after=self.window_seconds
            )
        return RateLimitDecision(allowed=True, remaining=self.max_events - count - 1)

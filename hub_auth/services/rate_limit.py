from datetime import datetime, timedelta, timezone
import logging
from typing import Callable

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from hub_auth.config import settings
from hub_auth.database import session_scope
from hub_auth.models.rate_limit import RateLimitEvent

LOGGER = logging.getLogger(__name__)

SEND = "send"
VERIFY = "verify"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RateLimiter:
    """Sliding-window attempt counter per identifier and action.

    The check is advisory: two requests racing for the last slot may both be
    admitted. When the store cannot be read the limiter fails open unless
    ``fail_open`` is turned off.
    """

    def __init__(
        self,
        window_seconds: int,
        limits: dict[str, int],
        fail_open: bool = True,
        session_factory=None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._window = timedelta(seconds=window_seconds)
        self._limits = limits
        self._fail_open = fail_open
        self._session_factory = session_factory
        self._clock = clock

    def check_rate_limit(self, identifier: str, action_type: str = SEND) -> bool:
        since = self._clock() - self._window
        try:
            with session_scope(self._session_factory) as session:
                count = session.execute(
                    select(func.count(RateLimitEvent.id)).where(
                        RateLimitEvent.identifier == identifier,
                        RateLimitEvent.action_type == action_type,
                        RateLimitEvent.created_at >= since,
                    )
                ).scalar_one()
        except SQLAlchemyError:
            LOGGER.exception("Rate limit check failed action=%s", action_type)
            return self._fail_open
        return count < self._limits[action_type]

    def record_attempt(self, identifier: str, action_type: str = SEND) -> None:
        try:
            with session_scope(self._session_factory) as session:
                session.add(
                    RateLimitEvent(
                        identifier=identifier,
                        action_type=action_type,
                        created_at=self._clock(),
                    )
                )
        except SQLAlchemyError:
            LOGGER.exception("Rate limit record failed action=%s", action_type)

    def purge_stale(self) -> int:
        cutoff = self._clock() - self._window
        with session_scope(self._session_factory) as session:
            result = session.execute(
                delete(RateLimitEvent).where(RateLimitEvent.created_at < cutoff)
            )
            return result.rowcount or 0


rate_limiter = RateLimiter(
    settings.rate_limit_window_seconds,
    {SEND: settings.rate_limit_max_sends, VERIFY: settings.rate_limit_max_verifies},
    fail_open=settings.rate_limit_fail_open,
)

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
import secrets
from typing import Callable

from sqlalchemy import delete, select, update

from hub_auth.config import settings
from hub_auth.database import session_scope
from hub_auth.models.otp import OtpCode
from hub_auth.services.identifiers import normalize_email

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class OtpRecord:
    code: str
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EmailCodeStore:
    """Locally issued, locally redeemed one-time codes for the email channel.

    At most one unused code exists per identifier: issuing supersedes every
    earlier unused code in the same transaction that inserts the new one.
    """

    def __init__(
        self,
        ttl_seconds: int,
        code_length: int,
        max_attempts: int = 5,
        session_factory=None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._code_length = code_length
        self._max_attempts = max_attempts
        self._session_factory = session_factory
        self._clock = clock

    def issue(self, identifier: str) -> OtpRecord:
        now = self._clock()
        normalized = normalize_email(identifier)
        record = OtpRecord(
            code=self._generate_code(),
            expires_at=now + timedelta(seconds=self._ttl_seconds),
        )
        with session_scope(self._session_factory) as session:
            session.execute(
                update(OtpCode)
                .where(OtpCode.identifier == normalized, OtpCode.used.is_(False))
                .values(used=True)
            )
            session.add(
                OtpCode(
                    identifier=normalized,
                    code=record.code,
                    expires_at=record.expires_at,
                    used=False,
                    verification_attempts=0,
                    created_at=now,
                )
            )
        return record

    def redeem(self, identifier: str, code: str) -> bool:
        now = self._clock()
        normalized = normalize_email(identifier)
        clean_code = code.strip()
        with session_scope(self._session_factory) as session:
            entry = session.execute(
                select(OtpCode)
                .where(
                    OtpCode.identifier == normalized,
                    OtpCode.used.is_(False),
                    OtpCode.expires_at > now,
                )
                .order_by(OtpCode.created_at.desc(), OtpCode.id.desc())
                .limit(1)
            ).scalar_one_or_none()
            if entry is None:
                LOGGER.info("Email code redeem failed: no active code")
                return False
            if not secrets.compare_digest(entry.code.encode(), clean_code.encode()):
                entry.verification_attempts = (entry.verification_attempts or 0) + 1
                if entry.verification_attempts >= self._max_attempts:
                    entry.used = True
                    LOGGER.info("Email code invalidated after %s failed attempts",
                                entry.verification_attempts)
                else:
                    LOGGER.info("Email code redeem failed: code mismatch")
                return False
            entry.used = True
            return True

    def purge_expired(self) -> int:
        now = self._clock()
        with session_scope(self._session_factory) as session:
            result = session.execute(delete(OtpCode).where(OtpCode.expires_at <= now))
            return result.rowcount or 0

    def _generate_code(self) -> str:
        value = secrets.randbelow(10**self._code_length)
        return str(value).zfill(self._code_length)


email_code_store = EmailCodeStore(
    settings.otp_ttl_seconds,
    settings.otp_length,
    max_attempts=settings.otp_max_verify_attempts,
)

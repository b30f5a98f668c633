import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-hs256-signing-000")

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hub_auth.database import init_db, session_scope
from hub_auth.dependencies import get_code_dispatcher, get_verification_redeemer
from hub_auth.main import app
from hub_auth.models.profile import Profile
from hub_auth.services.channels import EmailChannel, SmsChannel
from hub_auth.services.directory import ProfileDirectory
from hub_auth.services.dispatch import CodeDispatcher
from hub_auth.services.email import EmailSendError
from hub_auth.services.otp import EmailCodeStore
from hub_auth.services.rate_limit import SEND, VERIFY, RateLimiter
from hub_auth.services.redeem import VerificationRedeemer
from hub_auth.services.sms import SmsSendError
from hub_auth.services.tokens import decode_access_token

JWT_SECRET = "test-secret-key-for-hs256-signing-000"


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeEmailSender:
    def __init__(self) -> None:
        self.is_configured = True
        self.fail = False
        self.sent: list[tuple[str, str, str]] = []

    def send_code(self, to_email: str, code: str, purpose: str) -> None:
        if self.fail:
            raise EmailSendError("Resend API error")
        self.sent.append((to_email, code, purpose))

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


class FakeVerifyClient:
    """Stands in for Twilio Verify: the pending code for every number is
    ``approved_code`` until it is approved once."""

    def __init__(self) -> None:
        self.is_configured = True
        self.fail = False
        self.fail_check = False
        self.approved_code = "246810"
        self.started: list[str] = []
        self.checked: list[tuple[str, str]] = []
        self._pending: set[str] = set()

    def start_verification(self, phone_e164: str) -> None:
        if self.fail:
            raise SmsSendError("Twilio Verify request failed")
        self.started.append(phone_e164)
        self._pending.add(phone_e164)

    def check_verification(self, phone_e164: str, code: str) -> bool:
        self.checked.append((phone_e164, code))
        if self.fail_check:
            raise SmsSendError("Twilio Verify request failed")
        if phone_e164 in self._pending and code == self.approved_code:
            self._pending.discard(phone_e164)
            return True
        return False


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def add_profile(session_factory):
    def _add(profile_id: str, email: str | None = None, phone: str | None = None) -> None:
        with session_scope(session_factory) as session:
            session.add(Profile(id=profile_id, email=email, phone=phone))

    return _add


@pytest.fixture()
def code_store(session_factory, clock):
    return EmailCodeStore(600, 6, max_attempts=5, session_factory=session_factory, clock=clock)


@pytest.fixture()
def rate_limiter(session_factory, clock):
    return RateLimiter(3600, {SEND: 5, VERIFY: 10}, session_factory=session_factory, clock=clock)


@pytest.fixture()
def directory(session_factory):
    return ProfileDirectory(session_factory=session_factory)


@pytest.fixture()
def email_sender():
    return FakeEmailSender()


@pytest.fixture()
def verify_client():
    return FakeVerifyClient()


def _decode(token: str) -> str:
    return decode_access_token(token, secret=JWT_SECRET, algorithm="HS256", audience="")


@pytest.fixture()
def dispatcher(rate_limiter, directory, code_store, email_sender, verify_client):
    return CodeDispatcher(
        rate_limiter,
        directory,
        code_store,
        EmailChannel(code_store, email_sender),
        SmsChannel(verify_client),
        decode_token=_decode,
    )


@pytest.fixture()
def redeemer(rate_limiter, directory, code_store, email_sender, verify_client):
    return VerificationRedeemer(
        rate_limiter,
        directory,
        EmailChannel(code_store, email_sender),
        SmsChannel(verify_client),
        decode_token=_decode,
    )


@pytest.fixture()
def client(dispatcher, redeemer):
    app.dependency_overrides[get_code_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_verification_redeemer] = lambda: redeemer
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def make_token():
    def _make(profile_id: str, **claims) -> str:
        payload = {"sub": profile_id, **claims}
        return jwt.encode(payload, JWT_SECRET, algorithm="HS256")

    return _make

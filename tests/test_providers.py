import base64
import io
import json
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qs

import pytest

from hub_auth.services.email import EmailSendError, ResendEmailSender
from hub_auth.services.sms import SmsSendError, TwilioVerifyClient


class FakeResponse:
    def __init__(self, body: dict | None = None) -> None:
        self._body = json.dumps(body or {}).encode("utf-8")

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def read(self) -> bytes:
        return self._body


class FakeUrlopen:
    def __init__(self, body: dict | None = None, error: Exception | None = None) -> None:
        self.body = body
        self.error = error
        self.requests = []
        self.timeouts = []

    def __call__(self, request, timeout=None):
        self.requests.append(request)
        self.timeouts.append(timeout)
        if self.error is not None:
            raise self.error
        return FakeResponse(self.body)


def _http_error(code: int) -> HTTPError:
    return HTTPError("https://example.test", code, "error", {}, io.BytesIO(b'{"message": "boom"}'))


@pytest.fixture()
def twilio():
    return TwilioVerifyClient("AC123", "secret-token", "VA456", timeout=5)


def test_start_verification_posts_sms_channel(twilio, monkeypatch):
    fake = FakeUrlopen({"status": "pending"})
    monkeypatch.setattr("hub_auth.services.sms.urlopen", fake)

    twilio.start_verification("+15551234567")

    request = fake.requests[0]
    assert request.full_url == "https://verify.twilio.com/v2/Services/VA456/Verifications"
    assert parse_qs(request.data.decode()) == {"To": ["+15551234567"], "Channel": ["sms"]}
    expected = base64.b64encode(b"AC123:secret-token").decode()
    assert request.get_header("Authorization") == f"Basic {expected}"
    assert fake.timeouts == [5]


def test_check_verification_trusts_provider_status(twilio, monkeypatch):
    monkeypatch.setattr("hub_auth.services.sms.urlopen", FakeUrlopen({"status": "approved"}))
    assert twilio.check_verification("+15551234567", "123456") is True

    monkeypatch.setattr("hub_auth.services.sms.urlopen", FakeUrlopen({"status": "pending"}))
    assert twilio.check_verification("+15551234567", "000000") is False


def test_check_verification_treats_missing_verification_as_failed_check(twilio, monkeypatch):
    monkeypatch.setattr("hub_auth.services.sms.urlopen", FakeUrlopen(error=_http_error(404)))

    assert twilio.check_verification("+15551234567", "123456") is False


def test_check_verification_treats_too_many_checks_as_failed_check(twilio, monkeypatch):
    monkeypatch.setattr("hub_auth.services.sms.urlopen", FakeUrlopen(error=_http_error(429)))

    assert twilio.check_verification("+15551234567", "123456") is False


@pytest.mark.parametrize(
    "error",
    [_http_error(500), _http_error(429), URLError("connection refused"), TimeoutError("timed out")],
)
def test_provider_failures_raise_send_error(twilio, monkeypatch, error):
    monkeypatch.setattr("hub_auth.services.sms.urlopen", FakeUrlopen(error=error))

    with pytest.raises(SmsSendError):
        twilio.start_verification("+15551234567")


def test_unconfigured_twilio_never_calls_provider(monkeypatch):
    fake = FakeUrlopen({"status": "pending"})
    monkeypatch.setattr("hub_auth.services.sms.urlopen", fake)
    client = TwilioVerifyClient("AC123", "", "VA456")

    assert client.is_configured is False
    with pytest.raises(SmsSendError):
        client.start_verification("+15551234567")
    assert fake.requests == []


def test_resend_sender_posts_html_message(monkeypatch):
    fake = FakeUrlopen({"id": "email-1"})
    monkeypatch.setattr("hub_auth.services.email.urlopen", fake)
    sender = ResendEmailSender("re_key", "Training Hub <noreply@example.org>", timeout=3)

    sender.send_code("coach@team.org", "012345", "login")

    request = fake.requests[0]
    body = json.loads(request.data.decode())
    assert request.full_url == "https://api.resend.com/emails"
    assert request.get_header("Authorization") == "Bearer re_key"
    assert body["to"] == ["coach@team.org"]
    assert body["subject"] == "Your Training Hub Login Code"
    assert "012345" in body["html"]
    assert "10 minutes" in body["html"]
    assert fake.timeouts == [3]


def test_resend_sender_uses_signup_subject(monkeypatch):
    fake = FakeUrlopen({"id": "email-1"})
    monkeypatch.setattr("hub_auth.services.email.urlopen", fake)
    sender = ResendEmailSender("re_key", "Training Hub <noreply@example.org>")

    sender.send_code("new@team.org", "654321", "signup")

    assert json.loads(fake.requests[0].data.decode())["subject"] == "Your Training Hub Signup Code"


@pytest.mark.parametrize("error", [_http_error(422), URLError("dns"), TimeoutError("slow")])
def test_resend_failures_raise_email_send_error(monkeypatch, error):
    monkeypatch.setattr("hub_auth.services.email.urlopen", FakeUrlopen(error=error))
    sender = ResendEmailSender("re_key", "Training Hub <noreply@example.org>")

    with pytest.raises(EmailSendError):
        sender.send_code("coach@team.org", "123456", "login")


def test_resend_sender_requires_api_key():
    sender = ResendEmailSender("", "Training Hub <noreply@example.org>")

    with pytest.raises(EmailSendError):
        sender.send_code("coach@team.org", "123456", "login")

from __future__ import annotations

import json
import logging
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from hub_auth.config import settings

LOGGER = logging.getLogger(__name__)


class EmailSendError(RuntimeError):
    pass


class ResendEmailSender:
    def __init__(
        self,
        api_key: str,
        sender: str,
        endpoint: str = "https://api.resend.com/emails",
        ttl_seconds: int = 600,
        timeout: float = 10,
    ) -> None:
        self._api_key = api_key
        self._sender = sender
        self._endpoint = endpoint
        self._ttl_seconds = ttl_seconds
        self._timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key and self._sender)

    def send_code(self, to_email: str, code: str, purpose: str) -> None:
        if not self.is_configured:
            raise EmailSendError("Email provider is not configured")

        payload = json.dumps(
            {
                "from": self._sender,
                "to": [to_email],
                "subject": _build_subject(purpose),
                "html": _build_html(code, purpose, self._ttl_seconds),
            }
        ).encode("utf-8")
        request = Request(
            self._endpoint,
            data=payload,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            method="POST",
        )
        try:
            with urlopen(request, timeout=self._timeout) as response:
                response.read()
        except HTTPError as exc:
            error_body = exc.read().decode("utf-8", errors="replace")
            LOGGER.error("Resend API error status=%s response=%s", exc.code, error_body)
            raise EmailSendError("Failed to send verification email") from exc
        except URLError as exc:
            raise EmailSendError("Failed to reach Resend API") from exc
        except TimeoutError as exc:
            raise EmailSendError("Resend API timed out") from exc
        LOGGER.info("Verification email sent")


def _build_subject(purpose: str) -> str:
    if purpose == "signup":
        return "Your Training Hub Signup Code"
    return "Your Training Hub Login Code"


def _build_html(code: str, purpose: str, ttl_seconds: int) -> str:
    minutes = max(1, ttl_seconds // 60)
    if purpose == "signup":
        heading = "Your Signup Code"
        intro = "Enter this code to finish creating your Training Hub account:"
    else:
        heading = "Your Login Code"
        intro = "Enter this code to sign in to Training Hub:"
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><meta name="viewport" content="width=device-width, initial-scale=1.0"></head>
<body style="font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; background-color: #f5f5f5; margin: 0; padding: 20px;">
  <div style="max-width: 480px; margin: 0 auto; background-color: #ffffff; border-radius: 12px; padding: 40px;">
    <h1 style="font-size: 24px; color: #1a1a1a; text-align: center; margin: 0 0 16px 0;">{heading}</h1>
    <p style="font-size: 16px; color: #666666; text-align: center; margin: 0 0 32px 0;">{intro}</p>
    <div style="background-color: #f0fdf4; border: 2px solid #16a34a; border-radius: 12px; padding: 24px; text-align: center; margin-bottom: 32px;">
      <span style="font-family: 'SF Mono', Monaco, 'Courier New', monospace; font-size: 36px; font-weight: 700; letter-spacing: 8px; color: #16a34a;">{code}</span>
    </div>
    <p style="font-size: 14px; color: #999999; text-align: center; margin: 0;">
      This code expires in {minutes} minutes.<br>
      If you didn't request this code, you can safely ignore this email.
    </p>
  </div>
</body>
</html>
"""


email_sender = ResendEmailSender(
    settings.resend_api_key,
    settings.otp_email_sender,
    endpoint=settings.resend_api_url,
    ttl_seconds=settings.otp_ttl_seconds,
    timeout=settings.provider_timeout_seconds,
)

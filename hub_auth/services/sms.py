from __future__ import annotations

import base64
import json
import logging
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from hub_auth.config import settings
from hub_auth.services.identifiers import mask_phone

LOGGER = logging.getLogger(__name__)

VERIFY_BASE_URL = "https://verify.twilio.com/v2/Services"


class SmsSendError(RuntimeError):
    pass


class TwilioVerifyClient:
    """Delegates SMS code issuance and checking to Twilio Verify.

    Twilio owns the code, its expiry and its single use. Nothing about an SMS
    code is stored locally.
    """

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        service_sid: str,
        timeout: float = 10,
    ) -> None:
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._service_sid = service_sid
        self._timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self._account_sid and self._auth_token and self._service_sid)

    def start_verification(self, phone_e164: str) -> None:
        LOGGER.info("Starting SMS verification to=%s", mask_phone(phone_e164))
        data = self._post("Verifications", {"To": phone_e164, "Channel": "sms"})
        if data is None:
            raise SmsSendError("Twilio did not accept the verification request")

    def check_verification(self, phone_e164: str, code: str) -> bool:
        data = self._post(
            "VerificationCheck",
            {"To": phone_e164, "Code": code.strip()},
            absent_statuses=(404, 429),
        )
        # 404: no pending verification for the number (expired, already
        # approved or never started). 429: too many checks against it.
        if data is None:
            return False
        approved = data.get("status") == "approved"
        if not approved:
            LOGGER.info(
                "SMS verification check failed to=%s status=%s",
                mask_phone(phone_e164),
                data.get("status"),
            )
        return approved

    def _post(
        self,
        resource: str,
        fields: dict[str, str],
        absent_statuses: tuple[int, ...] = (404,),
    ) -> dict | None:
        if not self.is_configured:
            raise SmsSendError("Twilio Verify is not configured")

        endpoint = f"{VERIFY_BASE_URL}/{self._service_sid}/{resource}"
        payload = urlencode(fields).encode("utf-8")
        token = base64.b64encode(
            f"{self._account_sid}:{self._auth_token}".encode("utf-8")
        ).decode("ascii")
        request = Request(
            endpoint,
            data=payload,
            headers={
                "Authorization": f"Basic {token}",
                "Content-Type": "application/x-www-form-urlencoded",
            },
            method="POST",
        )
        try:
            with urlopen(request, timeout=self._timeout) as response:
                body = response.read().decode("utf-8")
        except HTTPError as exc:
            if exc.code in absent_statuses:
                return None
            error_body = exc.read().decode("utf-8", errors="replace")
            LOGGER.error(
                "Twilio Verify error resource=%s status=%s response=%s",
                resource,
                exc.code,
                error_body,
            )
            raise SmsSendError("Twilio Verify request failed") from exc
        except URLError as exc:
            raise SmsSendError("Failed to reach Twilio Verify") from exc
        except TimeoutError as exc:
            raise SmsSendError("Twilio Verify timed out") from exc
        try:
            return json.loads(body) if body else {}
        except ValueError as exc:
            raise SmsSendError("Twilio Verify returned an unreadable response") from exc


sms_client = TwilioVerifyClient(
    settings.twilio_account_sid,
    settings.twilio_auth_token,
    settings.twilio_verify_service_sid,
    timeout=settings.provider_timeout_seconds,
)

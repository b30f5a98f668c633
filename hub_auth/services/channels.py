import logging

from hub_auth.errors import ConfigurationError, DeliveryError, VerificationCheckError
from hub_auth.services.email import EmailSendError, ResendEmailSender
from hub_auth.services.otp import EmailCodeStore
from hub_auth.services.sms import SmsSendError, TwilioVerifyClient

LOGGER = logging.getLogger(__name__)


class CodeChannel:
    """A way of getting a one-time code to a user and checking it back.

    Implementations differ in who owns the code: the email channel keeps it
    in the local store, the SMS channel leaves it with the provider.
    """

    name = ""

    @property
    def is_configured(self) -> bool:
        raise NotImplementedError

    def ensure_configured(self) -> None:
        if not self.is_configured:
            raise ConfigurationError(f"{self.name} channel credentials are missing")

    def send(self, identifier: str, purpose: str) -> None:
        raise NotImplementedError

    def check(self, identifier: str, code: str) -> bool:
        raise NotImplementedError


class EmailChannel(CodeChannel):
    name = "email"

    def __init__(self, store: EmailCodeStore, sender: ResendEmailSender) -> None:
        self._store = store
        self._sender = sender

    @property
    def is_configured(self) -> bool:
        return self._sender.is_configured

    def send(self, identifier: str, purpose: str) -> None:
        record = self._store.issue(identifier)
        # The issued code stays valid when delivery fails; the user recovers
        # by asking for a resend.
        try:
            self._sender.send_code(identifier, record.code, purpose)
        except EmailSendError as exc:
            LOGGER.error("Email delivery failed: %s", exc)
            raise DeliveryError(str(exc)) from exc

    def check(self, identifier: str, code: str) -> bool:
        return self._store.redeem(identifier, code)


class SmsChannel(CodeChannel):
    name = "sms"

    def __init__(self, client: TwilioVerifyClient) -> None:
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client.is_configured

    def send(self, identifier: str, purpose: str) -> None:
        try:
            self._client.start_verification(identifier)
        except SmsSendError as exc:
            LOGGER.error("SMS delivery failed: %s", exc)
            raise DeliveryError(str(exc)) from exc

    def check(self, identifier: str, code: str) -> bool:
        try:
            return self._client.check_verification(identifier, code)
        except SmsSendError as exc:
            LOGGER.error("SMS verification check failed: %s", exc)
            raise VerificationCheckError(str(exc)) from exc

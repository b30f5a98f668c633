from dataclasses import dataclass
import logging
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from hub_auth.errors import (
    AccountNotFoundError,
    AuthorizationError,
    InvalidInputError,
    PhoneConflictError,
    RateLimitError,
)
from hub_auth.services.channels import CodeChannel
from hub_auth.services.directory import ProfileDirectory
from hub_auth.services.identifiers import (
    MAX_IDENTIFIER_LENGTH,
    is_email,
    is_us_e164,
    mask_phone,
    normalize_email,
)
from hub_auth.services.otp import EmailCodeStore
from hub_auth.services.rate_limit import SEND, RateLimiter
from hub_auth.services.tokens import TokenError, decode_access_token

LOGGER = logging.getLogger(__name__)

METHODS = ("email", "sms")
PURPOSES = ("login", "signup", "phone_verification")


@dataclass(frozen=True)
class SendResult:
    message: str


def validate_identifier(identifier: str | None) -> str:
    cleaned = (identifier or "").strip()
    if not cleaned:
        raise InvalidInputError("Email or phone number is required")
    if len(cleaned) > MAX_IDENTIFIER_LENGTH:
        raise InvalidInputError("Identifier is too long")
    return cleaned


def validate_phone(identifier: str) -> str:
    if not is_us_e164(identifier):
        raise InvalidInputError("Invalid phone number format")
    return identifier


def validate_email(identifier: str) -> str:
    if not is_email(identifier):
        raise InvalidInputError("Invalid email format")
    return normalize_email(identifier)


def resolve_caller(token: str | None, decode_token: Callable[[str], str]) -> str:
    if not token:
        raise AuthorizationError("Missing bearer token")
    try:
        return decode_token(token)
    except TokenError as exc:
        raise AuthorizationError(str(exc)) from exc


class CodeDispatcher:
    """Entry point for "send me a code" requests.

    Validates and normalizes the identifier, picks the channel from the
    method and purpose, and enforces the send rate limit. Within a request the
    order is always: rate-limit check, record, then provider dispatch.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        directory: ProfileDirectory,
        code_store: EmailCodeStore,
        email_channel: CodeChannel,
        sms_channel: CodeChannel,
        decode_token: Callable[[str], str] = decode_access_token,
    ) -> None:
        self._rate_limiter = rate_limiter
        self._directory = directory
        self._code_store = code_store
        self._email = email_channel
        self._sms = sms_channel
        self._decode_token = decode_token

    def send_code(
        self,
        identifier: str,
        method: str = "email",
        purpose: str = "login",
        caller_token: str | None = None,
    ) -> SendResult:
        identifier = validate_identifier(identifier)
        if method not in METHODS:
            raise InvalidInputError("Invalid delivery method")
        if purpose not in PURPOSES:
            raise InvalidInputError("Invalid purpose")

        profile_id = None
        if purpose == "phone_verification":
            if method != "sms":
                raise InvalidInputError("Phone verification requires SMS")
            profile_id = resolve_caller(caller_token, self._decode_token)
        if method == "sms":
            target = validate_phone(identifier)
        else:
            target = validate_email(identifier)

        # Nothing above touches the store.
        self.cleanup()

        if profile_id is not None:
            return self._send_phone_verification(target, profile_id)
        if method == "sms":
            return self._send_sms(target, purpose)
        return self._send_email(target, purpose)

    def cleanup(self) -> None:
        try:
            self._code_store.purge_expired()
        except SQLAlchemyError:
            LOGGER.exception("Expired code cleanup failed")
        try:
            self._rate_limiter.purge_stale()
        except SQLAlchemyError:
            LOGGER.exception("Rate limit cleanup failed")

    def _send_phone_verification(self, phone: str, profile_id: str) -> SendResult:
        self._sms.ensure_configured()
        if self._directory.find_conflicting_profile(phone, profile_id) is not None:
            LOGGER.info("Phone %s already attached to another profile", mask_phone(phone))
            raise PhoneConflictError("Phone bound to a different profile")
        self._admit(phone)
        self._sms.send(phone, "phone_verification")
        return SendResult(message="Verification code sent")

    def _send_sms(self, phone: str, purpose: str) -> SendResult:
        if purpose == "login" and self._directory.find_profile_by_phone(phone) is None:
            LOGGER.info("SMS login requested for unknown phone %s", mask_phone(phone))
            raise AccountNotFoundError("No profile for phone")
        self._sms.ensure_configured()
        self._admit(phone)
        self._sms.send(phone, purpose)
        return SendResult(message="Verification code sent")

    def _send_email(self, email: str, purpose: str) -> SendResult:
        self._email.ensure_configured()
        self._admit(email)
        self._email.send(email, purpose)
        return SendResult(message="OTP sent successfully")

    def _admit(self, identifier: str) -> None:
        if not self._rate_limiter.check_rate_limit(identifier, SEND):
            raise RateLimitError("Send rate limit exceeded")
        self._rate_limiter.record_attempt(identifier, SEND)

from enum import Enum
import logging
import re
from typing import Callable

from hub_auth.errors import InvalidInputError, RateLimitError
from hub_auth.services.channels import CodeChannel
from hub_auth.services.directory import ProfileDirectory
from hub_auth.services.dispatch import (
    METHODS,
    PURPOSES,
    resolve_caller,
    validate_email,
    validate_identifier,
    validate_phone,
)
from hub_auth.services.rate_limit import VERIFY, RateLimiter
from hub_auth.services.tokens import decode_access_token

LOGGER = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"^\d{6}$")


class VerificationOutcome(str, Enum):
    SUCCESS = "success"
    INVALID_CODE = "invalidCode"
    NEEDS_SIGNUP = "needsSignup"


class VerificationRedeemer:
    """Checks a submitted code on the channel that issued it."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        directory: ProfileDirectory,
        email_channel: CodeChannel,
        sms_channel: CodeChannel,
        decode_token: Callable[[str], str] = decode_access_token,
    ) -> None:
        self._rate_limiter = rate_limiter
        self._directory = directory
        self._email = email_channel
        self._sms = sms_channel
        self._decode_token = decode_token

    def verify(
        self,
        identifier: str,
        code: str,
        method: str = "email",
        purpose: str = "login",
        caller_token: str | None = None,
    ) -> VerificationOutcome:
        identifier = validate_identifier(identifier)
        if method not in METHODS:
            raise InvalidInputError("Invalid delivery method")
        if purpose not in PURPOSES:
            raise InvalidInputError("Invalid purpose")
        clean_code = (code or "").strip()
        if not CODE_PATTERN.match(clean_code):
            raise InvalidInputError("Invalid code format")

        if purpose == "phone_verification":
            if method != "sms":
                raise InvalidInputError("Phone verification requires SMS")
            resolve_caller(caller_token, self._decode_token)

        if method == "sms":
            identifier = validate_phone(identifier)
            channel = self._sms
            channel.ensure_configured()
        else:
            identifier = validate_email(identifier)
            channel = self._email

        if not self._rate_limiter.check_rate_limit(identifier, VERIFY):
            raise RateLimitError("Verify rate limit exceeded")
        self._rate_limiter.record_attempt(identifier, VERIFY)

        if not channel.check(identifier, clean_code):
            return VerificationOutcome.INVALID_CODE

        if purpose == "login" and self._lookup(identifier, method) is None:
            LOGGER.info("Verified %s identifier has no account", method)
            return VerificationOutcome.NEEDS_SIGNUP
        return VerificationOutcome.SUCCESS

    def _lookup(self, identifier: str, method: str):
        if method == "sms":
            return self._directory.find_profile_by_phone(identifier)
        return self._directory.find_profile_by_email(identifier)

from fastapi import status


class VerificationError(Exception):
    """Base error for the send/verify flows.

    ``detail`` is for server-side logs only. What the caller sees is decided
    by ``PUBLIC_ERRORS``.
    """

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail


class InvalidInputError(VerificationError):
    pass


class AccountNotFoundError(VerificationError):
    pass


class InvalidCodeError(VerificationError):
    pass


class AuthorizationError(VerificationError):
    pass


class PhoneConflictError(VerificationError):
    pass


class RateLimitError(VerificationError):
    pass


class ConfigurationError(VerificationError):
    pass


class DeliveryError(VerificationError):
    pass


class VerificationCheckError(DeliveryError):
    pass


# (status code, client message). A message of None means the error's own
# detail is safe to return as-is.
PUBLIC_ERRORS: dict[type[VerificationError], tuple[int, str | None]] = {
    InvalidInputError: (status.HTTP_400_BAD_REQUEST, None),
    AccountNotFoundError: (
        status.HTTP_400_BAD_REQUEST,
        "No account found with that phone number.",
    ),
    InvalidCodeError: (
        status.HTTP_400_BAD_REQUEST,
        "Invalid or expired code. Please try again.",
    ),
    AuthorizationError: (status.HTTP_401_UNAUTHORIZED, "Authentication required."),
    PhoneConflictError: (
        status.HTTP_409_CONFLICT,
        "This phone number is already in use.",
    ),
    RateLimitError: (
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Too many requests. Please try again later.",
    ),
    ConfigurationError: (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Verification service is not configured.",
    ),
    DeliveryError: (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Failed to send verification code. Please try again.",
    ),
    VerificationCheckError: (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Failed to verify code. Please try again.",
    ),
}

GENERIC_ERROR = (
    status.HTTP_500_INTERNAL_SERVER_ERROR,
    "Something went wrong. Please try again.",
)


def public_error(exc: VerificationError) -> tuple[int, str]:
    for error_type in type(exc).__mro__:
        if error_type in PUBLIC_ERRORS:
            status_code, message = PUBLIC_ERRORS[error_type]
            return status_code, message if message is not None else exc.detail
    return GENERIC_ERROR

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv(override=True)


def _env_bool(name: str, default: bool = False) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "y", "on"}


DEFAULT_CORS_ORIGIN_REGEX = (
    r"(?i)^(https://[a-z0-9-]+\.lovable\.app|http://localhost:\d+)$"
)


@dataclass(frozen=True)
class Settings:
    jwt_secret: str = os.getenv("JWT_SECRET", "")
    jwt_algorithm: str = os.getenv("ALGORITHM", "HS256")
    jwt_audience: str = os.getenv("JWT_AUDIENCE", "")
    otp_length: int = int(os.getenv("OTP_LENGTH", "6"))
    otp_ttl_seconds: int = int(os.getenv("OTP_TTL_SECONDS", "600"))
    otp_max_verify_attempts: int = int(os.getenv("OTP_MAX_VERIFY_ATTEMPTS", "5"))
    rate_limit_window_seconds: int = int(
        os.getenv("RATE_LIMIT_WINDOW_SECONDS", "3600")
    )
    rate_limit_max_sends: int = int(os.getenv("RATE_LIMIT_MAX_SENDS", "5"))
    rate_limit_max_verifies: int = int(os.getenv("RATE_LIMIT_MAX_VERIFIES", "10"))
    rate_limit_fail_open: bool = _env_bool("RATE_LIMIT_FAIL_OPEN", True)
    provider_timeout_seconds: float = float(
        os.getenv("PROVIDER_TIMEOUT_SECONDS", "10")
    )
    resend_api_key: str = os.getenv("RESEND_API_KEY", "")
    resend_api_url: str = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")
    otp_email_sender: str = os.getenv(
        "OTP_EMAIL_SENDER", "Training Hub <noreply@goatmeal.org>"
    )
    twilio_account_sid: str = os.getenv("TWILIO_ACCOUNT_SID", "")
    twilio_auth_token: str = os.getenv("TWILIO_AUTH_TOKEN", "")
    twilio_verify_service_sid: str = os.getenv("TWILIO_VERIFY_SERVICE_SID", "")
    cors_origin_regex: str = os.getenv("CORS_ORIGIN_REGEX", DEFAULT_CORS_ORIGIN_REGEX)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()

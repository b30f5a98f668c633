import re

MAX_IDENTIFIER_LENGTH = 255

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
US_E164_PATTERN = re.compile(r"^\+1\d{10}$")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value))


def is_us_e164(value: str) -> bool:
    return bool(US_E164_PATTERN.match(value))


def phone_key(phone: str | None) -> str:
    """Trailing ten digits of a stored or submitted US phone number."""
    if not phone:
        return ""
    return re.sub(r"\D", "", phone)[-10:]


def mask_phone(phone: str) -> str:
    return f"***{phone[-4:]}" if len(phone) >= 4 else "***"

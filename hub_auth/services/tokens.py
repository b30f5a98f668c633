import jwt

from hub_auth.config import settings


class TokenError(ValueError):
    pass


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def decode_access_token(
    token: str,
    secret: str | None = None,
    algorithm: str | None = None,
    audience: str | None = None,
) -> str:
    """Return the profile id carried in the ``sub`` claim of an access token."""
    secret = settings.jwt_secret if secret is None else secret
    algorithm = algorithm or settings.jwt_algorithm
    audience = settings.jwt_audience if audience is None else audience
    if not secret:
        raise TokenError("JWT secret is not configured")
    if not token:
        raise TokenError("Token is missing")
    options = {} if audience else {"verify_aud": False}
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            audience=audience or None,
            options=options,
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError("Invalid token") from exc
    subject = payload.get("sub")
    if not subject:
        raise TokenError("Token subject is missing")
    return str(subject)

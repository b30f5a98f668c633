import re

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

ALLOWED_HEADERS = (
    "authorization, x-client-info, apikey, content-type, "
    "x-supabase-client-platform, x-supabase-client-platform-version, "
    "x-supabase-client-runtime, x-supabase-client-runtime-version"
)


def cors_headers(origin: str | None, origin_regex: str) -> dict[str, str]:
    allowed = bool(origin) and re.fullmatch(origin_regex, origin) is not None
    return {
        "Access-Control-Allow-Origin": origin if allowed else "",
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
        "Vary": "Origin",
    }


class OriginAllowListMiddleware(BaseHTTPMiddleware):
    """Reflects allow-listed origins and sends an empty origin to everyone else.

    Browsers on other origins are blocked; server-to-server callers, which
    ignore CORS, are unaffected.
    """

    def __init__(self, app, origin_regex: str) -> None:
        super().__init__(app)
        self._origin_regex = origin_regex

    async def dispatch(self, request: Request, call_next):
        headers = cors_headers(request.headers.get("origin"), self._origin_regex)
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=headers)
        response = await call_next(request)
        response.headers.update(headers)
        return response

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from hub_auth.config import settings
from hub_auth.database import init_db
from hub_auth.errors import GENERIC_ERROR, VerificationError, public_error
from hub_auth.logging_setup import setup_logging
from hub_auth.middleware import OriginAllowListMiddleware, cors_headers
from hub_auth.routers import auth, health

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    setup_logging()
    init_db()
    yield


async def verification_error_handler(request: Request, exc: VerificationError):
    status_code, message = public_error(exc)
    LOGGER.warning(
        "Request failed path=%s error=%s detail=%s",
        request.url.path,
        type(exc).__name__,
        exc.detail,
    )
    return JSONResponse(
        status_code=status_code, content={"success": False, "error": message}
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    LOGGER.info("Request validation failed path=%s errors=%s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": "Invalid request"},
    )


async def fallback_handler(request: Request, exc: Exception):
    # Runs in ServerErrorMiddleware, outside the origin allow-list middleware.
    LOGGER.error("Unhandled error path=%s", request.url.path, exc_info=exc)
    status_code, message = GENERIC_ERROR
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=cors_headers(request.headers.get("origin"), settings.cors_origin_regex),
    )


def create_app() -> FastAPI:
    app = FastAPI(title="Training Hub Verification", lifespan=lifespan)
    app.add_middleware(OriginAllowListMiddleware, origin_regex=settings.cors_origin_regex)
    app.add_exception_handler(VerificationError, verification_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, fallback_handler)

    app.include_router(health.router, prefix="/api")
    app.include_router(auth.router, prefix="/api")
    app.include_router(auth.router)  # Supabase-style function paths without /api.
    return app


app = create_app()

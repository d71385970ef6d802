"""
FastAPI application for the bot website.

Provides:
- Discord OAuth2 login with server-side sessions
- Per-user bot settings (dashboard)
- Per-guild bot configuration for server admins
- Informational endpoints (invite links, command catalogue)
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from utils.errors import DatabaseError, SettingsContractError
from utils.logging import get_logger, setup_logging
from web.backend.core.env_config import ENV, IS_PRODUCTION, LOG_FILE, validate_environment

setup_logging(log_file=LOG_FILE)
logger = get_logger(__name__)

from web.backend.core.dependencies import initialize_services, shutdown_services  # noqa: E402
from web.backend.core.middleware import (  # noqa: E402
    HTTPSRedirectMiddleware,
    SecurityHeadersMiddleware,
)
from web.backend.core.request_id import RequestIDMiddleware  # noqa: E402
from web.backend.routes import auth, guilds, pages, users  # noqa: E402

DEFAULT_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
    502: "UPSTREAM_ERROR",
    503: "UPSTREAM_UNAVAILABLE",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup services on app startup/shutdown."""
    problems = validate_environment()
    if problems and IS_PRODUCTION:
        for problem in problems:
            logger.critical("Environment misconfigured: %s", problem)
        raise RuntimeError(
            "Refusing to start in production with an invalid environment: "
            + "; ".join(problems)
        )
    for problem in problems:
        logger.warning("Environment: %s", problem)

    logger.info("Starting website (env=%s)", ENV)
    await initialize_services()
    yield
    await shutdown_services()


app = FastAPI(
    title="Bot Website",
    description="Dashboard and guild configuration for the Discord bot",
    version="1.0.0",
    lifespan=lifespan,
)

# Last added runs first: request id wraps everything, then the HTTPS redirect.
app.add_middleware(SecurityHeadersMiddleware)
if IS_PRODUCTION:
    app.add_middleware(HTTPSRedirectMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(pages.router, tags=["pages"])
app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(auth.api_router, prefix="/api/auth", tags=["auth"])
app.include_router(users.router, tags=["users"])
app.include_router(guilds.router)


def _error_response(
    status_code: int, code: str, message: str, fields: dict | None = None
) -> JSONResponse:
    error: dict = {"code": code, "message": message}
    if fields is not None:
        error["fields"] = fields
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc):
    """Return the standard error envelope for every HTTPException."""
    code = DEFAULT_ERROR_CODES.get(exc.status_code, "ERROR")
    message = "Request failed"
    fields = None

    detail = getattr(exc, "detail", None)
    if isinstance(detail, dict):
        code = detail.get("code") or code
        message = detail.get("message") or message
        fields = detail.get("fields")
    elif isinstance(detail, str) and detail:
        message = detail

    response = _error_response(exc.status_code, code, message, fields)
    for name, value in (getattr(exc, "headers", None) or {}).items():
        response.headers[name] = value
    return response


def _field_name(loc: tuple) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or "body"


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request, exc):
    """422 envelope with a per-field message map."""
    fields: dict[str, str] = {}
    for error in exc.errors():
        message = str(error.get("msg", "Invalid value"))
        fields.setdefault(_field_name(tuple(error.get("loc", ()))), message.removeprefix("Value error, "))
    return _error_response(422, "VALIDATION_ERROR", "Invalid form submission", fields)


@app.exception_handler(SettingsContractError)
async def settings_contract_handler(request, exc):
    return _error_response(422, "VALIDATION_ERROR", str(exc), {exc.key: str(exc)})


@app.exception_handler(DatabaseError)
async def database_error_handler(request, exc):
    logger.error("Database error while handling %s", request.url.path, exc_info=exc)
    return _error_response(503, "DATABASE_UNAVAILABLE", "The bot database is unavailable")


@app.exception_handler(500)
async def internal_error_handler(request, exc):
    """Return standardized 500 response."""
    logger.error("Unhandled error while handling %s", request.url.path, exc_info=exc)
    return _error_response(500, "INTERNAL_ERROR", "An internal error occurred")


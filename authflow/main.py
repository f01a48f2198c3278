"""
authflow

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from authflow.api.deps import DbSession
from authflow.api.middleware.rate_limit import RateLimitMiddleware
from authflow.api.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware
from authflow.api.v1 import router as api_v1_router
from authflow.config import get_settings
from authflow.database import close_db, init_db
from authflow.kernel.errors import AuthError
from authflow.logging_config import configure_logging, get_logger
from authflow.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Runs startup and shutdown tasks.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down...")
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    Password login, refresh-token sessions and credential recovery.

    - **Login** returns a short-lived access token and sets a long-lived
      refresh token as an HTTP-only cookie
    - **Refresh** exchanges the cookie for a new access token
    - **Verify email**, **forgot password** and **reset password** work with
      single-use links delivered by email
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# add_middleware stacks innermost-first, so the LAST added is the OUTERMOST.
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestIdMiddleware)

# CORS outermost; credentials on for the cross-site refresh cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(request: Request, status_code: int, message: str) -> JSONResponse:
    headers = {}
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        headers[REQUEST_ID_HEADER] = req_id
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    """Render credential-flow errors as {"message": ...} with their status."""
    if exc.status_code >= 500:
        logger.error(
            "Infrastructure failure: %s",
            type(exc).__name__,
            exc_info=exc.__cause__ or exc,
            extra={"path": request.url.path, **exc.details},
        )
    return _error_response(request, exc.status_code, exc.message)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Keep framework errors (404, 405, ...) in the same response shape."""
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error_response(request, exc.status_code, message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors with the first problem as message."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        message = str(errors[0].get("msg", message)).removeprefix("Value error, ")
    return _error_response(request, status.HTTP_400_BAD_REQUEST, message)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled exception: %s", exc)
    return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(db: DbSession, response: Response):
    """Check application health, including a round trip to the database."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Health check: database unreachable", exc_info=True)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="degraded", version=settings.version, database="unavailable")
    return HealthResponse(status="ok", version=settings.version, database="connected")


app.include_router(api_v1_router, prefix=settings.api_v1_prefix)


# Main entry point for development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "authflow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )

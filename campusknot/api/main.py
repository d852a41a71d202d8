import asyncio
from contextlib import asynccontextmanager, suppress
from typing import AsyncGenerator

import sentry_sdk
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.redis import RedisIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from starlette.exceptions import HTTPException as StarletteHTTPException

from campusknot import __version__
from campusknot.api.deps import limit_api
from campusknot.api.routes import auth, matching, messages, profile, reports, users, ws
from campusknot.config import settings
from campusknot.live.hub import ConnectionHub
from campusknot.services.email_service import EmailSender
from campusknot.utils.database import init_database
from campusknot.utils.errors import CampusKnotError
from campusknot.utils.logging import configure_logging, get_logger, log_error
from campusknot.utils.media import MEDIA_URL_PREFIX, get_storage_path
from campusknot.utils.rate_limiter import RateLimiter
from campusknot.utils.verification import VerificationCodeStore, create_code_store

logger = get_logger(__name__)

# Initialize Sentry if DSN is provided
if settings.SENTRY_DSN:
    logger.info("Initializing Sentry...")
    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=1.0 if settings.ENVIRONMENT == "development" else 0.1,
            profiles_sample_rate=1.0 if settings.ENVIRONMENT == "development" else 0.1,
            integrations=[
                FastApiIntegration(transaction_style="url"),
                SqlalchemyIntegration(),
                RedisIntegration(),
                AsyncioIntegration(),
            ],
        )
        logger.info("Sentry initialized")
    except Exception as e:
        logger.error("Failed to initialize Sentry", error=str(e))


async def purge_expired_state(store: VerificationCodeStore, limiter: RateLimiter, interval_seconds: int) -> None:
    """Drop expired verification codes and idle rate limit windows every ``interval_seconds``."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            store.purge_expired()
            limiter.purge_expired()
        except Exception as e:
            logger.error("Failed to purge expired state", error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan."""
    # Startup
    configure_logging()
    logger.info("Starting CampusKnot API...", environment=settings.ENVIRONMENT)

    # Initialize database
    try:
        init_database()
    except Exception as e:
        error_details = {}
        if hasattr(e, "details"):
            error_details = e.details
        logger.error("Failed to initialize database", error=str(e), details=error_details)
        raise

    app.state.hub = ConnectionHub()
    app.state.code_store = create_code_store(settings.OTP_EXPIRY_SECONDS)
    app.state.rate_limiter = RateLimiter()
    app.state.email_sender = EmailSender(settings)

    purge_task = asyncio.create_task(
        purge_expired_state(app.state.code_store, app.state.rate_limiter, settings.OTP_PURGE_INTERVAL_SECONDS)
    )

    yield

    # Shutdown
    logger.info("Shutting down CampusKnot API...")
    purge_task.cancel()
    with suppress(asyncio.CancelledError):
        await purge_task


app = FastAPI(
    title=settings.APP_NAME,
    description="CampusKnot API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CampusKnotError)
async def campusknot_error_handler(request: Request, exc: CampusKnotError) -> JSONResponse:
    """Translate service errors into ``{"error": message}`` responses."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Request failed",
        path=request.url.path,
        status_code=exc.status_code,
        error=exc.message,
        error_type=type(exc).__name__,
        details=exc.details,
    )
    headers = None
    retry_after = exc.details.get("retry_after")
    if exc.status_code == 429 and retry_after is not None:
        headers = {"Retry-After": str(retry_after)}
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    logger.info("Invalid request", path=request.url.path, errors=str(errors))
    message = "Invalid request"
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"Invalid request: {location} {errors[0].get('msg', '')}".strip()
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log_error(logger, exc, "Unhandled error", {"path": request.url.path})
    return JSONResponse(status_code=500, content={"error": "Server error"})


api_router = APIRouter(prefix="/api", dependencies=[Depends(limit_api)])
api_router.include_router(auth.router)
api_router.include_router(profile.router)
api_router.include_router(matching.router)
api_router.include_router(messages.router)
api_router.include_router(reports.router)
api_router.include_router(users.router)

app.include_router(api_router)
app.include_router(ws.router)
app.mount(MEDIA_URL_PREFIX, StaticFiles(directory=get_storage_path(), check_dir=False), name="uploads")


@app.get("/health")
async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    hub = getattr(request.app.state, "hub", None)
    return JSONResponse(
        content={
            "status": "ok",
            "app": settings.APP_NAME,
            "environment": settings.ENVIRONMENT,
            "connections": hub.connection_count if hub else 0,
        },
    )
